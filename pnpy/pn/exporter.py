import json
import os
from typing import Any, Dict, Optional

from pnpy.pn.components import RateParameter
from pnpy.pn.evaluation import EvaluationContext
from pnpy.pn.pn_imp import DEFAULT_PARAMETERS, PetriNet


# -----------------------------------------------------------------------------------
# Exporter functions
# -----------------------------------------------------------------------------------

def _arc_to_json(arc, include_type: bool) -> Dict[str, Any]:
    arc_json: Dict[str, Any] = {
        "id": arc.id,
        "place": arc.place.id,
        "weights": dict(arc.token_weights),
    }
    if include_type:
        arc_json["type"] = arc.type.value
    return arc_json


def export_net_to_json(
    net: PetriNet,
    output_json_path: Optional[str] = None,
    output_py_path: Optional[str] = None,
):
    """
    Exports a net (structure, current marking and non-default parameters) to a JSON dict,
    optionally writing it to output_json_path. If the net's evaluator carries user code,
    the code is dumped to output_py_path and the JSON references that file.
    """
    tokens_json = []
    for token in net.tokens.values():
        token_json: Dict[str, Any] = {"id": token.id}
        if token.colour is not None:
            token_json["colour"] = token.colour
        tokens_json.append(token_json)

    places_json = []
    for place in net.places.values():
        places_json.append({"id": place.id, "capacity": place.capacity})

    rate_parameters_json = [{"id": rp.id, "expression": rp.expression} for rp in net.rate_parameters.values()]

    # Transitions (arcs are nested into the transitions they touch)
    transitions_json = []
    for t in net.transitions.values():
        t_json: Dict[str, Any] = {
            "id": t.id,
            "priority": t.priority,
            "timed": t.timed,
            "infiniteServer": t.infinite_server,
            "inArcs": [_arc_to_json(arc, include_type=True) for arc in net.inbound_arcs(t)],
            "outArcs": [_arc_to_json(arc, include_type=False) for arc in net.outbound_arcs(t)],
        }
        if isinstance(t.rate, RateParameter):
            t_json["rateParameter"] = t.rate.id
        else:
            t_json["rate"] = t.rate
        transitions_json.append(t_json)

    initial_marking = {}
    for place_id in net.places:
        counts = {token_id: count for token_id, count in net.marking.get_counts(place_id).items() if count}
        if counts:
            initial_marking[place_id] = counts

    parameters = {key: value for key, value in net.parameters.items() if value != DEFAULT_PARAMETERS[key]}

    # Evaluation context
    evaluation_context_val = None
    if isinstance(net.evaluator, EvaluationContext):
        user_code = net.evaluator.user_code
        if user_code is not None and user_code.strip():
            if output_py_path is None:
                output_py_path = "user_code_exported.py"
            with open(output_py_path, "w") as f:
                f.write(user_code)
            evaluation_context_val = os.path.abspath(output_py_path)

    final_json = {
        "name": net.name,
        "tokens": tokens_json,
        "places": places_json,
        "rateParameters": rate_parameters_json,
        "transitions": transitions_json,
        "initialMarking": initial_marking,
        "parameters": parameters,
        "evaluationContext": evaluation_context_val,
    }

    if output_json_path is not None:
        with open(output_json_path, "w") as f:
            json.dump(final_json, f, indent=2)

    return final_json
