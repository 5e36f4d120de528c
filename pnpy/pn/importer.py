import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

from jsonschema import validate
from jsonschema.exceptions import ValidationError as SchemaValidationError

from pnpy.pn.components import Arc, ArcType, Place, RateParameter, Token, Transition
from pnpy.pn.evaluation import EvaluationContext
from pnpy.pn.exceptions import NotFoundError, ValidationError
from pnpy.pn.pn_imp import PetriNet

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "util", "validation_schema.json")


def load_schema() -> Dict[str, Any]:
    with open(SCHEMA_PATH, "r") as f:
        return json.load(f)


def _load_user_code(value: Optional[str], base_dir: Optional[str]) -> Optional[str]:
    """
    The "evaluationContext" entry is either a path to a Python file or inline code.
    Relative paths are resolved against base_dir when given.
    """
    if value is None or not value.strip():
        return None
    path = value
    if base_dir is not None and not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    if os.path.isfile(path):
        with open(path, "r") as f:
            return f.read()
    return value


def _populate(net: PetriNet, data: Dict[str, Any]):
    for t_json in data["tokens"]:
        net.add_token(Token(t_json["id"], colour=t_json.get("colour")))

    for p_json in data["places"]:
        net.add_place(Place(p_json["id"], capacity=p_json.get("capacity")))

    # the marking goes in before any expression is validated, so functional weights see it
    for place_id, counts in data.get("initialMarking", {}).items():
        net.set_tokens(net.get_place(place_id), counts)

    for rp_json in data.get("rateParameters", []):
        net.add_rate_parameter(RateParameter(rp_json["id"], rp_json["expression"]))

    for t_json in data["transitions"]:
        if "rateParameter" in t_json:
            rate = net.get_rate_parameter(t_json["rateParameter"])
        else:
            rate = t_json.get("rate", "1")
        net.add_transition(Transition(
            t_json["id"],
            priority=t_json.get("priority", 1),
            timed=t_json.get("timed", False),
            infinite_server=t_json.get("infiniteServer", False),
            rate=rate,
        ))

    for t_json in data["transitions"]:
        transition = net.get_transition(t_json["id"])
        for arc_json in t_json.get("inArcs", []):
            place = net.get_place(arc_json["place"])
            net.add_arc(Arc(place, transition, arc_json["weights"],
                            arc_type=ArcType(arc_json.get("type", ArcType.NORMAL.value)),
                            arc_id=arc_json.get("id")))
        for arc_json in t_json.get("outArcs", []):
            place = net.get_place(arc_json["place"])
            net.add_arc(Arc(transition, place, arc_json["weights"], arc_id=arc_json.get("id")))


def import_net_from_json(data: Dict[str, Any],
                         parameters: Optional[Dict[str, Any]] = None,
                         base_dir: Optional[str] = None) -> Tuple[PetriNet, EvaluationContext]:
    """
    Build a PetriNet (with its initial marking) and its EvaluationContext from a JSON dict.
    The document is validated against the bundled schema first; explicit ``parameters``
    take precedence over the document's own "parameters" entry.

    The returned net already has its enabled flags computed.
    """
    try:
        validate(instance=data, schema=load_schema())
    except SchemaValidationError as e:
        raise ValidationError(f"Invalid Petri net document: {e.message}") from e

    net_parameters = dict(data.get("parameters", {}))
    if parameters is not None:
        net_parameters.update(parameters)

    context = EvaluationContext(user_code=_load_user_code(data.get("evaluationContext"), base_dir))
    net = PetriNet(name=data.get("name", ""), evaluator=context, parameters=net_parameters)

    try:
        _populate(net, data)
    except NotFoundError as e:
        raise ValidationError(f"Invalid Petri net document: {e}") from e

    net.mark_enabled_transitions()
    logger.debug("Imported net '%s' with %d place(s) and %d transition(s)",
                 net.name, len(net.places), len(net.transitions))
    return net, context


def load_net(path: str, parameters: Optional[Dict[str, Any]] = None) -> Tuple[PetriNet, EvaluationContext]:
    with open(path, "r") as f:
        data = json.load(f)
    return import_net_from_json(data, parameters=parameters, base_dir=os.path.dirname(os.path.abspath(path)))
