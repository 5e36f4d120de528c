import json

import pytest

from pnpy.pn.components import ArcType, RateParameter, Transition
from pnpy.pn.evaluation import EvaluationContext
from pnpy.pn.exceptions import ValidationError
from pnpy.pn.exporter import export_net_to_json
from pnpy.pn.importer import import_net_from_json, load_net

from conftest import simple_chain

NET_JSON = {
    "name": "guarded",
    "tokens": [{"id": "Default"}, {"id": "Red", "colour": "#ff0000"}],
    "places": [{"id": "P1"}, {"id": "P2", "capacity": 3}, {"id": "Guard"}],
    "rateParameters": [{"id": "r", "expression": "P1 * 0.5"}],
    "transitions": [
        {
            "id": "T1",
            "priority": 2,
            "rateParameter": "r",
            "inArcs": [
                {"place": "P1", "weights": {"Default": "2", "Red": 1}},
                {"place": "Guard", "type": "inhibitor", "weights": {"Default": "1"}},
            ],
            "outArcs": [{"place": "P2", "weights": {"Default": "1"}}],
        },
        {"id": "T2", "timed": True, "rate": "2.0"},
    ],
    "initialMarking": {"P1": {"Default": 4, "Red": 1}},
}


def test_import_builds_net_and_marking():
    net, context = import_net_from_json(NET_JSON)
    assert isinstance(context, EvaluationContext)
    assert net.evaluator is context
    assert net.name == "guarded"
    assert net.get_token("Red").colour == "#ff0000"
    assert net.get_place("P2").capacity == 3
    assert net.get_place("P1").capacity is None

    t1 = net.get_transition("T1")
    assert t1.priority == 2
    assert t1.rate is net.get_rate_parameter("r")
    assert net.get_transition("T2").timed

    guard_arc = net.get_arc("Guard TO T1")
    assert guard_arc.type is ArcType.INHIBITOR
    assert net.get_arc("P1 TO T1").get_weight_for_token("Red") == "1"

    assert net.marking.get_counts("P1") == {"Default": 4, "Red": 1}
    # flags are computed on import
    assert t1.enabled
    assert not net.get_transition("T2").enabled


def test_export_then_import_keeps_structure_and_marking(tmp_path):
    net, _ = import_net_from_json(NET_JSON)
    net.fire_transition(net.get_transition("T1"))

    path = tmp_path / "net.json"
    exported = export_net_to_json(net, output_json_path=str(path))
    assert json.loads(path.read_text()) == exported
    assert exported["initialMarking"] == {"P1": {"Default": 2}, "P2": {"Default": 1}}

    reloaded, _ = load_net(str(path))
    assert reloaded.marking == net.marking
    assert list(reloaded.transitions) == ["T1", "T2"]
    assert list(reloaded.arcs) == list(net.arcs)
    assert reloaded.get_transition("T1").rate_expression == "P1 * 0.5"


def test_export_omits_default_parameters():
    net = simple_chain(parameters={"random_selection": "legacy"})
    exported = export_net_to_json(net)
    assert exported["parameters"] == {"random_selection": "legacy"}
    assert exported["evaluationContext"] is None
    assert "type" not in exported["transitions"][0]["outArcs"][0]
    assert exported["transitions"][0]["inArcs"][0]["type"] == "normal"


def test_document_parameters_yield_to_explicit_ones():
    data = dict(NET_JSON, parameters={"random_selection": "legacy", "random_seed": 7})
    net, _ = import_net_from_json(data, parameters={"random_selection": "uniform"})
    assert net.parameters["random_selection"] == "uniform"
    assert net.parameters["random_seed"] == 7


def test_user_code_round_trip(tmp_path):
    code = "def double(x):\n    return 2 * x\n"
    net = simple_chain(out_weight="1")
    net.evaluator = EvaluationContext(user_code=code)

    py_path = tmp_path / "user_code.py"
    exported = export_net_to_json(net, output_json_path=str(tmp_path / "net.json"), output_py_path=str(py_path))
    assert py_path.read_text() == code
    assert exported["evaluationContext"] == str(py_path)

    reloaded, context = load_net(str(tmp_path / "net.json"))
    assert context.user_code == code
    assert reloaded.evaluate_expression_as_int("double(P1)") == 10


def test_relative_user_code_path_resolves_next_to_document(tmp_path):
    (tmp_path / "helpers.py").write_text("BATCH = 3\n")
    data = dict(NET_JSON, evaluationContext="helpers.py")
    (tmp_path / "net.json").write_text(json.dumps(data))

    net, context = load_net(str(tmp_path / "net.json"))
    assert context.user_code == "BATCH = 3\n"
    assert net.evaluate_expression_as_int("BATCH + 1") == 4


def test_inline_user_code():
    data = dict(NET_JSON, evaluationContext="LIMIT = 9")
    net, _ = import_net_from_json(data)
    assert net.evaluate_expression_as_int("LIMIT") == 9


@pytest.mark.parametrize("broken", [
    {"places": [], "transitions": []},
    dict(NET_JSON, extra=True),
    dict(NET_JSON, places=[{"id": "P1", "capacity": -1}]),
    dict(NET_JSON, transitions=[{"id": "T", "rate": "1", "rateParameter": "r"}]),
    dict(NET_JSON, transitions=[{"id": "T", "outArcs": [
        {"place": "P1", "type": "inhibitor", "weights": {"Default": "1"}}]}]),
    dict(NET_JSON, parameters={"random_selection": "weighted"}),
])
def test_schema_violations_raise_validation_error(broken):
    with pytest.raises(ValidationError):
        import_net_from_json(broken)


def test_dangling_place_reference_raises_validation_error():
    data = dict(NET_JSON, transitions=[{"id": "T", "inArcs": [{"place": "Nowhere", "weights": {"Default": "1"}}]}])
    with pytest.raises(ValidationError, match="Nowhere"):
        import_net_from_json(data)


def test_unknown_token_in_marking_raises_validation_error():
    data = dict(NET_JSON, initialMarking={"P1": {"Green": 1}})
    with pytest.raises(ValidationError):
        import_net_from_json(data)


def test_invalid_weight_expression_raises_validation_error():
    data = dict(NET_JSON, transitions=[{"id": "T", "inArcs": [{"place": "P1", "weights": {"Default": "P1 +"}}]}])
    with pytest.raises(ValidationError):
        import_net_from_json(data)


def test_export_of_rate_parameter_reference():
    net = simple_chain()
    rate = RateParameter("speed", "2")
    net.add_rate_parameter(rate)
    net.add_transition(Transition("T2", rate=rate))
    exported = export_net_to_json(net)
    t2 = exported["transitions"][1]
    assert t2["rateParameter"] == "speed" and "rate" not in t2
    assert exported["rateParameters"] == [{"id": "speed", "expression": "2"}]
