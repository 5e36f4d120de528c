from collections import Counter

import pytest

from pnpy.pn.components import Token, Transition
from pnpy.pn.exceptions import EmptyEnabledSetError, ValidationError
from pnpy.pn.pn_imp import PetriNet

from conftest import add_source_transition, simple_chain


def _three_way_net(selection):
    net = PetriNet(parameters={"random_selection": selection, "random_seed": 1234})
    net.add_token(Token("Default"))
    for transition_id in ("T1", "T2", "T3"):
        add_source_transition(net, Transition(transition_id))
    return net


def test_empty_enabled_set_raises_and_leaves_state():
    net = simple_chain(p1_tokens=0)
    before = net.marking.copy()
    with pytest.raises(EmptyEnabledSetError):
        net.get_random_transition()
    assert net.marking == before


def test_single_enabled_transition_is_always_returned(chain):
    assert chain.get_random_transition() is chain.get_transition("T1")


def test_same_seed_same_choices():
    first_net, second_net = _three_way_net("uniform"), _three_way_net("uniform")
    first = [first_net.get_random_transition().id for _ in range(20)]
    second = [second_net.get_random_transition().id for _ in range(20)]
    assert first == second


def test_uniform_selection_reaches_every_transition():
    net = _three_way_net("uniform")
    seen = Counter(net.get_random_transition().id for _ in range(600))
    assert set(seen) == {"T1", "T2", "T3"}


# Flagged behaviour: the legacy selection maps drawn index i to element max(i - 1, 0),
# so the first element absorbs indices 0 and 1 and the last element is unreachable.
def test_legacy_selection_never_returns_last_element():
    net = _three_way_net("legacy")
    seen = Counter(net.get_random_transition().id for _ in range(600))
    assert set(seen) == {"T1", "T2"}
    assert seen["T1"] > seen["T2"]


def test_legacy_selection_maps_indices(monkeypatch):
    net = _three_way_net("legacy")
    for drawn, expected in [(0, "T1"), (1, "T1"), (2, "T2")]:
        monkeypatch.setattr(net.random, "randrange", lambda n, drawn=drawn: drawn)
        assert net.get_random_transition().id == expected


def test_unknown_selection_mode_is_rejected():
    with pytest.raises(ValidationError):
        PetriNet(parameters={"random_selection": "weighted"})
    with pytest.raises(ValidationError):
        PetriNet(parameters={"no_such_key": 1})
