"""Shared fixtures: small nets used across the engine tests."""

import pytest

from pnpy.pn.components import Arc, ArcType, Place, Token, Transition
from pnpy.pn.pn_imp import PetriNet


def simple_chain(p1_tokens=5, in_weight="2", out_weight="1", infinite_server=False, parameters=None):
    """P1 --(in_weight)--> T1 --(out_weight)--> P2, all with the "Default" token."""
    net = PetriNet("chain", parameters=parameters)
    net.add_token(Token("Default"))
    p1 = Place("P1")
    p2 = Place("P2")
    net.add_place(p1, {"Default": p1_tokens})
    net.add_place(p2, {"Default": 0})
    t1 = Transition("T1", infinite_server=infinite_server)
    net.add_transition(t1)
    net.add_arc(Arc(p1, t1, {"Default": in_weight}))
    net.add_arc(Arc(t1, p2, {"Default": out_weight}))
    net.mark_enabled_transitions()
    return net


def add_source_transition(net, transition, place_id=None, tokens=1):
    """Give ``transition`` its own marked input place so it is enabled."""
    place = Place(place_id or f"in_{transition.id}")
    net.add_place(place, {"Default": tokens})
    net.add_transition(transition)
    net.add_arc(Arc(place, transition, {"Default": "1"}))
    return place


@pytest.fixture
def chain():
    return simple_chain()


@pytest.fixture
def coloured_net():
    """P1 holds Red and Blue; T1 consumes one Red and two Blue and produces one Red into P2."""
    net = PetriNet("coloured")
    net.add_token(Token("Red", colour="#ff0000"))
    net.add_token(Token("Blue", colour="#0000ff"))
    p1 = Place("P1")
    p2 = Place("P2")
    net.add_place(p1, {"Red": 3, "Blue": 4})
    net.add_place(p2)
    t1 = Transition("T1")
    net.add_transition(t1)
    net.add_arc(Arc(p1, t1, {"Red": "1", "Blue": "2"}))
    net.add_arc(Arc(t1, p2, {"Red": "1"}))
    net.mark_enabled_transitions()
    return net


@pytest.fixture
def inhibited_net():
    """T1 moves a token from P1 to P2 unless P3 holds a token."""
    net = simple_chain(p1_tokens=1, in_weight="1")
    p3 = Place("P3")
    net.add_place(p3, {"Default": 0})
    net.add_arc(Arc(p3, net.get_transition("T1"), {"Default": "1"}, arc_type=ArcType.INHIBITOR))
    net.mark_enabled_transitions()
    return net
