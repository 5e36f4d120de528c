"""
Enabling tests per arc. Arc kinds form a closed set, so the strategies are plain functions
held in two dispatch tables, one per arc direction:

- ``BACKWARDS_STRATEGIES`` for place -> transition arcs (NORMAL and INHIBITOR);
- ``FORWARDS_STRATEGIES`` for transition -> place arcs (NORMAL only, outbound inhibitors are rejected
  when the arc is added to the net).
"""
from typing import TYPE_CHECKING, Callable, Dict

from pnpy.pn.components import Arc, ArcType

if TYPE_CHECKING:
    from pnpy.pn.pn_imp import PetriNet

ArcStrategy = Callable[["PetriNet", Arc], bool]


def backwards_normal(net: "PetriNet", arc: Arc) -> bool:
    place = arc.source
    for token_id, expression in arc.token_weights.items():
        required = net.evaluate_expression_as_int(expression)
        if net.get_token_count(place, token_id) < required:
            return False
    return True


def inhibitor(net: "PetriNet", arc: Arc) -> bool:
    place = arc.source
    for token_id, expression in arc.token_weights.items():
        threshold = net.evaluate_expression_as_int(expression)
        if net.get_token_count(place, token_id) >= threshold:
            return False
    return True


def forwards_normal(net: "PetriNet", arc: Arc) -> bool:
    place = arc.target
    if not place.has_capacity_restriction:
        return True

    transition = arc.source
    produced = sum(net.evaluate_expression_as_int(expression) for expression in arc.token_weights.values())
    # tokens the same firing takes out of this place first (self-loop)
    consumed = 0
    for inbound in net.inbound_arcs(transition):
        if inbound.source is place and inbound.type is ArcType.NORMAL:
            consumed += sum(net.evaluate_expression_as_int(expression)
                            for expression in inbound.token_weights.values())
    return net.marking.total(place.id) + produced - consumed <= place.capacity


BACKWARDS_STRATEGIES: Dict[ArcType, ArcStrategy] = {
    ArcType.NORMAL: backwards_normal,
    ArcType.INHIBITOR: inhibitor,
}

FORWARDS_STRATEGIES: Dict[ArcType, ArcStrategy] = {
    ArcType.NORMAL: forwards_normal,
}


def can_fire(net: "PetriNet", arc: Arc) -> bool:
    """Dispatch on the arc direction, then on its type."""
    if arc.is_inbound:
        return BACKWARDS_STRATEGIES[arc.type](net, arc)
    return FORWARDS_STRATEGIES[arc.type](net, arc)
