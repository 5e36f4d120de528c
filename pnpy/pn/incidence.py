import sys
from typing import TYPE_CHECKING, Dict, Iterator, Tuple

from pnpy.pn.components import ArcType, Place, Transition

if TYPE_CHECKING:
    from pnpy.pn.pn_imp import PetriNet

# enabling degree of a transition that no inbound weight constrains
UNBOUNDED_DEGREE = sys.maxsize

ZERO_WEIGHT_DISABLE = "disable"
ZERO_WEIGHT_UNCONSTRAINED = "unconstrained"


class IncidenceMatrix:
    """
    Sparse (place id, transition id) -> weight mapping for a single token colour.
    Entries that were never stored read as 0.
    """

    def __init__(self, token_id: str):
        self.token_id = token_id
        self._entries: Dict[Tuple[str, str], int] = {}

    def put(self, place: Place, transition: Transition, weight: int):
        self._entries[(place.id, transition.id)] = weight

    def get(self, place: Place, transition: Transition) -> int:
        return self._entries.get((place.id, transition.id), 0)

    def items(self) -> Iterator[Tuple[Tuple[str, str], int]]:
        return iter(self._entries.items())

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        entries = ", ".join(f"({p}, {t})={w}" for (p, t), w in self._entries.items())
        return f"IncidenceMatrix(token='{self.token_id}', {{{entries}}})"


def _truncated_division(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def enabling_degree(net: "PetriNet", transition: Transition, zero_weight_policy: str = ZERO_WEIGHT_DISABLE) -> int:
    """
    How many times ``transition`` could fire at once under the current marking: the minimum over
    all inbound (arc, token) pairs of ``count // required``.

    A pair whose required weight is 0 either forces the degree to 0 (``"disable"``) or is ignored
    (``"unconstrained"``).
    """
    degree = UNBOUNDED_DEGREE
    for arc in net.inbound_arcs(transition):
        place = arc.source
        for token_id, expression in arc.token_weights.items():
            required = net.evaluate_expression_as_int(expression)
            if required == 0:
                if zero_weight_policy == ZERO_WEIGHT_DISABLE:
                    degree = 0
                continue
            current = _truncated_division(net.get_token_count(place, token_id), required)
            if current < degree:
                degree = current
    return degree


def build_backwards(net: "PetriNet", token_id: str) -> IncidenceMatrix:
    """
    Weights consumed per place/transition pair. Infinite-server transitions consume
    ``weight * enabling degree``. Inhibitor arcs never consume.
    """
    matrix = IncidenceMatrix(token_id)
    for arc in net.arcs.values():
        if not arc.is_inbound or arc.type is not ArcType.NORMAL:
            continue
        transition = arc.target
        weight = net.evaluate_expression_as_int(arc.get_weight_for_token(token_id))
        if transition.infinite_server:
            weight *= net.get_enabling_degree(transition)
        matrix.put(arc.source, transition, weight)
    return matrix


def build_forwards(net: "PetriNet", token_id: str) -> IncidenceMatrix:
    """Weights produced per place/transition pair, for a single firing."""
    matrix = IncidenceMatrix(token_id)
    for arc in net.arcs.values():
        if not arc.is_outbound:
            continue
        weight = net.evaluate_expression_as_int(arc.get_weight_for_token(token_id))
        matrix.put(arc.target, arc.source, weight)
    return matrix
