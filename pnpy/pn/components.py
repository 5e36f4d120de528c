from enum import Enum
from typing import Dict, Mapping, Optional, Union

from frozendict import frozendict


class ArcType(Enum):
    NORMAL = "normal"
    INHIBITOR = "inhibitor"


# -----------------------------------------------------------------------------------
# Token
# -----------------------------------------------------------------------------------
class Token:
    """
    A token colour. Immutable: two tokens with the same id are the same colour.
    """

    __slots__ = ("_id", "_colour")

    def __init__(self, token_id: str, colour: Optional[str] = None):
        self._id = token_id
        self._colour = colour

    @property
    def id(self) -> str:
        return self._id

    @property
    def colour(self) -> Optional[str]:
        return self._colour

    def __eq__(self, other):
        return isinstance(other, Token) and other._id == self._id and other._colour == self._colour

    def __hash__(self):
        return hash(("Token", self._id))

    def __repr__(self):
        if self._colour is not None:
            return f"Token('{self._id}', colour='{self._colour}')"
        return f"Token('{self._id}')"


# -----------------------------------------------------------------------------------
# Place, RateParameter, Transition
# -----------------------------------------------------------------------------------
class Place:
    def __init__(self, place_id: str, capacity: Optional[int] = None):
        if capacity is not None and capacity < 0:
            raise ValueError(f"Capacity of place '{place_id}' must be non-negative.")
        self.id = place_id
        # None means unbounded
        self.capacity = capacity

    @property
    def has_capacity_restriction(self) -> bool:
        return self.capacity is not None

    def __repr__(self):
        cap_str = "inf" if self.capacity is None else str(self.capacity)
        return f"Place(id='{self.id}', capacity={cap_str})"


class RateParameter:
    """
    A named rate expression that several transitions can share.
    """

    def __init__(self, parameter_id: str, expression: str):
        self.id = parameter_id
        self.expression = expression

    def __repr__(self):
        return f"RateParameter(id='{self.id}', expression='{self.expression}')"


class Transition:
    def __init__(self, transition_id: str, priority: int = 1, timed: bool = False,
                 infinite_server: bool = False, rate: Union[str, RateParameter] = "1"):
        self.id = transition_id
        self.priority = priority
        self.timed = timed
        self.infinite_server = infinite_server
        self.rate = rate
        # cached, maintained by PetriNet.mark_enabled_transitions()
        self.enabled = False

    @property
    def rate_expression(self) -> str:
        if isinstance(self.rate, RateParameter):
            return self.rate.expression
        return self.rate

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False

    def __repr__(self):
        kind = "timed" if self.timed else f"immediate, priority={self.priority}"
        server = ", infinite_server" if self.infinite_server else ""
        return f"Transition(id='{self.id}', {kind}{server}, rate='{self.rate_expression}')"


# -----------------------------------------------------------------------------------
# Arc
# -----------------------------------------------------------------------------------
Node = Union[Place, Transition]


class Arc:
    """
    Directed edge between a place and a transition. ``token_weights`` maps token ids to
    weight expressions; a token missing from the mapping weighs "0".
    """

    def __init__(self, source: Node, target: Node, token_weights: Mapping[str, str],
                 arc_type: ArcType = ArcType.NORMAL, arc_id: Optional[str] = None):
        self.source = source
        self.target = target
        self.type = arc_type
        self.token_weights: Mapping[str, str] = frozendict(
            {token_id: str(weight) for token_id, weight in token_weights.items()})
        self.id = arc_id if arc_id is not None else f"{source.id} TO {target.id}"

    @property
    def is_inbound(self) -> bool:
        """True for place -> transition arcs."""
        return isinstance(self.source, Place) and isinstance(self.target, Transition)

    @property
    def is_outbound(self) -> bool:
        """True for transition -> place arcs."""
        return isinstance(self.source, Transition) and isinstance(self.target, Place)

    @property
    def place(self) -> Place:
        return self.source if isinstance(self.source, Place) else self.target

    @property
    def transition(self) -> Transition:
        return self.target if isinstance(self.target, Transition) else self.source

    def get_weight_for_token(self, token_id: str) -> str:
        return self.token_weights.get(token_id, "0")

    def __repr__(self):
        weights: Dict[str, str] = dict(self.token_weights)
        return (f"Arc(id='{self.id}', source='{self.source.id}', target='{self.target.id}', "
                f"type={self.type.value}, weights={weights})")
