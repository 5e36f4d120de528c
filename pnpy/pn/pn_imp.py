import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from frozendict import frozendict

from pnpy.pn.components import Arc, ArcType, Place, RateParameter, Token, Transition
from pnpy.pn.evaluation import EvaluationContext
from pnpy.pn.exceptions import EmptyEnabledSetError, EvaluationError, NotFoundError, ValidationError
from pnpy.pn.incidence import (
    ZERO_WEIGHT_DISABLE,
    ZERO_WEIGHT_UNCONSTRAINED,
    IncidenceMatrix,
    build_backwards,
    build_forwards,
    enabling_degree,
)
from pnpy.pn.marking import Marking, MarkingSnapshot
from pnpy.pn.strategies import can_fire

logger = logging.getLogger(__name__)

RANDOM_SELECTION_UNIFORM = "uniform"
RANDOM_SELECTION_LEGACY = "legacy"

DEFAULT_PARAMETERS: Dict[str, Any] = {
    "zero_weight_degree": ZERO_WEIGHT_DISABLE,
    "random_selection": RANDOM_SELECTION_UNIFORM,
    "random_seed": None,
}

_ALLOWED_VALUES = {
    "zero_weight_degree": (ZERO_WEIGHT_DISABLE, ZERO_WEIGHT_UNCONSTRAINED),
    "random_selection": (RANDOM_SELECTION_UNIFORM, RANDOM_SELECTION_LEGACY),
}


# -----------------------------------------------------------------------------------
# PetriNet
# -----------------------------------------------------------------------------------
class PetriNet:
    """
    A place/transition net with coloured token counts, functional arc weights,
    inhibitor arcs, priorities and reversible firing.

    Components live in dicts keyed by id (insertion ordered, so every query iterates in a
    deterministic order). The marking is owned by the net and only changed by firing or
    by ``set_tokens``.

    Parameters (all optional):
      zero_weight_degree: "disable" (a zero inbound weight forces the enabling degree to 0)
                          or "unconstrained" (a zero inbound weight is ignored).
      random_selection:   "uniform" or "legacy" (see ``get_random_transition``).
      random_seed:        seed for the net's random generator.
    """

    def __init__(self, name: str = "", evaluator: Optional[Any] = None,
                 parameters: Optional[Dict[str, Any]] = None):
        if parameters is None:
            parameters = {}

        self.name = name
        self.evaluator = evaluator if evaluator is not None else EvaluationContext()
        self.parameters = self._check_parameters(parameters)
        self.random = random.Random(self.parameters["random_seed"])

        self.tokens: Dict[str, Token] = {}
        self.places: Dict[str, Place] = {}
        self.transitions: Dict[str, Transition] = {}
        self.arcs: Dict[str, Arc] = {}
        self.rate_parameters: Dict[str, RateParameter] = {}
        self.marking = Marking()

    @staticmethod
    def _check_parameters(parameters: Dict[str, Any]) -> Dict[str, Any]:
        checked = dict(DEFAULT_PARAMETERS)
        for key, value in parameters.items():
            if key not in DEFAULT_PARAMETERS:
                raise ValidationError(f"Unknown parameter '{key}'.")
            if key in _ALLOWED_VALUES and value not in _ALLOWED_VALUES[key]:
                raise ValidationError(
                    f"Invalid value {value!r} for parameter '{key}', expected one of {_ALLOWED_VALUES[key]}.")
            checked[key] = value
        return checked

    # ---------------------------------------------------------------------------
    # Expressions
    # ---------------------------------------------------------------------------
    def snapshot(self) -> MarkingSnapshot:
        """Immutable view of the marking that covers every registered place."""
        return frozendict({place_id: frozendict(self.marking.get_counts(place_id)) for place_id in self.places})

    def validate_expression(self, expression: str) -> bool:
        try:
            self.evaluator.evaluate(expression, self.snapshot())
        except EvaluationError:
            return False
        return True

    def evaluate_expression_as_int(self, expression: str) -> int:
        value = self.evaluator.evaluate(expression, self.snapshot())
        try:
            # truncation toward zero, not rounding
            return int(value)
        except (OverflowError, ValueError) as e:
            raise EvaluationError(expression, f"result {value!r} is not a finite number") from e

    # ---------------------------------------------------------------------------
    # Registry: add
    # ---------------------------------------------------------------------------
    def _register(self, registry: Dict[str, Any], component: Any, kind: str) -> bool:
        existing = registry.get(component.id)
        if existing is component:
            return False
        if existing is not None:
            raise ValidationError(f"A different {kind} with id '{component.id}' already exists.")
        registry[component.id] = component
        return True

    def add_token(self, token: Token):
        self._register(self.tokens, token, "token")

    def add_place(self, place: Place, counts: Optional[Mapping[str, int]] = None):
        self._register(self.places, place, "place")
        if counts is not None:
            self.set_tokens(place, counts)

    def add_rate_parameter(self, rate_parameter: RateParameter):
        if not self.validate_expression(rate_parameter.expression):
            raise ValidationError(f"Invalid rate expression '{rate_parameter.expression}' "
                                  f"for rate parameter '{rate_parameter.id}'.")
        self._register(self.rate_parameters, rate_parameter, "rate parameter")

    def add_transition(self, transition: Transition):
        if isinstance(transition.rate, RateParameter):
            if self.rate_parameters.get(transition.rate.id) is not transition.rate:
                raise ValidationError(f"Rate parameter '{transition.rate.id}' of transition "
                                      f"'{transition.id}' is not part of the net.")
        elif not self.validate_expression(transition.rate):
            raise ValidationError(f"Invalid rate expression '{transition.rate}' for transition '{transition.id}'.")
        self._register(self.transitions, transition, "transition")

    def add_arc(self, arc: Arc):
        for node in (arc.source, arc.target):
            registry = self.places if isinstance(node, Place) else self.transitions
            if registry.get(node.id) is not node:
                raise ValidationError(f"Arc '{arc.id}' references '{node.id}', which is not part of the net.")
        if not (arc.is_inbound or arc.is_outbound):
            raise ValidationError(f"Arc '{arc.id}' must connect a place and a transition.")
        if arc.is_outbound and arc.type is ArcType.INHIBITOR:
            raise ValidationError(f"Inhibitor arc '{arc.id}' cannot leave a transition.")
        for token_id, expression in arc.token_weights.items():
            if token_id not in self.tokens:
                raise ValidationError(f"Arc '{arc.id}' weights unknown token '{token_id}'.")
            if not self.validate_expression(expression):
                raise ValidationError(f"Invalid weight '{expression}' for token '{token_id}' on arc '{arc.id}'.")
        self._register(self.arcs, arc, "arc")

    # ---------------------------------------------------------------------------
    # Registry: remove
    # ---------------------------------------------------------------------------
    def remove_arc(self, arc: Arc):
        self.arcs.pop(arc.id, None)

    def remove_place(self, place: Place):
        for arc in self.arcs_of(place):
            self.remove_arc(arc)
        self.places.pop(place.id, None)
        self.marking.remove_place(place.id)

    def remove_transition(self, transition: Transition):
        for arc in self.arcs_of(transition):
            self.remove_arc(arc)
        self.transitions.pop(transition.id, None)

    def remove_token(self, token: Token):
        for arc in self.arcs.values():
            if token.id in arc.token_weights:
                raise ValidationError(f"Token '{token.id}' is still weighted on arc '{arc.id}'.")
        self.tokens.pop(token.id, None)
        self.marking.remove_token(token.id)

    def remove_rate_parameter(self, rate_parameter: RateParameter):
        for transition in self.transitions.values():
            if transition.rate is rate_parameter:
                transition.rate = rate_parameter.expression
        self.rate_parameters.pop(rate_parameter.id, None)

    # ---------------------------------------------------------------------------
    # Registry: lookup
    # ---------------------------------------------------------------------------
    @staticmethod
    def _lookup(registry: Dict[str, Any], component_id: str, kind: str):
        try:
            return registry[component_id]
        except KeyError:
            raise NotFoundError(f"No {kind} {component_id} exists in Petri net.") from None

    def get_token(self, token_id: str) -> Token:
        return self._lookup(self.tokens, token_id, "token")

    def get_place(self, place_id: str) -> Place:
        return self._lookup(self.places, place_id, "place")

    def get_transition(self, transition_id: str) -> Transition:
        return self._lookup(self.transitions, transition_id, "transition")

    def get_arc(self, arc_id: str) -> Arc:
        return self._lookup(self.arcs, arc_id, "arc")

    def get_rate_parameter(self, parameter_id: str) -> RateParameter:
        return self._lookup(self.rate_parameters, parameter_id, "rate parameter")

    def inbound_arcs(self, transition: Transition) -> List[Arc]:
        return [a for a in self.arcs.values() if a.target is transition]

    def outbound_arcs(self, transition: Transition) -> List[Arc]:
        return [a for a in self.arcs.values() if a.source is transition]

    def arcs_of(self, node: Union[Place, Transition]) -> List[Arc]:
        return [a for a in self.arcs.values() if a.source is node or a.target is node]

    # ---------------------------------------------------------------------------
    # Marking access
    # ---------------------------------------------------------------------------
    def set_tokens(self, place: Place, counts: Mapping[str, int]):
        """Overwrite the counts of ``place``, then refresh the cached enabled flags."""
        self.get_place(place.id)
        for token_id in counts:
            self.get_token(token_id)
        self.marking.set_tokens(place.id, counts)
        self.mark_enabled_transitions()

    def get_token_count(self, place: Place, token_id: str) -> int:
        return self.marking.get_count(place.id, token_id)

    # ---------------------------------------------------------------------------
    # Incidence matrices
    # ---------------------------------------------------------------------------
    def get_enabling_degree(self, transition: Transition) -> int:
        return enabling_degree(self, transition, self.parameters["zero_weight_degree"])

    def get_backwards_incidence_matrix(self, token_id: str) -> IncidenceMatrix:
        return build_backwards(self, token_id)

    def get_forwards_incidence_matrix(self, token_id: str) -> IncidenceMatrix:
        return build_forwards(self, token_id)

    # ---------------------------------------------------------------------------
    # Enabling
    # ---------------------------------------------------------------------------
    def is_enabled(self, transition: Transition) -> bool:
        for arc in self.inbound_arcs(transition) + self.outbound_arcs(transition):
            if not can_fire(self, arc):
                return False
        return True

    def get_enabled_transitions(self) -> List[Transition]:
        """
        Transitions that may fire now. Enabled immediate transitions pre-empt timed ones, and
        among immediate transitions only those with the highest priority are kept.
        """
        enabled = [t for t in self.transitions.values() if self.is_enabled(t)]
        has_immediate = any(not t.timed for t in enabled)
        if not has_immediate:
            return enabled

        max_priority = max([0] + [t.priority for t in enabled if not t.timed])
        return [t for t in enabled if not t.timed and t.priority >= max_priority]

    def mark_enabled_transitions(self):
        enabled = {t.id for t in self.get_enabled_transitions()}
        for transition in self.transitions.values():
            if transition.id in enabled:
                transition.enable()
            else:
                transition.disable()

    # ---------------------------------------------------------------------------
    # Firing
    # ---------------------------------------------------------------------------
    def _stage(self, transition: Transition, direction: int) -> Dict[Tuple[str, str], int]:
        """
        Compute the new counts a firing leaves behind without touching the marking.
        ``direction`` is +1 for a forward firing and -1 for a backward one.
        """
        staged: Dict[Tuple[str, str], int] = {}
        backwards: Dict[str, IncidenceMatrix] = {}
        forwards: Dict[str, IncidenceMatrix] = {}

        for arc in self.inbound_arcs(transition):
            # inhibitor arcs test the marking but never consume
            if arc.type is not ArcType.NORMAL:
                continue
            place = arc.source
            for token_id in arc.token_weights:
                if token_id not in backwards:
                    backwards[token_id] = self.get_backwards_incidence_matrix(token_id)
                key = (place.id, token_id)
                current = staged.get(key, self.get_token_count(place, token_id))
                staged[key] = current - direction * backwards[token_id].get(place, transition)

        for arc in self.outbound_arcs(transition):
            place = arc.target
            for token_id in arc.token_weights:
                if token_id not in forwards:
                    forwards[token_id] = self.get_forwards_incidence_matrix(token_id)
                key = (place.id, token_id)
                current = staged.get(key, self.get_token_count(place, token_id))
                staged[key] = current + direction * forwards[token_id].get(place, transition)

        return staged

    def fire_transition(self, transition: Transition) -> Dict[Tuple[str, str], int]:
        """
        Fire ``transition`` once. Counts are computed against the marking before the firing and
        committed together. A transition whose cached flag says disabled leaves the marking
        untouched; the cached flags are recomputed either way.

        The flags are refreshed by firing and by ``set_tokens``. After adding or removing
        components, call ``mark_enabled_transitions`` before firing.

        Returns the committed change per (place id, token id), empty when nothing fired.
        """
        staged: Dict[Tuple[str, str], int] = {}
        if transition.enabled:
            staged = self._stage(transition, +1)
        else:
            logger.warning("Transition '%s' is not enabled, marking left unchanged", transition.id)

        deltas = {key: count - self.marking.get_count(*key) for key, count in staged.items()}
        self.marking.apply(staged)
        logger.debug("Fired '%s': %s", transition.id, staged)
        self.mark_enabled_transitions()
        return {key: delta for key, delta in deltas.items() if delta}

    def revert_firing(self, deltas: Mapping[Tuple[str, str], int]):
        """
        Commit the exact inverse of the changes returned by ``fire_transition``. Unlike
        ``fire_transition_backwards`` nothing is re-evaluated, so infinite-server and
        marking-dependent firings are undone exactly.
        """
        staged = {key: self.marking.get_count(*key) - delta for key, delta in deltas.items()}
        self.marking.apply(staged)
        logger.debug("Reverted firing: %s", staged)
        self.mark_enabled_transitions()

    def fire_transition_backwards(self, transition: Transition):
        """
        Undo one firing of ``transition``: inbound places get their consumed tokens back and
        outbound places lose the produced ones.
        """
        staged = self._stage(transition, -1)
        self.marking.apply(staged)
        logger.debug("Fired '%s' backwards: %s", transition.id, staged)
        self.mark_enabled_transitions()

    def get_random_transition(self) -> Transition:
        """
        Pick one of the enabled transitions at random.

        With ``random_selection="legacy"`` a drawn index ``i`` selects element ``max(i - 1, 0)``,
        so the first transition is twice as likely and the last one is never picked when more
        than one is enabled. ``"uniform"`` selects element ``i``.
        """
        enabled = self.get_enabled_transitions()
        if not enabled:
            raise EmptyEnabledSetError("Error - no transitions to fire!")

        index = self.random.randrange(len(enabled))
        if self.parameters["random_selection"] == RANDOM_SELECTION_LEGACY:
            index = max(index - 1, 0)
        return enabled[index]

    def __repr__(self):
        tokens_str = "\n    ".join(repr(t) for t in self.tokens.values())
        places_str = "\n    ".join(repr(p) for p in self.places.values())
        transitions_str = "\n    ".join(repr(t) for t in self.transitions.values())
        arcs_str = "\n    ".join(repr(a) for a in self.arcs.values())
        return (f"PetriNet('{self.name}',\n  Tokens:\n    {tokens_str}\n\n"
                f"  Places:\n    {places_str}\n\n"
                f"  Transitions:\n    {transitions_str}\n\n"
                f"  Arcs:\n    {arcs_str}\n)")
