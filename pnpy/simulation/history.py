import logging
from typing import Dict, List, Tuple

from pnpy.pn.components import Transition
from pnpy.pn.exceptions import EmptyEnabledSetError
from pnpy.pn.pn_imp import PetriNet

logger = logging.getLogger(__name__)


class AnimationHistory:
    """
    Sequence of fired transitions with a cursor, so a simulation can be stepped backwards
    (undo, by reverting the changes each firing committed) and forwards again (redo).

    Firing a new transition after stepping back discards the steps that were undone.
    """

    def __init__(self, net: PetriNet):
        self.net = net
        self.steps: List[Transition] = []
        # committed changes of each step, undone exactly by step_backward
        self.deltas: List[Dict[Tuple[str, str], int]] = []
        # number of steps currently applied to the net
        self.position = 0

    @property
    def can_step_backward(self) -> bool:
        return self.position > 0

    @property
    def can_step_forward(self) -> bool:
        return self.position < len(self.steps)

    def fire(self, transition: Transition) -> bool:
        """
        Fire ``transition`` and record it. Returns False (and records nothing) when the
        transition is not enabled, in which case the marking is unchanged.
        """
        was_enabled = transition.enabled
        deltas = self.net.fire_transition(transition)
        if not was_enabled:
            return False
        del self.steps[self.position:]
        del self.deltas[self.position:]
        self.steps.append(transition)
        self.deltas.append(deltas)
        self.position += 1
        return True

    def step_backward(self) -> Transition:
        if not self.can_step_backward:
            raise IndexError("No step to undo.")
        transition = self.steps[self.position - 1]
        self.net.revert_firing(self.deltas[self.position - 1])
        self.position -= 1
        return transition

    def step_forward(self) -> Transition:
        if not self.can_step_forward:
            raise IndexError("No step to redo.")
        transition = self.steps[self.position]
        if not transition.enabled:
            raise RuntimeError(f"Transition {transition.id} is no longer enabled, cannot redo.")
        self.deltas[self.position] = self.net.fire_transition(transition)
        self.position += 1
        return transition

    def random_fire(self, steps: int) -> List[Transition]:
        """
        Fire up to ``steps`` randomly chosen enabled transitions. Stops early when nothing is enabled.
        """
        fired = []
        self.net.mark_enabled_transitions()
        for _ in range(steps):
            try:
                transition = self.net.get_random_transition()
            except EmptyEnabledSetError:
                logger.warning("No enabled transitions after %d step(s), stopping", len(fired))
                break
            self.fire(transition)
            fired.append(transition)
        return fired

    def clear(self):
        self.steps = []
        self.deltas = []
        self.position = 0
