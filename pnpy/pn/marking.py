import logging
from typing import Dict, Mapping, Tuple

from frozendict import frozendict

from pnpy.pn.exceptions import MarkingError

logger = logging.getLogger(__name__)

MarkingSnapshot = Mapping[str, Mapping[str, int]]


# -----------------------------------------------------------------------------------
# Marking
# -----------------------------------------------------------------------------------
class Marking:
    """
    Per-place, per-token counts. Places and tokens are addressed by id; an absent entry reads as 0.
    Counts are never negative: every write is checked first.
    """

    def __init__(self):
        self._marking: Dict[str, Dict[str, int]] = {}

    def get_count(self, place_id: str, token_id: str) -> int:
        return self._marking.get(place_id, {}).get(token_id, 0)

    def get_counts(self, place_id: str) -> Dict[str, int]:
        return dict(self._marking.get(place_id, {}))

    def total(self, place_id: str) -> int:
        return sum(self._marking.get(place_id, {}).values())

    def set_count(self, place_id: str, token_id: str, count: int):
        self._check(place_id, token_id, count)
        self._marking.setdefault(place_id, {})[token_id] = int(count)

    def set_tokens(self, place_id: str, counts: Mapping[str, int]):
        for token_id, count in counts.items():
            self._check(place_id, token_id, count)
        self._marking[place_id] = {token_id: int(count) for token_id, count in counts.items()}

    def apply(self, staged: Mapping[Tuple[str, str], int]):
        """
        Write every staged (place id, token id) -> count in one pass. Nothing is written
        if any staged count is negative.
        """
        for (place_id, token_id), count in staged.items():
            self._check(place_id, token_id, count)
        for (place_id, token_id), count in staged.items():
            self._marking.setdefault(place_id, {})[token_id] = int(count)
        logger.debug("Committed %d staged count(s)", len(staged))

    def remove_place(self, place_id: str):
        self._marking.pop(place_id, None)

    def remove_token(self, token_id: str):
        for counts in self._marking.values():
            counts.pop(token_id, None)

    def places(self):
        return list(self._marking.keys())

    def snapshot(self) -> MarkingSnapshot:
        return frozendict({place_id: frozendict(counts) for place_id, counts in self._marking.items()})

    def copy(self) -> "Marking":
        new_marking = Marking()
        for place_id, counts in self._marking.items():
            new_marking._marking[place_id] = dict(counts)
        return new_marking

    @staticmethod
    def _check(place_id: str, token_id: str, count: int):
        if count < 0:
            raise MarkingError(
                f"Token count for '{token_id}' in place '{place_id}' cannot become negative ({count}).")

    def __eq__(self, other):
        if not isinstance(other, Marking):
            return NotImplemented
        return self._non_zero() == other._non_zero()

    def _non_zero(self):
        return {place_id: {t: c for t, c in counts.items() if c}
                for place_id, counts in self._marking.items()
                if any(counts.values())}

    def __repr__(self):
        lines = ["Marking:"]
        for place_id, counts in self._marking.items():
            items_str = ", ".join(f"{token_id}={count}" for token_id, count in counts.items())
            lines.append(f"  {place_id}: {{{items_str}}}")
        if len(lines) == 1:
            lines.append("  (empty)")
        return "\n".join(lines)
