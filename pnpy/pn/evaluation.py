import math
from numbers import Number
from typing import Any, Dict, Optional

from pnpy.pn.exceptions import EvaluationError
from pnpy.pn.marking import MarkingSnapshot


# -----------------------------------------------------------------------------------
# EvaluationContext
# -----------------------------------------------------------------------------------
class EvaluationContext:
    """
    Default expression evaluator. Weight and rate expressions are Python expressions evaluated
    against a marking snapshot. Inside an expression:

    - a place id that is a valid identifier evaluates to the total number of tokens in that place;
    - ``tokens(place)`` is the same total, ``tokens(place, token)`` the count of one token colour;
    - ``floor``, ``ceil``, ``min``, ``max`` and ``abs`` are available, plus anything defined in ``user_code``.
    """

    def __init__(self, user_code: Optional[str] = None):
        self.env: Dict[str, Any] = {
            "floor": math.floor,
            "ceil": math.ceil,
            "min": min,
            "max": max,
            "abs": abs,
        }
        if user_code is not None:
            exec(user_code, self.env)
            self.env["__original_user_code__"] = user_code

    @property
    def user_code(self) -> Optional[str]:
        return self.env.get("__original_user_code__")

    def evaluate(self, expression: str, snapshot: MarkingSnapshot) -> float:
        namespace = self._namespace(snapshot)
        try:
            value = eval(expression, self.env, namespace)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(expression, f"{type(e).__name__}: {e}") from e

        if isinstance(value, bool) or not isinstance(value, Number):
            raise EvaluationError(expression, f"result {value!r} is not a number")
        return float(value)

    def _namespace(self, snapshot: MarkingSnapshot) -> Dict[str, Any]:
        def tokens(place_id: str, token_id: Optional[str] = None) -> int:
            if place_id not in snapshot:
                raise EvaluationError(f"tokens({place_id!r})", f"unknown place '{place_id}'")
            counts = snapshot[place_id]
            if token_id is None:
                return sum(counts.values())
            return counts.get(token_id, 0)

        namespace: Dict[str, Any] = {"tokens": tokens}
        for place_id, counts in snapshot.items():
            if place_id.isidentifier():
                namespace[place_id] = sum(counts.values())
        return namespace
