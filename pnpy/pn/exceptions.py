class PetriNetError(Exception):
    """
    Base class for every error raised by the Petri net engine.
    """


class ValidationError(PetriNetError):
    """
    A component (or an imported document) was rejected at creation time, e.g. because
    one of its weight or rate expressions cannot be evaluated.
    """


class NotFoundError(PetriNetError):
    """
    A token, place, transition, arc or rate parameter was looked up by an id that is not registered.
    """


class EmptyEnabledSetError(PetriNetError):
    """
    A transition was requested from an empty enabled set.
    """


class EvaluationError(PetriNetError):
    """
    The expression evaluator failed while computing a weight or a rate.
    """

    def __init__(self, expression: str, message: str):
        super().__init__(f"Cannot evaluate '{expression}': {message}")
        self.expression = expression


class MarkingError(PetriNetError, ValueError):
    """
    A marking update would leave a negative token count.
    """
