# domain/errors.py
from __future__ import annotations

from typing import Iterable


class SchedulingError(Exception):
    pass


class ValidationError(SchedulingError):
    pass


class NotFoundError(SchedulingError):
    pass


class BracketIntegrityError(SchedulingError):
    pass


class FeatureDisabledError(SchedulingError):
    pass


class StateConflictError(SchedulingError):
    """
    Raised when an operation is attempted in the wrong lifecycle state.
    `required` names the state(s) the operation needs.
    """

    def __init__(self, message: str, *, required: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.required = tuple(str(getattr(r, "value", r)) for r in required)
