"""
Error types raised by the catalog, the scoring engine and the result store.
"""

from typing import Optional


class BedsideScalesError(Exception):
    """Base class for all errors raised by this package."""


class DefinitionError(BedsideScalesError):
    """A scale definition is malformed. Raised while loading the catalog."""

    def __init__(self, message: str, scale_id: Optional[str] = None):
        self.scale_id = scale_id
        if scale_id:
            message = f"Scale '{scale_id}': {message}"
        super().__init__(message)


class ScaleNotFoundError(BedsideScalesError, KeyError):
    """No scale with the requested id exists in the catalog."""

    def __init__(self, scale_id: str):
        self.scale_id = scale_id
        super().__init__(scale_id)

    def __str__(self):
        return f"Unknown scale: {self.scale_id}"


class PreconditionViolation(BedsideScalesError):
    """A scale instance does not hold a valid value for every parameter.

    This is a caller bug, never a user error: the form layer always holds a
    value drawn from the visible options.
    """


class PersistenceFailure(BedsideScalesError):
    """The result store could not complete a write."""
