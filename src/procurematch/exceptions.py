"""
Exception hierarchy for procurematch.

An invoice without a purchase order or goods received note is not an error:
the matcher reports it as a ``not-matched`` result.
"""

from __future__ import annotations


class ProcureMatchError(Exception):
    """Base class for all procurematch errors."""


class ConfigurationError(ProcureMatchError, ValueError):
    """Raised when a matching configuration is invalid."""


class InvalidTransitionError(ProcureMatchError):
    """Raised when approving or rejecting a result already in a terminal state."""


class DocumentNotFoundError(ProcureMatchError, KeyError):
    """Raised when a document store has no record for the requested id."""

    def __str__(self) -> str:
        return Exception.__str__(self)
