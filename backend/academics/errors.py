"""
Error taxonomy for the academics context.

Why:
    Services raise stdlib-compatible exceptions carrying a short snake_case
    code (e.g. ``NotFoundError("unit_not_found")``) so web adapters can map
    them to status codes without parsing human-readable messages.

Mapping (see routes/academics.py):
    NotFoundError -> 404, ConflictError -> 409, ValidationError -> 400.
"""
from __future__ import annotations


class AcademicsError(Exception):
    """Base class for domain errors raised by academics services."""

    @property
    def code(self) -> str:
        return str(self.args[0]) if self.args else self.__class__.__name__


class NotFoundError(AcademicsError, LookupError):
    """A referenced entity (unit, course, teacher, submission, ...) is absent."""


class ConflictError(AcademicsError, ValueError):
    """A unique key (course code, unit code, teacher email) is already taken."""


class ValidationError(AcademicsError, ValueError):
    """Malformed input: missing field, grade out of range, bad week number."""


class StoreError(RuntimeError):
    """The record store failed to load or persist a collection."""


__all__ = [
    "AcademicsError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "StoreError",
]
