from __future__ import annotations


class ProgressError(Exception):
    """Base class for progress operation failures."""


class NotFoundError(ProgressError):
    """A referenced user, course, module, lesson or entry does not exist."""

    def __init__(self, kind: str, ident: str) -> None:
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} not found: {ident}")


class ProgressValidationError(ProgressError, ValueError):
    """Input rejected before any persistence attempt."""
