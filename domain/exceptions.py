"""
Domain error taxonomy.

- ValidationError: a raw record fails required-field or coercion rules.
- ResolutionAmbiguity: a buyer name matches more than one client (strict lookups only).
- PersistenceFailure: the backing store rejected a read or write.
"""

from __future__ import annotations

from typing import Optional


class ValidationError(ValueError):
    """Raised when a record cannot be normalized into a valid entity."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ResolutionAmbiguity(LookupError):
    """Raised when a normalized buyer name matches several clients."""

    def __init__(self, buyer_name: str, candidates: int):
        self.buyer_name = buyer_name
        self.candidates = candidates
        super().__init__(
            f"Buyer name {buyer_name!r} matches {candidates} clients"
        )


class PersistenceFailure(RuntimeError):
    """Raised when the order store fails to read or write a record."""
    pass


__all__ = ["ValidationError", "ResolutionAmbiguity", "PersistenceFailure"]
