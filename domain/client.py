"""
Domain: Client (buyer) directory entries.

Clients are created explicitly, or implicitly when a sale names an unknown
buyer. Identity is the normalized name: two clients whose names are equal
after trimming and case-folding are duplicates. The stored name keeps the
casing it was entered with; normalization is for comparison only.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional
from uuid import UUID

CONTACT_FIELDS: tuple[str, ...] = ("email", "phone", "address")


def normalize_name(name: Optional[str]) -> str:
    """Comparison key for client and buyer names."""

    if not name:
        return ""
    return name.strip().casefold()


@dataclass(frozen=True, slots=True)
class Client:
    """
    Buyer directory entry.

    Contact fields are optional; None and "" both mean "not set".
    """

    client_id: Optional[UUID]
    name: str

    # Optional contact information
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("name must not be empty")

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    def matches(self, buyer_name: Optional[str]) -> bool:
        """True if buyer_name refers to this client."""

        key = normalize_name(buyer_name)
        return bool(key) and key == self.normalized_name

    def missing_contact_fields(self) -> list[str]:
        return [f for f in CONTACT_FIELDS if not getattr(self, f)]

    def with_id(self, client_id: UUID) -> "Client":
        return replace(self, client_id=client_id)
