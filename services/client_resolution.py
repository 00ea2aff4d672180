"""
Client resolution and de-duplication.

Handles:
- Looking up the client a free-text buyer name refers to (pure)
- Creating a client for an unknown buyer name (effectful, silent)
- Merging clients whose names differ only by casing/whitespace
- Re-pointing sale items at the surviving client after a merge

Identity is always the normalized name (trimmed, case-folded).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence

from domain.client import CONTACT_FIELDS, Client, normalize_name
from domain.exceptions import ResolutionAmbiguity, ValidationError
from domain.sale_item import SaleItem
from repositories.order_store import OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientResolution:
    """Outcome of resolving a buyer name: the client and whether it is new."""

    client: Client
    created: bool


@dataclass(frozen=True, slots=True)
class MergeResult:
    """
    Result of a duplicate merge pass.

    survivors: one client per normalized name, in first-seen order
    duplicates: the records that lost and should be deleted by the caller
    changed: survivors whose contact fields were filled from a duplicate
    """

    survivors: List[Client] = field(default_factory=list)
    duplicates: List[Client] = field(default_factory=list)
    changed: List[Client] = field(default_factory=list)

    @property
    def merged_count(self) -> int:
        return len(self.duplicates)


def find_client(
    buyer_name: Optional[str],
    clients: Iterable[Client],
    *,
    strict: bool = False,
) -> Optional[Client]:
    """
    Find the client a buyer name refers to.

    Returns the first client whose normalized name matches, or None. With
    strict=True, more than one match raises ResolutionAmbiguity instead.
    """

    key = normalize_name(buyer_name)
    if not key:
        return None

    matches = [c for c in clients if c.normalized_name == key]
    if not matches:
        return None
    if strict and len(matches) > 1:
        raise ResolutionAmbiguity(buyer_name or "", len(matches))
    return matches[0]


def create_client_if_absent(
    buyer_name: str,
    clients: Sequence[Client],
    store: OrderStore,
    owner_id: str,
) -> ClientResolution:
    """
    Resolve a buyer name, persisting a new name-only client when unknown.

    An existing client is returned unchanged; contact data is never
    overwritten from the sale path.

    Raises:
        ValidationError: If buyer_name is blank
        PersistenceFailure: If the new client cannot be stored
    """

    name = (buyer_name or "").strip()
    if not name:
        raise ValidationError("Buyer name must not be empty", field="buyer_name")

    existing = find_client(name, clients)
    if existing is not None:
        return ClientResolution(client=existing, created=False)

    created = store.upsert_client(Client(client_id=None, name=name), owner_id)
    logger.info(
        "Client auto-created from buyer name",
        extra={"client_id": str(created.client_id), "buyer_name": name},
    )
    return ClientResolution(client=created, created=True)


def resolve_or_create_client(
    buyer_name: str,
    clients: Sequence[Client],
    store: OrderStore,
    owner_id: str,
) -> Client:
    return create_client_if_absent(buyer_name, clients, store, owner_id).client


def merge_duplicates(clients: Iterable[Client]) -> MergeResult:
    """
    Collapse clients sharing a normalized name into one survivor per group.

    The first record of each group survives. Each empty contact field on the
    survivor is filled from the first later record that has it; fields already
    set on the survivor are never overwritten.

    Idempotent: merging the survivors again changes nothing.
    """

    groups: Dict[str, List[Client]] = {}
    for client in clients:
        groups.setdefault(client.normalized_name, []).append(client)

    survivors: List[Client] = []
    duplicates: List[Client] = []
    changed: List[Client] = []

    for group in groups.values():
        survivor = group[0]
        if len(group) == 1:
            survivors.append(survivor)
            continue

        filled: Dict[str, str] = {}
        for other in group[1:]:
            for name in survivor.missing_contact_fields():
                value = getattr(other, name)
                if value and name not in filled:
                    filled[name] = value

        merged = replace(survivor, **filled) if filled else survivor
        survivors.append(merged)
        duplicates.extend(group[1:])
        if filled:
            changed.append(merged)

    if duplicates:
        logger.info(
            "Merged duplicate clients",
            extra={"duplicates": len(duplicates), "survivors": len(survivors)},
        )

    return MergeResult(survivors=survivors, duplicates=duplicates, changed=changed)


def relink_sale_items(
    sale_items: Iterable[SaleItem],
    survivors: Sequence[Client],
) -> List[SaleItem]:
    """
    Point sale items at surviving clients after a merge.

    An item is relinked when its buyer name matches a survivor and its
    client_id is missing or refers to a client that no longer survives.
    Only the changed items are returned.
    """

    by_name = {c.normalized_name: c for c in survivors}
    surviving_ids = {c.client_id for c in survivors}

    relinked: List[SaleItem] = []
    for item in sale_items:
        target = by_name.get(normalize_name(item.buyer_name))
        if target is None:
            continue
        if item.client_id is not None and item.client_id in surviving_ids:
            continue
        relinked.append(item.with_client(target.client_id))
    return relinked


def sales_for_client(client: Client, sale_items: Iterable[SaleItem]) -> List[SaleItem]:
    """Sale items bound to the client by id, or by buyer name as a fallback."""

    return [
        item
        for item in sale_items
        if (item.client_id is not None and item.client_id == client.client_id)
        or client.matches(item.buyer_name)
    ]


__all__ = [
    "ClientResolution",
    "MergeResult",
    "create_client_if_absent",
    "find_client",
    "merge_duplicates",
    "relink_sale_items",
    "resolve_or_create_client",
    "sales_for_client",
]
