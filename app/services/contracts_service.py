"""
Contracts service.

This module implements the listing and alerting logic for service
contracts: it fetches an owner's records from the document store,
decorates them with the values derived from the current time (days
remaining, urgency, display index), orders them by expiration date and
extracts the "expiring soon" and "expired" subsets shown on the dashboards.

It also holds the create and delete operations that sit outside the
per-record interaction state machine.

Every operation receives the calling `PrincipalContext` explicitly. An
anonymous context is not an error: reads return empty results and writes
do nothing.
"""

import logging
from datetime import datetime
from functools import cmp_to_key
from typing import Callable, Iterable, List, Optional

from app.core.config import ALERT_WINDOW_DAYS
from app.core.exceptions import RecordNotFoundError
from app.core.security import PrincipalContext
from app.db.contract_store import ContractStore
from app.models.contract import (
    AggregateCounts,
    Category,
    CategoryView,
    ContractRecord,
    Dashboard,
    DecoratedContract,
    urgency_for,
)
from app.services.validation_service import validate_create
from app.util.dates import days_until, now_local

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
"""Injected confirmation capability: receives a prompt, returns the user's answer."""


# ------------------------------------------------------------------------------
# Decoration and ordering
# ------------------------------------------------------------------------------

def _compare_expiration(a: DecoratedContract, b: DecoratedContract) -> int:
    # A pair involving a missing date compares equal, so undated records keep their place.
    if a.expires_at is None or b.expires_at is None:
        return 0
    return (a.expires_at > b.expires_at) - (a.expires_at < b.expires_at)


def decorate(records: Iterable[ContractRecord], now: Optional[datetime] = None) -> List[DecoratedContract]:
    """
    Attach derived values to records and order them by expiration date.

    Steps:
        1. compute `days_remaining` (None for a missing expiration) and `urgency`;
        2. stable ascending sort on `expires_at`;
        3. assign 1-based `display_index` following the sorted order.

    Args:
        records (Iterable[ContractRecord]): Records as fetched.
        now (datetime, optional): Reference instant. Defaults to `now_local()`.

    Returns:
        List[DecoratedContract]: New decorated records; the inputs are untouched.
    """

    now = now or now_local()
    decorated = []
    for record in records:
        days = days_until(record.expires_at, now)
        decorated.append(
            DecoratedContract(**record.model_dump(), days_remaining=days, urgency=urgency_for(days))
        )

    decorated.sort(key=cmp_to_key(_compare_expiration))
    for index, contract in enumerate(decorated, start=1):
        contract.display_index = index
    return decorated


def alert_subset(listing: Iterable[DecoratedContract]) -> List[DecoratedContract]:
    """
    Return the contracts expiring within the alert window (0 to 5 days).

    Ordered by days remaining, ties keeping their listing order.
    """

    alerts = [
        contract for contract in listing
        if contract.days_remaining is not None and 0 <= contract.days_remaining <= ALERT_WINDOW_DAYS
    ]
    return sorted(alerts, key=lambda contract: contract.days_remaining)


def expired_subset(listing: Iterable[DecoratedContract]) -> List[DecoratedContract]:
    """Return the contracts whose expiration has passed, in listing order."""
    return [
        contract for contract in listing
        if contract.days_remaining is not None and contract.days_remaining < 0
    ]


# ------------------------------------------------------------------------------
# Reads
# ------------------------------------------------------------------------------

async def _fetch(ctx: PrincipalContext, store: ContractStore, category: Optional[Category]) -> List[ContractRecord]:
    documents = await store.query_by_owner_and_category(
        ctx.principal_id, category.value if category is not None else None
    )
    return [ContractRecord.from_document(document) for document in documents]


async def list_for_owner(
    ctx: PrincipalContext,
    store: ContractStore,
    category: Optional[Category] = None,
    now: Optional[datetime] = None,
) -> List[DecoratedContract]:
    """
    Fetch, decorate and order the principal's contracts.

    Args:
        ctx (PrincipalContext): Calling principal.
        store (ContractStore): Document store.
        category (Category, optional): Restrict to one category.
        now (datetime, optional): Reference instant.

    Returns:
        List[DecoratedContract]: Sorted listing with display indices, or
        an empty list for an anonymous caller.

    Raises:
        PersistenceError: If the store query fails.
    """

    if not ctx.is_authenticated:
        logger.debug("Anonymous listing request ignored")
        return []
    return decorate(await _fetch(ctx, store, category), now)


async def aggregate_counts(
    ctx: PrincipalContext,
    store: ContractStore,
    now: Optional[datetime] = None,
) -> AggregateCounts:
    """
    Count contracts per category and expired contracts overall.

    Runs its own unfiltered fetch so it never depends on a category-scoped
    listing.
    """

    if not ctx.is_authenticated:
        logger.debug("Anonymous counts request ignored")
        return AggregateCounts()
    return _count(decorate(await _fetch(ctx, store, None), now))


def _count(listing: List[DecoratedContract]) -> AggregateCounts:
    return AggregateCounts(
        pool=sum(1 for contract in listing if contract.category is Category.POOL_SERVICE),
        garden=sum(1 for contract in listing if contract.category is Category.GARDEN_SERVICE),
        expired=len(expired_subset(listing)),
    )


async def dashboard(
    ctx: PrincipalContext,
    store: ContractStore,
    now: Optional[datetime] = None,
) -> Dashboard:
    """Aggregate dashboard: counts per category, expired count and the expiring-soon list."""
    if not ctx.is_authenticated:
        return Dashboard(counts=AggregateCounts(), expiring_soon=[])
    listing = decorate(await _fetch(ctx, store, None), now)
    return Dashboard(counts=_count(listing), expiring_soon=alert_subset(listing))


async def category_view(
    ctx: PrincipalContext,
    store: ContractStore,
    category: Category,
    now: Optional[datetime] = None,
) -> CategoryView:
    """Category-scoped view: every contract of the category plus its alert subset."""
    listing = await list_for_owner(ctx, store, category, now)
    return CategoryView(category=category, contracts=listing, alerts=alert_subset(listing))


# ------------------------------------------------------------------------------
# Writes
# ------------------------------------------------------------------------------

async def create_contract(
    ctx: PrincipalContext,
    store: ContractStore,
    name: Optional[str],
    contact: Optional[str],
    expires_at: Optional[str],
    category: Optional[str] = None,
    default_category: Category = Category.POOL_SERVICE,
    now: Optional[datetime] = None,
) -> Optional[ContractRecord]:
    """
    Validate and store a new contract.

    Args:
        ctx (PrincipalContext): Calling principal; becomes the owner.
        store (ContractStore): Document store.
        name (str): Client name.
        contact (str | None): Optional nine-digit contact.
        expires_at (str): Expiration date as `YYYY-MM-DD`.
        category (str, optional): Category label; `default_category` when omitted.
        default_category (Category): Category of the view the contract is added from.
        now (datetime, optional): Reference instant for the minimum date.

    Returns:
        ContractRecord | None: The stored record, or None for an anonymous caller.

    Raises:
        ValidationError: If a field is rejected; nothing is written.
        PersistenceError: If the store write fails.
    """

    if not ctx.is_authenticated:
        logger.debug("Anonymous create request ignored")
        return None

    fields = validate_create(name, contact, expires_at, category, default_category, now)
    record_id = await store.insert({
        "userId": ctx.principal_id,
        "nome": fields.name,
        "contacto": fields.contact,
        "categoria": fields.category.value,
        "dataExpiracao": fields.expires_at,
    })
    logger.info("Contract %s created for owner %s", record_id, ctx.principal_id)

    document = await store.get(record_id, ctx.principal_id)
    return ContractRecord.from_document(document)


async def get_contract(ctx: PrincipalContext, store: ContractStore, record_id: str) -> ContractRecord:
    """
    Fetch one of the principal's contracts.

    Raises:
        RecordNotFoundError: If it does not exist or belongs to someone else.
    """

    document = await store.get(record_id, ctx.principal_id) if ctx.is_authenticated else None
    if document is None:
        raise RecordNotFoundError(record_id)
    return ContractRecord.from_document(document)


async def remove_contract(
    ctx: PrincipalContext,
    store: ContractStore,
    record_id: str,
    confirm: Confirm,
) -> bool:
    """
    Permanently delete a contract after explicit confirmation.

    Args:
        ctx (PrincipalContext): Calling principal.
        store (ContractStore): Document store.
        record_id (str): Contract to delete.
        confirm (Confirm): Asked "Eliminar <nome>?"; a negative answer aborts.

    Returns:
        bool: True when the record was deleted; False when declined or anonymous.

    Raises:
        RecordNotFoundError: If the principal owns no such record.
        PersistenceError: If the store delete fails.
    """

    if not ctx.is_authenticated:
        logger.debug("Anonymous delete request ignored")
        return False

    record = await get_contract(ctx, store, record_id)
    if not confirm(f"Eliminar {record.name}?"):
        return False

    await store.delete(record_id, ctx.principal_id)
    logger.info("Contract %s deleted by owner %s", record_id, ctx.principal_id)
    return True
