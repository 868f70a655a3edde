"""
Interaction routes.

Endpoints driving the per-contract edit and renewal workflow. Each
browser session (identified by the `X-Session-Id` header) has its own
pending action; opening an action discards any other one of the same
session.

Renewals require an explicit `confirm: true` in the request body; without
it the pending action stays open and nothing is written.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query

from app.core.security import PrincipalContext, get_principal
from app.db.client import get_contract_store
from app.db.contract_store import ContractStore
from app.models.contract import Category
from app.models.interaction import IDLE
from app.schemas.interaction import (
    EditDraftIn,
    InteractionOutcomeResponse,
    InteractionStateResponse,
    ManualRenewalConfirm,
    QuickRenewalConfirm,
)
from app.services.contracts_service import get_contract
from app.services.interaction_service import (
    ContractInteractionMachine,
    InteractionRegistry,
    get_interaction_registry,
)

router = APIRouter()


def _machine(
    ctx: PrincipalContext,
    store: ContractStore,
    registry: InteractionRegistry,
    session_id: str,
    confirm: bool = False,
    category: Optional[Category] = None,
    create: bool = False,
) -> ContractInteractionMachine:
    # Only opening an action registers a session; every other call reads it.
    interactions = None
    if ctx.is_authenticated:
        if create:
            interactions = registry.for_session(ctx.principal_id, session_id)
        else:
            interactions = registry.lookup(ctx.principal_id, session_id)
    return ContractInteractionMachine(
        ctx, store, confirm=lambda message: confirm, interactions=interactions, category=category
    )


def _release(ctx: PrincipalContext, registry: InteractionRegistry, session_id: str) -> None:
    if ctx.is_authenticated:
        registry.release_if_idle(ctx.principal_id, session_id)


@router.get("", response_model=InteractionStateResponse)
async def get_state(
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """Return the pending action of this session (`idle` when none)."""
    return InteractionStateResponse.from_state(_machine(ctx, store, registry, session_id).state)


@router.post("/{record_id}/edit", response_model=InteractionStateResponse)
async def start_edit(
    record_id: str,
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """
    Open a full edit of a contract, pre-filled with its current values.

    Raises:
        HTTPException: 404 if the principal owns no such contract.
    """

    if not ctx.is_authenticated:
        return InteractionStateResponse.from_state(IDLE)
    record = await get_contract(ctx, store, record_id)
    machine = _machine(ctx, store, registry, session_id, create=True)
    return InteractionStateResponse.from_state(machine.start_edit(record))


@router.post("/{record_id}/manual-renewal", response_model=InteractionStateResponse)
async def start_manual_renewal(
    record_id: str,
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """Open a renewal where the new expiration date is typed in."""
    if not ctx.is_authenticated:
        return InteractionStateResponse.from_state(IDLE)
    record = await get_contract(ctx, store, record_id)
    machine = _machine(ctx, store, registry, session_id, create=True)
    return InteractionStateResponse.from_state(machine.start_manual_renewal(record))


@router.post("/{record_id}/quick-renewal", response_model=InteractionStateResponse)
async def preview_quick_renewal(
    record_id: str,
    months: int = Query(6, description="6 (+6 meses) or 12 (+1 ano)"),
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """
    Preview the expiration a quick renewal would set (counted from today).

    Raises:
        HTTPException: 422 for an unsupported number of months, 404 for an unknown contract.

    Example:
        >>> POST /interactions/6650c0ffee0ddba11ad5eed1/quick-renewal?months=12
    """

    if not ctx.is_authenticated:
        return InteractionStateResponse.from_state(IDLE)
    record = await get_contract(ctx, store, record_id)
    machine = _machine(ctx, store, registry, session_id, create=True)
    try:
        state = machine.preview_quick_renewal(record, months)
    except ValueError as e:
        _release(ctx, registry, session_id)
        raise HTTPException(status_code=422, detail=str(e))
    return InteractionStateResponse.from_state(state)


@router.post("/edit/confirm", response_model=InteractionOutcomeResponse)
async def confirm_edit(
    draft: Optional[EditDraftIn] = Body(None),
    category: Optional[Category] = None,
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """
    Validate and save the pending edit.

    A rejected field keeps the edit open and returns the message in `error`.

    Raises:
        HTTPException: 409 if no edit is pending.
    """

    machine = _machine(ctx, store, registry, session_id, category=category)
    outcome = await machine.confirm_edit(draft.to_draft() if draft is not None else None)
    _release(ctx, registry, session_id)
    return InteractionOutcomeResponse.from_outcome(outcome)


@router.post("/manual-renewal/confirm", response_model=InteractionOutcomeResponse)
async def confirm_manual_renewal(
    data: ManualRenewalConfirm,
    category: Optional[Category] = None,
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """
    Save the pending manual renewal.

    An omitted `expires_at` keeps the drafted date; an empty one is rejected.

    Example:
        >>> POST /interactions/manual-renewal/confirm
        {"expires_at": "2027-06-30", "confirm": true}
    """

    machine = _machine(ctx, store, registry, session_id, confirm=data.confirm, category=category)
    outcome = await machine.confirm_manual_renewal(data.expires_at)
    _release(ctx, registry, session_id)
    return InteractionOutcomeResponse.from_outcome(outcome)


@router.post("/quick-renewal/confirm", response_model=InteractionOutcomeResponse)
async def confirm_quick_renewal(
    data: QuickRenewalConfirm,
    category: Optional[Category] = None,
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """Save the previewed quick renewal."""
    machine = _machine(ctx, store, registry, session_id, confirm=data.confirm, category=category)
    outcome = await machine.confirm_quick_renewal()
    _release(ctx, registry, session_id)
    return InteractionOutcomeResponse.from_outcome(outcome)


@router.post("/cancel", response_model=InteractionStateResponse)
async def cancel(
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """Discard the pending action of this session."""
    state = _machine(ctx, store, registry, session_id).cancel()
    _release(ctx, registry, session_id)
    return InteractionStateResponse.from_state(state)
