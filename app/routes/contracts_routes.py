"""
Contract routes.

This module defines the API endpoints for creating, listing and deleting
service contracts, and for the dashboard views built on top of the
listing: the alert subset, the expired subset, the per-category counts
and the aggregate dashboard.

All endpoints act on behalf of the principal resolved from the bearer
token (`app.core.security.get_principal`). Anonymous requests receive
empty results.

Domain errors raised by the service layer are translated into HTTP
responses by the exception handlers registered in `app.main`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query

from app.core.security import PrincipalContext, get_principal
from app.db.client import get_contract_store
from app.db.contract_store import ContractStore
from app.models.contract import Category
from app.schemas.contract import (
    CategoryViewResponse,
    ContractCreate,
    ContractResponse,
    CountsResponse,
    DashboardResponse,
    to_responses,
)
from app.schemas.interaction import InteractionOutcomeResponse
from app.services import contracts_service
from app.services.interaction_service import ContractInteractionMachine, InteractionRegistry, get_interaction_registry

router = APIRouter()


@router.post("", status_code=201, response_model=Optional[ContractResponse])
async def create_contract_route(
    data: ContractCreate,
    default_category: Category = Query(Category.POOL_SERVICE),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """
    Create a new contract.

    Args:
        data (ContractCreate): Raw form values.
        default_category (Category): Category used when the body omits one
            (the category of the view the contract is added from).

    Returns:
        ContractResponse | None: The stored contract (None when anonymous).

    Raises:
        HTTPException: 422 when a field is rejected.

    Example:
        >>> POST /contracts
        {
            "name": "João Silva",
            "contact": "912345678",
            "expires_at": "2026-11-30",
            "category": "Piscinas"
        }
    """

    record = await contracts_service.create_contract(
        ctx, store, data.name, data.contact, data.expires_at, data.category, default_category
    )
    return ContractResponse.from_record(record) if record is not None else None


@router.get("", response_model=List[ContractResponse])
async def list_contracts(
    category: Optional[Category] = None,
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """
    List the principal's contracts ordered by expiration date.

    Example:
        >>> GET /contracts?category=Jardins
    """

    return to_responses(await contracts_service.list_for_owner(ctx, store, category))


@router.get("/alerts", response_model=List[ContractResponse])
async def list_alerts(
    category: Optional[Category] = None,
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """Contracts expiring in the next 0 to 5 days, soonest first."""
    listing = await contracts_service.list_for_owner(ctx, store, category)
    return to_responses(contracts_service.alert_subset(listing))


@router.get("/expired", response_model=List[ContractResponse])
async def list_expired(
    category: Optional[Category] = None,
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """Contracts whose expiration date has passed."""
    listing = await contracts_service.list_for_owner(ctx, store, category)
    return to_responses(contracts_service.expired_subset(listing))


@router.get("/counts", response_model=CountsResponse)
async def get_counts(
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """Number of contracts per category and number of expired contracts."""
    return CountsResponse.from_counts(await contracts_service.aggregate_counts(ctx, store))


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """Aggregate dashboard: counts plus the contracts expiring soon."""
    return DashboardResponse.from_dashboard(await contracts_service.dashboard(ctx, store))


@router.get("/by-category/{category}", response_model=CategoryViewResponse)
async def get_category_view(
    category: Category,
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """
    Category page: every contract of the category (expired included) and its alerts.

    Example:
        >>> GET /contracts/by-category/Piscinas
    """

    return CategoryViewResponse.from_view(await contracts_service.category_view(ctx, store, category))


@router.get("/{record_id}", response_model=ContractResponse)
async def get_contract_route(
    record_id: str,
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
):
    """
    Retrieve one contract.

    Raises:
        HTTPException: 404 if the principal owns no such contract.
    """

    return ContractResponse.from_record(await contracts_service.get_contract(ctx, store, record_id))


@router.delete("/{record_id}", response_model=InteractionOutcomeResponse)
async def delete_contract_route(
    record_id: str,
    confirm: bool = Query(False, description="Explicit confirmation of the irreversible delete"),
    category: Optional[Category] = None,
    session_id: str = Header("default", alias="X-Session-Id"),
    ctx: PrincipalContext = Depends(get_principal),
    store: ContractStore = Depends(get_contract_store),
    registry: InteractionRegistry = Depends(get_interaction_registry),
):
    """
    Delete a contract permanently.

    Without `confirm=true` nothing is deleted. A pending edit or renewal
    on the deleted contract is discarded.

    Returns:
        InteractionOutcomeResponse: Whether the delete happened and the refreshed listing.

    Raises:
        HTTPException: 404 if the principal owns no such contract.

    Example:
        >>> DELETE /contracts/6650c0ffee0ddba11ad5eed1?confirm=true
    """

    interactions = registry.lookup(ctx.principal_id, session_id) if ctx.is_authenticated else None
    machine = ContractInteractionMachine(
        ctx, store, confirm=lambda message: confirm, interactions=interactions, category=category
    )
    outcome = await machine.remove(record_id)
    if ctx.is_authenticated:
        registry.release_if_idle(ctx.principal_id, session_id)
    return InteractionOutcomeResponse.from_outcome(outcome)
