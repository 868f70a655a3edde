from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.models.contract import AggregateCounts, Category, CategoryView, ContractRecord, Dashboard, DecoratedContract, Urgency


class ContractCreate(BaseModel):
    # Raw form values; field rules are enforced by the validation service.
    name: Optional[str] = None
    contact: Optional[str] = None
    expires_at: Optional[str] = None
    category: Optional[str] = None


class ContractResponse(BaseModel):
    id: str
    name: str
    contact: Optional[str] = None
    category: Optional[Category] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    days_remaining: Optional[int] = None
    urgency: Optional[Urgency] = None
    display_index: Optional[int] = None
    status_label: Optional[str] = None
    alert_identifier: Optional[str] = None

    @classmethod
    def from_record(cls, record: ContractRecord) -> "ContractResponse":
        data = {
            "id": record.id,
            "name": record.name,
            "contact": record.contact,
            "category": record.category,
            "expires_at": record.expires_at,
            "created_at": record.created_at,
        }
        if isinstance(record, DecoratedContract):
            data.update(
                days_remaining=record.days_remaining,
                urgency=record.urgency,
                display_index=record.display_index,
                status_label=record.status_label,
                alert_identifier=record.alert_identifier,
            )
        return cls(**data)


def to_responses(contracts: List[ContractRecord]) -> List[ContractResponse]:
    return [ContractResponse.from_record(contract) for contract in contracts]


class CountsResponse(BaseModel):
    pool: int
    garden: int
    expired: int
    total: int

    @classmethod
    def from_counts(cls, counts: AggregateCounts) -> "CountsResponse":
        return cls(pool=counts.pool, garden=counts.garden, expired=counts.expired, total=counts.total)


class DashboardResponse(BaseModel):
    counts: CountsResponse
    expiring_soon: List[ContractResponse]

    @classmethod
    def from_dashboard(cls, view: Dashboard) -> "DashboardResponse":
        return cls(counts=CountsResponse.from_counts(view.counts), expiring_soon=to_responses(view.expiring_soon))


class CategoryViewResponse(BaseModel):
    category: Category
    contracts: List[ContractResponse]
    alerts: List[ContractResponse]

    @classmethod
    def from_view(cls, view: CategoryView) -> "CategoryViewResponse":
        return cls(category=view.category, contracts=to_responses(view.contracts), alerts=to_responses(view.alerts))
