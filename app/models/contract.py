"""
Contract model definition.

This module defines the `ContractRecord` model, which represents a service
contract (pool or garden maintenance client) that expires on a known date,
together with the values derived from it at read time: days remaining,
urgency classification and display position.

Stored documents keep the Portuguese field names of the `contacts` collection
(`userId`, `nome`, `contacto`, `categoria`, `dataExpiracao`, `createdAt`);
the model exposes them under English attribute names through aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import ALERT_WINDOW_DAYS, CRITICAL_WINDOW_DAYS
from app.util.dates import coerce_instant


class Category(str, Enum):
    """Fixed set of service categories. Values are the stored labels."""

    POOL_SERVICE = "Piscinas"
    GARDEN_SERVICE = "Jardins"


class Urgency(str, Enum):
    """Proximity of a contract to its expiration date."""

    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"
    UNKNOWN = "unknown"


def urgency_for(days_remaining: Optional[int]) -> Urgency:
    """
    Classify a days-remaining value.

    Boundaries: < 0 expired, 0..2 critical, 3..5 warning, > 5 normal,
    None (missing or malformed expiration) unknown.
    """

    if days_remaining is None:
        return Urgency.UNKNOWN
    if days_remaining < 0:
        return Urgency.EXPIRED
    if days_remaining <= CRITICAL_WINDOW_DAYS:
        return Urgency.CRITICAL
    if days_remaining <= ALERT_WINDOW_DAYS:
        return Urgency.WARNING
    return Urgency.NORMAL


class ContractRecord(BaseModel):
    """
    A tracked client contract owned by one authenticated principal.

    `id`, `owner_id` and `created_at` never change after creation. The
    expiration is only checked against "tomorrow" when written; a stored
    value may later fall into the past, which is what makes a contract
    expired.

    Example:
        >>> record = ContractRecord(
        ...     id="6650c0ffee",
        ...     userId="uid-1",
        ...     nome="João Silva",
        ...     contacto="912345678",
        ...     categoria="Piscinas",
        ...     dataExpiracao="2026-11-01T00:00:00+00:00",
        ... )
        >>> record.category
        <Category.POOL_SERVICE: 'Piscinas'>
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    """Identifier assigned by the document store."""

    owner_id: str = Field(alias="userId")
    """Identifier of the owning principal."""

    name: str = Field(alias="nome")
    """Client name."""

    contact: Optional[str] = Field(default=None, alias="contacto")
    """Nine-digit phone contact, or None."""

    category: Optional[Category] = Field(default=None, alias="categoria")
    """Service category. Older documents may not carry one."""

    expires_at: Optional[datetime] = Field(default=None, alias="dataExpiracao")
    """Expiration instant (UTC). None when missing or unparseable."""

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    """Creation instant (UTC)."""

    @field_validator("expires_at", "created_at", mode="before")
    @classmethod
    def _coerce_instant(cls, value: Any) -> Optional[datetime]:
        return coerce_instant(value)

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: Any) -> Optional[Category]:
        try:
            return Category(value)
        except ValueError:
            return None

    @classmethod
    def from_document(cls, document: dict) -> "ContractRecord":
        """Build a record from a raw store document (`_id` or `id` key)."""
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class DecoratedContract(ContractRecord):
    """
    A `ContractRecord` plus the values derived at listing time.

    Nothing here is persisted; it is recomputed on every fetch.
    """

    days_remaining: Optional[int] = None
    urgency: Urgency = Urgency.UNKNOWN
    display_index: int = 0

    @property
    def status_label(self) -> str:
        """Short remaining-time label shown next to the expiration date."""
        days = self.days_remaining
        if days is None:
            return "Data inválida"
        if days < 0:
            return "Expirado"
        if days == 0:
            return "Expira hoje"
        if days == 1:
            return "1 dia restante"
        return f"{days} dias restantes"

    @property
    def alert_identifier(self) -> str:
        """Label identifying the record in an alert list: `#<index> - <name> (<contact>)`."""
        return f"#{self.display_index} - {self.name} ({self.contact or '-'})"


class AggregateCounts(BaseModel):
    """Per-category totals and the global expired count for one owner."""

    pool: int = 0
    garden: int = 0
    expired: int = 0

    @property
    def total(self) -> int:
        return self.pool + self.garden


class Dashboard(BaseModel):
    """Aggregate view across every category: counts plus the contracts expiring soon."""

    counts: AggregateCounts
    expiring_soon: List[DecoratedContract]


class CategoryView(BaseModel):
    """Scoped view of one category: full listing (expired included) plus its alert subset."""

    category: Category
    contracts: List[DecoratedContract]
    alerts: List[DecoratedContract]
