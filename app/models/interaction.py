"""
Interaction states.

A contract in a listing is either idle or the subject of exactly one
pending action: a full edit, a manual renewal (new date typed by the
user) or a quick-renewal preview (+6 months / +1 year from now, awaiting
confirmation). Only one record across the whole list may have a pending
action at a time.

States are immutable; transitions produce new instances.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Union


class InteractionKind(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    MANUAL_RENEWAL = "manual_renewal"
    QUICK_RENEWAL_PREVIEW = "quick_renewal_preview"


@dataclass(frozen=True)
class EditDraft:
    """Raw form values of a full edit. The date is a `YYYY-MM-DD` string."""

    name: str
    contact: Optional[str]
    expires_at: str
    category: Optional[str] = None


@dataclass(frozen=True)
class Idle:
    kind: ClassVar[InteractionKind] = InteractionKind.IDLE


@dataclass(frozen=True)
class Editing:
    record_id: str
    record_name: str
    draft: EditDraft
    current_category: Optional[str] = None
    error: Optional[str] = None
    kind: ClassVar[InteractionKind] = InteractionKind.EDITING


@dataclass(frozen=True)
class ManualRenewal:
    record_id: str
    record_name: str
    draft_date: str
    error: Optional[str] = None
    kind: ClassVar[InteractionKind] = InteractionKind.MANUAL_RENEWAL


@dataclass(frozen=True)
class QuickRenewalPreview:
    record_id: str
    record_name: str
    months: int
    proposed_date: datetime
    label: str
    error: Optional[str] = None
    kind: ClassVar[InteractionKind] = InteractionKind.QUICK_RENEWAL_PREVIEW


InteractionState = Union[Idle, Editing, ManualRenewal, QuickRenewalPreview]

IDLE = Idle()


def describe(state: InteractionState) -> Dict[str, Any]:
    """Flatten a state into a JSON-friendly dict (used by the API layer)."""
    data: Dict[str, Any] = {"kind": state.kind.value}
    if isinstance(state, Editing):
        data.update(
            record_id=state.record_id,
            record_name=state.record_name,
            draft={
                "name": state.draft.name,
                "contact": state.draft.contact,
                "expires_at": state.draft.expires_at,
                "category": state.draft.category,
            },
            error=state.error,
        )
    elif isinstance(state, ManualRenewal):
        data.update(
            record_id=state.record_id,
            record_name=state.record_name,
            draft_date=state.draft_date,
            error=state.error,
        )
    elif isinstance(state, QuickRenewalPreview):
        data.update(
            record_id=state.record_id,
            record_name=state.record_name,
            months=state.months,
            proposed_date=state.proposed_date,
            label=state.label,
            error=state.error,
        )
    return data
