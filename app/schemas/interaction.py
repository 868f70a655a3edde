from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from app.models.interaction import EditDraft, InteractionState, describe
from app.schemas.contract import ContractResponse, to_responses
from app.services.interaction_service import InteractionOutcome


class EditDraftIn(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    expires_at: Optional[str] = None
    category: Optional[str] = None

    def to_draft(self) -> EditDraft:
        return EditDraft(
            name=self.name or "",
            contact=self.contact,
            expires_at=self.expires_at or "",
            category=self.category,
        )


class ManualRenewalConfirm(BaseModel):
    expires_at: Optional[str] = None
    confirm: bool = False


class QuickRenewalConfirm(BaseModel):
    confirm: bool = False


class InteractionStateResponse(BaseModel):
    kind: Literal["idle", "editing", "manual_renewal", "quick_renewal_preview"]
    record_id: Optional[str] = None
    record_name: Optional[str] = None
    draft: Optional[EditDraftIn] = None
    draft_date: Optional[str] = None
    months: Optional[int] = None
    proposed_date: Optional[datetime] = None
    label: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_state(cls, state: InteractionState) -> "InteractionStateResponse":
        return cls(**describe(state))


class InteractionOutcomeResponse(BaseModel):
    committed: bool
    state: InteractionStateResponse
    contracts: Optional[List[ContractResponse]] = None
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: InteractionOutcome) -> "InteractionOutcomeResponse":
        return cls(
            committed=outcome.committed,
            state=InteractionStateResponse.from_state(outcome.state),
            contracts=to_responses(outcome.listing) if outcome.listing is not None else None,
            error=outcome.error,
        )
