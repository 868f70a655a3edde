"""
Interaction service.

Per-record edit and renewal workflow. A `ContractInteractionMachine`
drives the transitions between the states defined in
`app.models.interaction`:

    Idle --start_edit--------------> Editing --confirm_edit----------> Idle
    Idle --start_manual_renewal----> ManualRenewal --confirm---------> Idle
    Idle --preview_quick_renewal---> QuickRenewalPreview --confirm---> Idle
    any  --cancel------------------> Idle

Opening an action always clears whatever other action was pending, on
this record or on another one. Every committed mutation is followed by a
re-fetch of the listing, which is returned to the caller.

Failures never raise out of a confirm call:
    - a rejected field keeps the state and attaches the message;
    - a store failure keeps the state (and the draft) with a generic
      message, so the same confirm can simply be retried;
    - a declined confirmation keeps the state without an error.

State lives in an `InteractionStore` that is independent of any rendering
layer; `InteractionRegistry` keeps one per (principal, session) pair.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from app.core.exceptions import InteractionError, PersistenceError, RecordNotFoundError, ValidationError
from app.core.security import PrincipalContext
from app.db.contract_store import ContractStore
from app.models.contract import Category, ContractRecord, DecoratedContract
from app.models.interaction import (
    IDLE,
    EditDraft,
    Editing,
    InteractionState,
    ManualRenewal,
    QuickRenewalPreview,
)
from app.services.contracts_service import Confirm, list_for_owner, remove_contract
from app.services.validation_service import validate_edit, validate_renewal_date
from app.util.dates import add_months, format_date_input, format_display_date, minimum_allowed_date, now_local

logger = logging.getLogger(__name__)

QUICK_RENEWAL_LABELS = {6: "+6 meses", 12: "+1 ano"}

PERSISTENCE_FAILURE_MESSAGE = "Não foi possível guardar as alterações. Tente novamente."
MISSING_RECORD_MESSAGE = "Este contrato já não existe."


@dataclass
class InteractionOutcome:
    """
    Result of a confirm or remove call.

    Attributes:
        committed (bool): Whether a mutation reached the store.
        state (InteractionState): Active state after the call.
        listing (list | None): Fresh listing after a committed mutation.
        error (str | None): User-visible message when something went wrong.
    """

    committed: bool
    state: InteractionState
    listing: Optional[List[DecoratedContract]] = None
    error: Optional[str] = None


class InteractionStore:
    """
    Pending actions keyed by record id.

    Holds at most one entry: activating a state for any record drops every
    other entry.
    """

    def __init__(self):
        self._states: Dict[str, InteractionState] = {}

    def activate(self, record_id: str, state: InteractionState) -> None:
        self._states.clear()
        self._states[record_id] = state

    @property
    def active(self) -> InteractionState:
        """The pending state, or `IDLE` when nothing is in progress."""
        for state in self._states.values():
            return state
        return IDLE

    @property
    def active_record_id(self) -> Optional[str]:
        for record_id in self._states:
            return record_id
        return None

    def clear(self, record_id: Optional[str] = None) -> None:
        """Drop the pending state of `record_id`, or every state when omitted."""
        if record_id is None:
            self._states.clear()
        else:
            self._states.pop(record_id, None)


class InteractionRegistry:
    """
    One `InteractionStore` per (principal, session); sessions never share state.

    Only sessions with a pending action are kept: callers release a session
    once its store is back to idle, so client-chosen session ids do not
    accumulate.
    """

    def __init__(self):
        self._sessions: Dict[Tuple[str, str], InteractionStore] = {}

    def for_session(self, principal_id: str, session_id: str) -> InteractionStore:
        """Return the session's store, creating it if needed."""
        return self._sessions.setdefault((principal_id, session_id), InteractionStore())

    def lookup(self, principal_id: str, session_id: str) -> Optional[InteractionStore]:
        """Return the session's store without creating one."""
        return self._sessions.get((principal_id, session_id))

    def release_if_idle(self, principal_id: str, session_id: str) -> None:
        interactions = self._sessions.get((principal_id, session_id))
        if interactions is not None and interactions.active is IDLE:
            self.discard(principal_id, session_id)

    def discard(self, principal_id: str, session_id: str) -> None:
        self._sessions.pop((principal_id, session_id), None)

    def __len__(self) -> int:
        return len(self._sessions)


registry = InteractionRegistry()


def get_interaction_registry() -> InteractionRegistry:
    """FastAPI dependency returning the process-wide registry."""
    return registry


class ContractInteractionMachine:
    """
    Edit / renewal workflow for one session's contract listing.

    Args:
        ctx (PrincipalContext): Calling principal.
        store (ContractStore): Document store receiving the mutations.
        confirm (Confirm): Asked before every renewal and delete.
        interactions (InteractionStore, optional): Shared state holder; a new one by default.
        clock (Callable[[], datetime], optional): Source of "now". Defaults to `now_local`.
        category (Category, optional): Category the listing is scoped to, used for re-fetches.

    Example:
        >>> machine = ContractInteractionMachine(ctx, store, confirm=lambda message: True)
        >>> machine.preview_quick_renewal(record, 6)
        >>> outcome = await machine.confirm_quick_renewal()
        >>> outcome.committed
        True
    """

    def __init__(
        self,
        ctx: PrincipalContext,
        store: ContractStore,
        confirm: Confirm,
        interactions: Optional[InteractionStore] = None,
        clock: Callable[[], datetime] = now_local,
        category: Optional[Category] = None,
    ):
        self.ctx = ctx
        self.store = store
        self.confirm = confirm
        self.interactions = interactions if interactions is not None else InteractionStore()
        self.clock = clock
        self.category = category

    @property
    def state(self) -> InteractionState:
        return self.interactions.active

    # --------------------------------------------------------------------------
    # Opening actions
    # --------------------------------------------------------------------------

    def start_edit(self, record: ContractRecord) -> InteractionState:
        """Open a full-field edit pre-filled from `record`."""
        if not self._owns(record):
            return IDLE
        tz = self.clock().tzinfo
        draft = EditDraft(
            name=record.name,
            contact=record.contact,
            expires_at=format_date_input(record.expires_at, tz) or "",
            category=record.category.value if record.category else None,
        )
        current_category = record.category.value if record.category else None
        return self._activate(Editing(record.id, record.name, draft, current_category))

    def start_manual_renewal(self, record: ContractRecord) -> InteractionState:
        """Open a date-only renewal, starting at the current expiration (or tomorrow)."""
        if not self._owns(record):
            return IDLE
        now = self.clock()
        draft_date = format_date_input(record.expires_at, now.tzinfo) or minimum_allowed_date(now).isoformat()
        return self._activate(ManualRenewal(record.id, record.name, draft_date))

    def preview_quick_renewal(self, record: ContractRecord, months: int) -> InteractionState:
        """
        Show the date a quick renewal would set: `months` after now.

        Raises:
            ValueError: If `months` is not one of the offered shortcuts (6, 12).
        """

        if months not in QUICK_RENEWAL_LABELS:
            raise ValueError(f"Unsupported quick renewal of {months} months")
        if not self._owns(record):
            return IDLE
        proposed = add_months(self.clock(), months)
        return self._activate(
            QuickRenewalPreview(record.id, record.name, months, proposed, QUICK_RENEWAL_LABELS[months])
        )

    def cancel(self) -> InteractionState:
        """Discard any pending action and its draft."""
        self.interactions.clear()
        return IDLE

    # --------------------------------------------------------------------------
    # Confirming actions
    # --------------------------------------------------------------------------

    async def confirm_edit(self, draft: Optional[EditDraft] = None) -> InteractionOutcome:
        """
        Validate the edit draft and write name, contact, category and expiration.

        Args:
            draft (EditDraft, optional): Values submitted by the user; the
                stored draft when omitted.

        Raises:
            InteractionError: If no edit is in progress.
        """

        state = self._expect(Editing)
        state = replace(state, draft=draft or state.draft, error=None)
        current_category = Category(state.current_category) if state.current_category else Category.POOL_SERVICE
        try:
            fields = validate_edit(
                state.draft.name,
                state.draft.contact,
                state.draft.expires_at,
                state.draft.category,
                current_category,
                self.clock(),
            )
        except ValidationError as e:
            return self._reject(state, e.message)

        partial = {"nome": fields.name, "contacto": fields.contact, "dataExpiracao": fields.expires_at}
        # A record stored without a category only gets one when the draft names it.
        if state.current_category or state.draft.category:
            partial["categoria"] = fields.category.value
        return await self._commit(state, partial)

    async def confirm_manual_renewal(self, draft_date: Optional[str] = None) -> InteractionOutcome:
        """
        Validate the new date, ask for confirmation and write the expiration.

        Raises:
            InteractionError: If no manual renewal is in progress.
        """

        state = self._expect(ManualRenewal)
        # An empty string is a cleared field, not an omitted one.
        if draft_date is not None:
            state = replace(state, draft_date=draft_date)
        state = replace(state, error=None)
        try:
            expires_at = validate_renewal_date(state.draft_date, self.clock())
        except ValidationError as e:
            return self._reject(state, e.message)

        if not self._confirmed(state.record_name, expires_at):
            self._activate(state)
            return InteractionOutcome(committed=False, state=state)

        return await self._commit(state, {"dataExpiracao": expires_at})

    async def confirm_quick_renewal(self) -> InteractionOutcome:
        """
        Ask for confirmation and write the previewed expiration.

        The proposed date is computed, so it is not validated again.

        Raises:
            InteractionError: If no quick-renewal preview is active.
        """

        state = replace(self._expect(QuickRenewalPreview), error=None)
        if not self._confirmed(state.record_name, state.proposed_date):
            self._activate(state)
            return InteractionOutcome(committed=False, state=state)

        return await self._commit(state, {"dataExpiracao": state.proposed_date})

    async def remove(self, record_id: str) -> InteractionOutcome:
        """
        Delete a contract after confirmation, independently of the pending action.

        A pending action on the deleted record is cleared; one on another
        record is kept.

        Raises:
            RecordNotFoundError: If the principal owns no such record.
        """

        try:
            deleted = await remove_contract(self.ctx, self.store, record_id, self.confirm)
        except PersistenceError:
            return InteractionOutcome(committed=False, state=self.state, error=PERSISTENCE_FAILURE_MESSAGE)

        if not deleted:
            return InteractionOutcome(committed=False, state=self.state)

        self.interactions.clear(record_id)
        listing, error = await self._refresh()
        return InteractionOutcome(committed=True, state=self.state, listing=listing, error=error)

    async def refresh(self) -> List[DecoratedContract]:
        """Re-fetch the listing this machine works on."""
        return await list_for_owner(self.ctx, self.store, self.category, self.clock())

    # --------------------------------------------------------------------------
    # Internals
    # --------------------------------------------------------------------------

    def _owns(self, record: ContractRecord) -> bool:
        if not self.ctx.is_authenticated:
            logger.debug("Anonymous interaction request ignored")
            return False
        if record.owner_id != self.ctx.principal_id:
            raise RecordNotFoundError(record.id)
        return True

    def _activate(self, state: InteractionState) -> InteractionState:
        self.interactions.activate(state.record_id, state)
        return state

    def _expect(self, state_type: type):
        state = self.state
        if not isinstance(state, state_type):
            raise InteractionError(f"Expected {state_type.kind.value}, found {state.kind.value}")
        return state

    def _reject(self, state: InteractionState, message: str) -> InteractionOutcome:
        failed = self._activate(replace(state, error=message))
        return InteractionOutcome(committed=False, state=failed, error=message)

    def _confirmed(self, record_name: str, expires_at: datetime) -> bool:
        date_label = format_display_date(expires_at, self.clock().tzinfo)
        return self.confirm(f"Confirmar renovação de {record_name} até {date_label}?")

    async def _commit(self, state: InteractionState, partial: dict) -> InteractionOutcome:
        if not self.ctx.is_authenticated:
            self.interactions.clear()
            return InteractionOutcome(committed=False, state=IDLE)
        try:
            await self.store.update(state.record_id, self.ctx.principal_id, partial)
        except RecordNotFoundError:
            self.interactions.clear()
            return InteractionOutcome(committed=False, state=IDLE, error=MISSING_RECORD_MESSAGE)
        except PersistenceError:
            return self._reject(state, PERSISTENCE_FAILURE_MESSAGE)

        logger.info(
            "Contract %s updated (%s) by owner %s", state.record_id, ", ".join(sorted(partial)), self.ctx.principal_id
        )
        self.interactions.clear()
        listing, error = await self._refresh()
        return InteractionOutcome(committed=True, state=IDLE, listing=listing, error=error)

    async def _refresh(self) -> Tuple[Optional[List[DecoratedContract]], Optional[str]]:
        try:
            return await self.refresh(), None
        except PersistenceError:
            return None, PERSISTENCE_FAILURE_MESSAGE
