"""
SQLAlchemy implementation of the State Gateway.

Every storage failure is rolled back and re-raised as StateGatewayError.
Nothing is swallowed: the caller decides whether to retry the whole turn.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vendi.agent.domain import (
    ActionHistoryRecord,
    Cart,
    ConversationState,
    FsmState,
    HistoryTurn,
    Product,
    default_state,
)
from vendi.agent.state_gateway import StateGateway
from vendi.core.config import settings
from vendi.core.exceptions import StateGatewayError
from vendi.models.action_history import ActionHistory
from vendi.models.conversation_state import ConversationStateRecord
from vendi.models.message import ConversationMessage
from vendi.models.product import Product as ProductRecord

logger = logging.getLogger(__name__)

SAVABLE_FIELDS = {
    "fsm_state",
    "human_override",
    "human_override_at",
    "cart",
    "pending_order_id",
    "last_proposal",
}


class SqlStateGateway(StateGateway):
    """State Gateway backed by a request-scoped SQLAlchemy session."""

    def __init__(self, db: Session, default_currency: Optional[str] = None):
        self.db = db
        self.default_currency = default_currency or settings.DEFAULT_CURRENCY

    # ------------------------------------------------------------------ port

    def load(self, conversation_id: str) -> ConversationState:
        try:
            record = self._get_record(conversation_id)
            if record is None:
                record = self._create_record(conversation_id)
                logger.info(f"[StateStore] Created default state for conversation {conversation_id}")
            return _to_domain(record)
        except SQLAlchemyError as e:
            self._fail("load", conversation_id, e)

    def save(self, conversation_id: str, changes: Dict[str, Any]) -> None:
        self.commit_turn(conversation_id, changes)

    def load_products(self, tenant_id: str) -> List[Product]:
        try:
            rows = (
                self.db.query(ProductRecord)
                .filter(ProductRecord.tenant_id == tenant_id, ProductRecord.active.is_(True))
                .order_by(ProductRecord.name, ProductRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("load_products", tenant_id, e)
        return [
            Product(id=row.id, name=row.name, price=float(row.price), active=row.active)
            for row in rows
        ]

    def load_recent_history(self, conversation_id: str, limit: int) -> List[HistoryTurn]:
        try:
            rows = (
                self.db.query(ConversationMessage)
                .filter(ConversationMessage.conversation_id == conversation_id)
                .order_by(ConversationMessage.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("load_recent_history", conversation_id, e)
        return [HistoryTurn(role=row.role, text=row.text) for row in reversed(rows)]

    def append_action_history(self, records: List[ActionHistoryRecord]) -> None:
        if records:
            self.commit_turn(records[0].conversation_id, records=records)

    def commit_turn(
        self,
        conversation_id: str,
        changes: Optional[Dict[str, Any]] = None,
        records: Sequence[ActionHistoryRecord] = (),
        messages: Sequence[HistoryTurn] = (),
    ) -> None:
        """
        State changes, audit rows and transcript turns in ONE transaction.

        Either everything is committed or, on any storage error, nothing is:
        the session is rolled back and StateGatewayError is raised.
        An empty `changes` leaves the state row (and updated_at) untouched.
        """
        changes = changes or {}
        unknown = set(changes) - SAVABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown conversation state fields: {sorted(unknown)}")

        try:
            if changes:
                record = self._get_record(conversation_id) or self._new_record(conversation_id)
                _apply_changes(record, changes)
            self.db.add_all(
                ActionHistory(
                    conversation_id=entry.conversation_id,
                    action_type=entry.action_type,
                    action_payload=entry.action_payload,
                    validated=entry.validated,
                    executed=entry.executed,
                    fsm_state_before=entry.fsm_state_before.value,
                    fsm_state_after=entry.fsm_state_after.value,
                )
                for entry in records
            )
            self.db.add_all(
                ConversationMessage(conversation_id=conversation_id, role=turn.role, text=turn.text)
                for turn in messages
            )
            self.db.commit()
            logger.debug(
                f"[StateStore] Committed turn for {conversation_id}: fields={sorted(changes)} "
                f"audit={len(records)} messages={len(messages)}"
            )
        except SQLAlchemyError as e:
            self._fail("commit_turn", conversation_id, e)

    # --------------------------------------------------------------- helpers

    def get_state(self, conversation_id: str) -> Optional[ConversationState]:
        """Stored state or None. Unlike `load`, never creates a row."""
        try:
            record = self._get_record(conversation_id)
        except SQLAlchemyError as e:
            self._fail("get_state", conversation_id, e)
        return _to_domain(record) if record else None

    def list_action_history(self, conversation_id: str, limit: int = 50) -> List[ActionHistory]:
        """Audit rows, newest first."""
        try:
            return (
                self.db.query(ActionHistory)
                .filter(ActionHistory.conversation_id == conversation_id)
                .order_by(ActionHistory.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("list_action_history", conversation_id, e)

    def _get_record(self, conversation_id: str) -> Optional[ConversationStateRecord]:
        return (
            self.db.query(ConversationStateRecord)
            .filter(ConversationStateRecord.conversation_id == conversation_id)
            .first()
        )

    def _new_record(self, conversation_id: str) -> ConversationStateRecord:
        """Pending default row; committed by the caller's transaction."""
        state = default_state(self.default_currency)
        record = ConversationStateRecord(
            conversation_id=conversation_id,
            fsm_state=state.fsm_state.value,
            human_override=False,
            cart_json=state.cart.model_dump(mode="json"),
        )
        self.db.add(record)
        return record

    def _create_record(self, conversation_id: str) -> ConversationStateRecord:
        record = self._new_record(conversation_id)
        self.db.commit()
        self.db.refresh(record)
        return record

    def _fail(self, operation: str, key: str, error: SQLAlchemyError) -> NoReturn:
        self.db.rollback()
        logger.error(f"[StateStore] {operation} failed for {key}: {type(error).__name__}: {error}")
        raise StateGatewayError(f"{operation} failed for {key}") from error


def _apply_changes(record: ConversationStateRecord, changes: Dict[str, Any]) -> None:
    for field, value in changes.items():
        if field == "fsm_state":
            record.fsm_state = FsmState(value).value
        elif field == "cart":
            cart = value if isinstance(value, Cart) else Cart.model_validate(value)
            record.cart_json = cart.model_dump(mode="json")
        else:
            setattr(record, field, value)
    record.updated_at = datetime.now(timezone.utc)


def _to_domain(record: ConversationStateRecord) -> ConversationState:
    return ConversationState(
        fsm_state=FsmState(record.fsm_state),
        human_override=bool(record.human_override),
        human_override_at=record.human_override_at,
        cart=Cart.model_validate(record.cart_json or {}),
        pending_order_id=record.pending_order_id,
        last_proposal=record.last_proposal,
        updated_at=record.updated_at,
    )
