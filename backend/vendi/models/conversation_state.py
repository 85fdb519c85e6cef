"""
Conversation State Model - persisted engine state, one row per conversation.

Lifecycle:
    1. Created with defaults on first load (IDLE, empty cart, no override)
    2. Rewritten after every processed message
    3. Override flag changed only by ESCALATE or an operator decision
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from vendi.db.base import Base


class ConversationStateRecord(Base):
    """
    Schema:
        conversation_id: Channel conversation identifier (unique)
        fsm_state: Current FSM state name
        human_override / human_override_at: Human handoff flag and when it was raised
        cart_json: {"items": [...], "total": n, "currency": "BOB"}
        pending_order_id: Opaque order reference
        last_proposal: Last validated (or fallback) model output, audit only
        updated_at: Last write (drives the session timeout signal)
    """
    __tablename__ = "conversation_states"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(String(64), unique=True, nullable=False, index=True)
    fsm_state = Column(String(32), nullable=False, default="IDLE", index=True)
    human_override = Column(Boolean, nullable=False, default=False)
    human_override_at = Column(DateTime(timezone=True), nullable=True)
    cart_json = Column(JSON, nullable=False, default=dict)
    pending_order_id = Column(String(64), nullable=True)
    last_proposal = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ConversationStateRecord conversation_id={self.conversation_id} fsm_state={self.fsm_state}>"
