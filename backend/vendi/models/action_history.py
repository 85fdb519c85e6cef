"""
ActionHistory: append-only audit trail of every action proposed in a turn.
Rows are inserted once and never updated.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from vendi.db.base import Base


class ActionHistory(Base):
    __tablename__ = "action_history"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(String(64), nullable=False, index=True)
    action_type = Column(String(64), nullable=False, index=True)  # e.g. ADD_TO_CART, ESCALATE
    action_payload = Column(JSON, nullable=False, default=dict)  # product_id, quantity, reason...
    validated = Column(Boolean, nullable=False, default=False)
    executed = Column(Boolean, nullable=False, default=False)
    fsm_state_before = Column(String(32), nullable=False)
    fsm_state_after = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
