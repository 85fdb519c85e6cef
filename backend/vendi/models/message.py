"""Conversation transcript used as model context (customer / assistant turns)."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from vendi.db.base import Base


class ConversationMessage(Base):
    __tablename__ = "conversation_messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(String(64), nullable=False, index=True)
    role = Column(String(16), nullable=False)  # customer | assistant
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
