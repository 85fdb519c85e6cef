from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class IncomingMessage(BaseModel):
    """Inbound customer message handed over by the channel ingestion layer."""
    conversation_id: str = Field(min_length=1, max_length=64)
    customer_message: str = Field(max_length=4000)
    tenant_id: str = Field(min_length=1, max_length=64)
    has_image: bool = False


class PaymentDecision(BaseModel):
    approved: bool


class ActionHistoryResponse(BaseModel):
    id: int
    conversation_id: str
    action_type: str
    action_payload: Optional[dict] = None
    validated: bool
    executed: bool
    fsm_state_before: str
    fsm_state_after: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
