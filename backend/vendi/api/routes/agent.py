"""
Agent endpoints: process inbound messages and apply operator decisions.
Trust: the model proposes, the engine validates and executes. Operators are
the only path out of human takeover and into COMPLETED.
"""
import logging
from typing import Callable

from fastapi import APIRouter, Depends

from vendi.agent.domain import ConversationState, Proposal
from vendi.agent.pipeline import ProcessMessageRequest, process_message
from vendi.agent.response_builder import ProcessMessageResult
from vendi.api.deps import get_gateway
from vendi.core.config import settings
from vendi.core.exceptions import (
    BusinessError,
    ConversationNotFound,
    InvalidOperatorAction,
    StateGatewayError,
)
from vendi.core.locks import conversation_locks
from vendi.schemas.agent_action import ActionHistoryResponse, IncomingMessage, PaymentDecision
from vendi.services.operator_service import record_payment_decision, release_human_override
from vendi.services.state_store import SqlStateGateway
from vendi_ai.proposal_generator import GenerationContext, generate_proposal

logger = logging.getLogger(__name__)
router = APIRouter()


def get_generator() -> Callable[[GenerationContext], Proposal]:
    """Proposal generator used by the pipeline (overridable in tests)."""
    return generate_proposal


@router.post("/messages", response_model=ProcessMessageResult)
def handle_message(
    message: IncomingMessage,
    gateway: SqlStateGateway = Depends(get_gateway),
    generate: Callable[[GenerationContext], Proposal] = Depends(get_generator),
):
    """Run the engine for one inbound message.

    handled=false tells the channel layer to use another handling path;
    handled=true with response_text=null means stay silent.
    """
    if not settings.AGENT_ENABLED:
        logger.info(f"[Agent] Disabled by AGENT_ENABLED, not handling {message.conversation_id}")
        return ProcessMessageResult(handled=False)

    request = ProcessMessageRequest(**message.model_dump())
    try:
        with conversation_locks.hold(message.conversation_id):
            result = process_message(request, gateway, generate=generate)
    except StateGatewayError as e:
        raise BusinessError.server_error(e)

    return result


@router.get("/conversations/{conversation_id}/state", response_model=ConversationState)
def get_conversation_state(conversation_id: str, gateway: SqlStateGateway = Depends(get_gateway)):
    """Current engine state of a conversation. For the merchant dashboard."""
    try:
        state = gateway.get_state(conversation_id)
    except StateGatewayError as e:
        raise BusinessError.server_error(e)
    if state is None:
        raise BusinessError.not_found("Conversation", reason=conversation_id)
    return state


@router.get("/conversations/{conversation_id}/actions", response_model=list[ActionHistoryResponse])
def list_conversation_actions(
    conversation_id: str, limit: int = 50, gateway: SqlStateGateway = Depends(get_gateway)
):
    """Audit trail of proposed actions, newest first."""
    try:
        return gateway.list_action_history(conversation_id, limit=max(1, min(limit, 200)))
    except StateGatewayError as e:
        raise BusinessError.server_error(e)


@router.post("/conversations/{conversation_id}/release", response_model=ConversationState)
def release_override(conversation_id: str, gateway: SqlStateGateway = Depends(get_gateway)):
    """Operator hands the conversation back to the agent."""
    try:
        with conversation_locks.hold(conversation_id):
            return release_human_override(gateway, conversation_id)
    except ConversationNotFound:
        raise BusinessError.not_found("Conversation", reason=conversation_id)
    except InvalidOperatorAction as e:
        raise BusinessError.bad_request(str(e))
    except StateGatewayError as e:
        raise BusinessError.server_error(e)


@router.post("/conversations/{conversation_id}/payment", response_model=ConversationState)
def decide_payment(
    conversation_id: str,
    decision: PaymentDecision,
    gateway: SqlStateGateway = Depends(get_gateway),
):
    """Operator approves or rejects the customer's payment proof."""
    try:
        with conversation_locks.hold(conversation_id):
            return record_payment_decision(gateway, conversation_id, decision.approved)
    except ConversationNotFound:
        raise BusinessError.not_found("Conversation", reason=conversation_id)
    except InvalidOperatorAction as e:
        raise BusinessError.bad_request(str(e))
    except StateGatewayError as e:
        raise BusinessError.server_error(e)
