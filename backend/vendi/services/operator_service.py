"""
Operator decisions - the only way out of human takeover and into COMPLETED.

These are human-operated actions from the merchant side. The agent engine
never calls them; it only sees their effects on the next message.
"""
import logging

from vendi.agent.domain import ActionHistoryRecord, ConversationEvent, ConversationState, FsmState
from vendi.core.audit import AuditLog
from vendi.core.exceptions import ConversationNotFound, InvalidOperatorAction
from vendi.services.state_store import SqlStateGateway

logger = logging.getLogger(__name__)


def _require_state(gateway: SqlStateGateway, conversation_id: str) -> ConversationState:
    state = gateway.get_state(conversation_id)
    if state is None:
        raise ConversationNotFound(conversation_id)
    return state


def release_human_override(gateway: SqlStateGateway, conversation_id: str) -> ConversationState:
    """Hand the conversation back to the agent.

    The flow resumes at CART_OPEN when the cart still has items, otherwise
    at BROWSING.
    """
    state = _require_state(gateway, conversation_id)
    if not state.human_override:
        raise InvalidOperatorAction("Human override is not active for this conversation")

    resume_state = FsmState.BROWSING if state.cart.is_empty() else FsmState.CART_OPEN
    gateway.commit_turn(
        conversation_id,
        changes={"human_override": False, "human_override_at": None, "fsm_state": resume_state},
    )
    AuditLog.log_operator_action(
        "release_override", conversation_id, state.fsm_state.value, resume_state.value
    )
    logger.info(f"[Operator] Override released for {conversation_id}, resuming at {resume_state.value}")
    return gateway.load(conversation_id)


def record_payment_decision(
    gateway: SqlStateGateway, conversation_id: str, approved: bool
) -> ConversationState:
    """Apply the merchant's verdict on a payment proof.

    Approved: AWAITING_PAYMENT -> COMPLETED. Rejected: state unchanged, the
    customer can send a new proof.
    """
    state = _require_state(gateway, conversation_id)
    if state.fsm_state != FsmState.AWAITING_PAYMENT:
        raise InvalidOperatorAction(
            f"Conversation is not awaiting payment (state {state.fsm_state.value})"
        )

    event = ConversationEvent.PAYMENT_APPROVED if approved else ConversationEvent.PAYMENT_REJECTED
    new_fsm_state = FsmState.COMPLETED if approved else state.fsm_state

    # Transition and its audit row commit together
    gateway.commit_turn(
        conversation_id,
        changes={"fsm_state": new_fsm_state} if approved else None,
        records=[
            ActionHistoryRecord(
                conversation_id=conversation_id,
                action_type=event.value,
                action_payload={"source": "operator"},
                validated=True,
                executed=True,
                fsm_state_before=state.fsm_state,
                fsm_state_after=new_fsm_state,
            )
        ],
    )
    AuditLog.log_operator_action(
        event.value.lower(), conversation_id, state.fsm_state.value, new_fsm_state.value
    )
    return gateway.load(conversation_id)
