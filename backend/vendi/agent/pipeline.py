"""
Message pipeline - one customer message in, one state transition out.

load state -> detect events -> (human override: stay silent) -> generate
proposal -> validate -> execute -> respond + persist

Persist is one `commit_turn`: state, audit rows and both transcript turns are
committed together, so a failed turn leaves nothing behind to double-apply
on retry.

Stages share no mutable state; each receives explicit inputs. Model failures
degrade to the fallback proposal, validation failures become
`validation_errors`, and gateway failures propagate untouched.

The caller must serialize runs per conversation (see vendi.core.locks).
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel

from vendi.agent.action_executor import ExecutionResult, execute_actions
from vendi.agent.action_validator import ValidationContext, validate_actions
from vendi.agent.domain import (
    ActionHistoryRecord,
    ConversationState,
    HistoryTurn,
    Proposal,
    ValidationResult,
)
from vendi.agent.event_detector import detect_events
from vendi.agent.response_builder import ProcessMessageResult, build_response
from vendi.agent.state_gateway import StateGateway
from vendi.core.audit import AuditLog
from vendi.core.config import settings
from vendi_ai.proposal_generator import GenerationContext, generate_proposal

logger = logging.getLogger(__name__)


class ProcessMessageRequest(BaseModel):
    conversation_id: str
    customer_message: str
    tenant_id: str
    has_image: bool = False


def process_message(
    request: ProcessMessageRequest,
    gateway: StateGateway,
    generate: Callable[[GenerationContext], Proposal] = generate_proposal,
    now: Optional[datetime] = None,
) -> ProcessMessageResult:
    """
    Run the full engine for one message.

    Args:
        request: Conversation id, customer text, tenant and signals
        gateway: Storage port (load, products, history, atomic commit_turn)
        generate: Proposal generator; always returns a proposal (or fallback)
        now: Clock override for timestamps and the session timeout check

    Returns:
        ProcessMessageResult for the delivery layer

    Raises:
        StateGatewayError: storage failed; none of the turn's writes were kept
    """
    now = now or datetime.now(timezone.utc)
    conversation_id = request.conversation_id

    state = gateway.load(conversation_id)
    logger.info(
        f"[Pipeline] conversation={conversation_id} state={state.fsm_state.value} "
        f"override={state.human_override} cart_items={len(state.cart.items)}"
    )

    events = detect_events(
        request.customer_message,
        human_override=state.human_override,
        has_image=request.has_image,
        last_activity_at=state.updated_at,
        now=now,
        timeout_minutes=settings.SESSION_TIMEOUT_MINUTES,
    )

    customer_turn = HistoryTurn(role="customer", text=request.customer_message)

    if state.human_override:
        logger.info(f"[Pipeline] human_override=true for {conversation_id}, staying silent")
        # Transcript only: the operator still needs to see the message
        gateway.commit_turn(conversation_id, messages=[customer_turn])
        AuditLog.log_silenced(conversation_id)
        return build_response(
            human_override=True,
            response_text=None,
            new_state=state.fsm_state,
            executed_actions=[],
            validation_errors=[],
        )

    products = gateway.load_products(request.tenant_id)
    history = gateway.load_recent_history(conversation_id, settings.HISTORY_LIMIT)

    proposal = generate(
        GenerationContext(
            current_state=state.fsm_state,
            detected_events=events,
            cart=state.cart,
            customer_message=request.customer_message,
            recent_history=history,
            product_catalog=products,
        )
    )

    results = validate_actions(
        proposal.proposed_actions,
        ValidationContext(current_state=state.fsm_state, cart=state.cart),
    )
    accepted = [result.action for result in results if result.valid]
    validation_errors = [result.error for result in results if not result.valid]

    execution = execute_actions(accepted, state, products, now=now)
    new_state = execution.new_state
    validation_errors.extend(execution.notes())

    response = build_response(
        human_override=new_state.human_override,
        response_text=proposal.response_text,
        new_state=new_state.fsm_state,
        executed_actions=execution.executed_actions,
        validation_errors=validation_errors,
    )

    messages = [customer_turn]
    if response.response_text:
        messages.append(HistoryTurn(role="assistant", text=response.response_text))

    gateway.commit_turn(
        conversation_id,
        changes={
            "fsm_state": new_state.fsm_state,
            "human_override": new_state.human_override,
            "human_override_at": new_state.human_override_at,
            "cart": new_state.cart,
            "pending_order_id": new_state.pending_order_id,
            "last_proposal": proposal.model_dump(mode="json"),
        },
        records=_history_records(conversation_id, state, results, execution),
        messages=messages,
    )

    AuditLog.log_turn(
        conversation_id,
        state_before=state.fsm_state.value,
        state_after=new_state.fsm_state.value,
        executed=[action.type for action in execution.executed_actions],
        rejected=[result.action.type for result in results if not result.valid],
        fallback=proposal.is_fallback,
    )
    return response


def _history_records(
    conversation_id: str,
    state: ConversationState,
    results: List[ValidationResult],
    execution: ExecutionResult,
) -> List[ActionHistoryRecord]:
    """One audit record per proposed action, in proposal order."""
    steps = iter(execution.steps)
    records = []
    for result in results:
        if result.valid:
            step = next(steps)
            records.append(
                ActionHistoryRecord(
                    conversation_id=conversation_id,
                    action_type=result.action.type,
                    action_payload=result.action.payload(),
                    validated=True,
                    executed=step.executed,
                    fsm_state_before=step.state_before,
                    fsm_state_after=step.state_after,
                )
            )
        else:
            records.append(
                ActionHistoryRecord(
                    conversation_id=conversation_id,
                    action_type=result.action.type,
                    action_payload=result.action.payload(),
                    validated=False,
                    executed=False,
                    fsm_state_before=state.fsm_state,
                    fsm_state_after=state.fsm_state,
                )
            )
    return records
