"""Fixed fallback proposal used whenever model output cannot be trusted."""
import logging

from vendi.agent.domain import FsmState, Proposal

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE_TEXT = (
    "Disculpa, no pude procesar tu mensaje. ¿Podrías intentar de nuevo?"
)


def fallback_proposal(current_state: FsmState) -> Proposal:
    """Zero actions, generic apology, state unchanged."""
    logger.info(f"🔄 Fallback proposal used (state={current_state.value})")
    return Proposal(
        proposed_actions=[],
        response_text=FALLBACK_RESPONSE_TEXT,
        suggested_state=current_state,
        is_fallback=True,
    )
