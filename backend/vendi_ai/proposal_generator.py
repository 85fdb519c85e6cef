"""
Proposal Generator - call the model and validate what comes back.

================================================================================
THE MODEL OUTPUT IS NEVER TRUSTED BLINDLY
================================================================================

1. Build a bounded context (state, events, cart, message, history, catalog)
2. Ask the model for a structured proposal
3. Validate the output against the strict Pydantic contract
4. On ANY failure, return the fixed fallback (zero actions, apology text,
   suggested_state == current state)

There is no partial trust: one bad action discards the whole output.
This module writes nothing anywhere, so calling it again is always safe.
================================================================================
"""

import json
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError

from vendi.agent.domain import Cart, ConversationEvent, FsmState, HistoryTurn, Product, Proposal
from vendi_ai.fallback import fallback_proposal
from vendi_ai.groq_client import get_groq_client
from vendi_ai.prompts import build_prompt
from vendi_ai.proposal_schema import ProposalOutput

logger = logging.getLogger(__name__)


class GenerationContext(BaseModel):
    current_state: FsmState
    detected_events: List[ConversationEvent] = Field(default_factory=list)
    cart: Cart = Field(default_factory=Cart)
    customer_message: str
    recent_history: List[HistoryTurn] = Field(default_factory=list)
    product_catalog: List[Product] = Field(default_factory=list)


def generate_proposal(context: GenerationContext, client=None) -> Proposal:
    """
    Produce a validated proposal for this turn, or the fallback.

    Args:
        context: Bounded generation context
        client: Object with `complete(prompt) -> str | None`;
            defaults to the shared Groq client

    Returns:
        Proposal (validated output or fallback)
    """
    if client is None:
        client = get_groq_client()
    prompt = build_prompt(context)

    try:
        raw = client.complete(prompt)
    except Exception as e:
        logger.error(f"❌ Model call failed: {type(e).__name__}: {e}")
        return fallback_proposal(context.current_state)

    if raw is None:
        logger.debug("Model returned None - using fallback")
        return fallback_proposal(context.current_state)

    output = parse_and_validate(raw)
    if output is None:
        return fallback_proposal(context.current_state)

    proposal = output.to_proposal(context.current_state)
    logger.info(
        f"✅ Proposal accepted by contract: actions={[a.type for a in proposal.proposed_actions]}, "
        f"suggested_state={proposal.suggested_state.value}"
    )
    return proposal


def parse_and_validate(raw: Any) -> Optional[ProposalOutput]:
    """Extract and validate a proposal from raw model output.

    The model sometimes wraps JSON in a markdown fence. This function:
    1. Strips the fence
    2. Parses JSON (already-decoded dicts are accepted as is)
    3. Validates against the schema
    4. Returns None if anything is off
    """
    if isinstance(raw, str):
        try:
            data = json.loads(_strip_code_fence(raw))
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON from model: {e}")
            return None
    else:
        data = raw

    if not isinstance(data, dict):
        logger.warning(f"Model output is not a JSON object: {type(data).__name__}")
        return None

    try:
        return ProposalOutput.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Proposal schema validation failed: {e.error_count()} error(s): {e.errors()[:3]}")
        return None


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()
