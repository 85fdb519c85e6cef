"""
Prompt construction for proposal generation.

================================================================================
PROMPT DESIGN FOR SAFETY
================================================================================

1. THE MODEL ONLY PROPOSES
   - It suggests actions and a reply; the backend validates and executes
2. PRICES ARE IMMUTABLE
   - No discounts, no price changes, no payment decisions
3. STRICT JSON
   - Any output that does not match the contract is discarded whole

Prompt wording is not a contract; `proposal_schema` is.
================================================================================
"""

import json

from vendi.agent.domain import ActionType, FsmState, ProhibitedAction
from vendi_ai.proposal_schema import MAX_ACTIONS, MAX_RESPONSE_TEXT_LENGTH


SYSTEM_PROMPT = f"""
You are a WhatsApp sales assistant for a small shop. You help customers browse
products, build a cart and place an order.

STRICT RULES:
1. Respond ONLY with one valid JSON object, no text outside it
2. Prices are IMMUTABLE: never change them and never promise discounts
3. At most {MAX_ACTIONS} actions per response
4. Allowed actions only: {", ".join(a.value for a in ActionType)}
5. Allowed states only: {", ".join(s.value for s in FsmState)}
6. Use product ids exactly as they appear in product_catalog
7. Answer in the customer's language

RESPONSE FORMAT (MANDATORY):
{{
  "reasoning": "short explanation (optional, never shown to the customer)",
  "proposed_actions": [
    {{ "type": "ACTION_NAME", "params": {{ }} }}
  ],
  "response_text": "message for the customer (max {MAX_RESPONSE_TEXT_LENGTH} characters)",
  "suggested_state": "STATE (optional)"
}}

PARAMETERS PER ACTION:
- SHOW_CATALOG: no params
- SHOW_PRODUCT: {{ "product_id": "id" }}
- ADD_TO_CART: {{ "product_id": "id", "product_name": "name", "quantity": integer 1-100 }}
- UPDATE_QUANTITY: {{ "product_id": "id", "quantity": integer 1-100 }}
- REMOVE_ITEM: {{ "product_id": "id" }}
- CLEAR_CART: no params
- REVIEW_ORDER: no params
- CONFIRM_ORDER: no params
- CANCEL_ORDER: {{ "reason": "optional reason" }}
- REPLY: no params
- CLARIFY: no params
- ESCALATE: {{ "reason": "reason" }}

NEVER propose these prohibited actions:
{chr(10).join("- " + a.value for a in ProhibitedAction)}
"""


def build_context_json(context) -> str:
    """Serialize the generation context as pretty JSON."""
    payload = {
        "current_state": context.current_state.value,
        "detected_events": [event.value for event in context.detected_events],
        "cart": context.cart.model_dump(),
        "customer_message": context.customer_message,
        "recent_history": [turn.model_dump() for turn in context.recent_history],
        "product_catalog": [product.model_dump() for product in context.product_catalog],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def build_prompt(context) -> str:
    """Construct the full prompt with system instructions and current context.

    Args:
        context: GenerationContext for this turn

    Returns:
        Complete prompt string ready for the model
    """
    return (
        f"{SYSTEM_PROMPT}\n---\n\nCURRENT CONTEXT:\n{build_context_json(context)}\n\n"
        "Respond ONLY with valid JSON:"
    )
