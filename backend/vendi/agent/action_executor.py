"""
Execute ONLY actions the validator accepted, strictly in order.

SAFETY MODEL:
- Works on a deep copy of the conversation state; the input is never mutated
- No database access, no outbound messages: the new state is returned and
  persisted by the caller
- Prices always come from the catalog product, never from proposal params
- Cart total is recomputed from line subtotals after every cart mutation

SUPPORTED ACTIONS:
- ADD_TO_CART / UPDATE_QUANTITY / REMOVE_ITEM / CLEAR_CART: cart mutations
- REVIEW_ORDER / CONFIRM_ORDER / CANCEL_ORDER: order transitions
- ESCALATE: hand the conversation to a human (sticky)
- SHOW_CATALOG / SHOW_PRODUCT / REPLY / CLARIFY: recorded, no state effect

Once ESCALATE has run, every later action that would change state or cart
is skipped with a note, so a turn can never leave HUMAN_TAKEOVER.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from vendi.agent.domain import (
    QUANTITY_MAX,
    ActionType,
    Cart,
    CartItem,
    ConversationState,
    FsmState,
    Product,
    ProposedAction,
)

logger = logging.getLogger(__name__)


class ExecutionStep(BaseModel):
    action: ProposedAction
    executed: bool
    state_before: FsmState
    state_after: FsmState
    note: Optional[str] = None


class ExecutionResult(BaseModel):
    executed_actions: List[ProposedAction] = Field(default_factory=list)
    new_state: ConversationState
    steps: List[ExecutionStep] = Field(default_factory=list)

    def notes(self) -> List[str]:
        return [step.note for step in self.steps if step.note]


# (state, action, catalog, now) -> (executed, note); handlers mutate the working copy
_Handler = Callable[[ConversationState, ProposedAction, Dict[str, Product], datetime], Tuple[bool, Optional[str]]]


def execute_actions(
    actions: List[ProposedAction],
    state: ConversationState,
    catalog: List[Product],
    now: Optional[datetime] = None,
) -> ExecutionResult:
    """Apply accepted actions in order and return the resulting state.

    Args:
        actions: Accepted actions, already validated
        state: State snapshot taken at the start of the pipeline
        catalog: Authoritative products (source of every price)
        now: Timestamp used for ESCALATE (defaults to current UTC time)

    Returns:
        ExecutionResult with executed actions, new state and per-action steps
    """
    working = state.model_copy(deep=True)
    products = {product.id: product for product in catalog}
    stamp = now or datetime.now(timezone.utc)

    executed_actions: List[ProposedAction] = []
    steps: List[ExecutionStep] = []
    for action in actions:
        before = working.fsm_state
        handler = _HANDLERS.get(action.type)
        if working.human_override and action.type not in _HANDOFF_SAFE:
            # HUMAN_TAKEOVER is sticky: nothing after an ESCALATE touches state or cart
            executed, note = False, f'{action.type} skipped: conversation is in human takeover'
        elif handler is None:
            executed, note = False, f'{action.type} skipped: no executor for this action'
        else:
            executed, note = handler(working, action, products, stamp)

        if executed:
            executed_actions.append(action)
        else:
            logger.warning(f"[Executor] Not executed: {note}")

        steps.append(
            ExecutionStep(
                action=action,
                executed=executed,
                state_before=before,
                state_after=working.fsm_state,
                note=note,
            )
        )

    return ExecutionResult(executed_actions=executed_actions, new_state=working, steps=steps)


# =============================================================================
# Cart actions
# =============================================================================

def _add_to_cart(state, action, products, now):
    product_id = action.params.product_id
    quantity = action.params.quantity

    product = products.get(product_id)
    if product is None or not product.active:
        return False, f'ADD_TO_CART skipped: product "{product_id}" is not in the catalog'

    cart = state.cart
    existing = cart.find(product_id)
    if existing is not None:
        if existing.quantity + quantity > QUANTITY_MAX:
            return False, (
                f'ADD_TO_CART skipped: "{existing.name}" would exceed {QUANTITY_MAX} units'
            )
        existing.quantity += quantity
    else:
        cart.items.append(
            CartItem(
                product_id=product.id,
                name=product.name,
                quantity=quantity,
                unit_price=product.price,
            )
        )
    cart.recalculate()

    if state.fsm_state in (FsmState.IDLE, FsmState.BROWSING):
        state.fsm_state = FsmState.CART_OPEN
    return True, None


def _update_quantity(state, action, products, now):
    item = state.cart.find(action.params.product_id)
    if item is None:
        return False, f'UPDATE_QUANTITY skipped: "{action.params.product_id}" not in cart'
    item.quantity = action.params.quantity
    state.cart.recalculate()
    return True, None


def _remove_item(state, action, products, now):
    item = state.cart.find(action.params.product_id)
    if item is None:
        return False, f'REMOVE_ITEM skipped: "{action.params.product_id}" not in cart'
    state.cart.items.remove(item)
    state.cart.recalculate()
    if state.cart.is_empty():
        state.fsm_state = FsmState.BROWSING
    return True, None


def _clear_cart(state, action, products, now):
    state.cart = Cart(currency=state.cart.currency)
    state.fsm_state = FsmState.BROWSING
    return True, None


# =============================================================================
# Order actions
# =============================================================================

def _review_order(state, action, products, now):
    if state.fsm_state == FsmState.CART_OPEN:
        state.fsm_state = FsmState.CHECKOUT
    return True, None


def _confirm_order(state, action, products, now):
    if state.fsm_state == FsmState.CHECKOUT:
        state.fsm_state = FsmState.AWAITING_PAYMENT
    return True, None


def _cancel_order(state, action, products, now):
    state.cart = Cart(currency=state.cart.currency)
    state.fsm_state = FsmState.IDLE
    state.pending_order_id = None
    return True, None


# =============================================================================
# Conversation actions
# =============================================================================

def _escalate(state, action, products, now):
    state.fsm_state = FsmState.HUMAN_TAKEOVER
    state.human_override = True
    state.human_override_at = now
    logger.info(f"[Executor] Escalated to human takeover at {now.isoformat()}")
    return True, None


def _no_effect(state, action, products, now):
    return True, None


_HANDLERS: Dict[str, _Handler] = {
    ActionType.SHOW_CATALOG.value: _no_effect,
    ActionType.SHOW_PRODUCT.value: _no_effect,
    ActionType.ADD_TO_CART.value: _add_to_cart,
    ActionType.UPDATE_QUANTITY.value: _update_quantity,
    ActionType.REMOVE_ITEM.value: _remove_item,
    ActionType.CLEAR_CART.value: _clear_cart,
    ActionType.REVIEW_ORDER.value: _review_order,
    ActionType.CONFIRM_ORDER.value: _confirm_order,
    ActionType.CANCEL_ORDER.value: _cancel_order,
    ActionType.REPLY.value: _no_effect,
    ActionType.CLARIFY.value: _no_effect,
    ActionType.ESCALATE.value: _escalate,
}

if set(_HANDLERS) != {a.value for a in ActionType}:
    raise RuntimeError("Executor must handle every ActionType")

# Still executed once human_override is set
_HANDOFF_SAFE = frozenset(
    action_type for action_type, handler in _HANDLERS.items() if handler is _no_effect
)
