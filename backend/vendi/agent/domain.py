"""
Domain model - shared vocabulary of the conversation engine.

States, events, actions, cart, products and the fixed legality matrix.
Everything here is data: the only behavior is cart arithmetic, which keeps
the total equal to the sum of line subtotals.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FsmState(str, Enum):
    """Conversation phases of the shopping flow."""
    IDLE = "IDLE"
    BROWSING = "BROWSING"
    CART_OPEN = "CART_OPEN"
    CHECKOUT = "CHECKOUT"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    COMPLETED = "COMPLETED"
    HUMAN_TAKEOVER = "HUMAN_TAKEOVER"


class ConversationEvent(str, Enum):
    """Detected signals. Events inform generation; they never change state."""
    GREETING_RECEIVED = "GREETING_RECEIVED"
    PAYMENT_PROOF_RECEIVED = "PAYMENT_PROOF_RECEIVED"
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    ESCALATION_REQUESTED = "ESCALATION_REQUESTED"
    SESSION_TIMEOUT = "SESSION_TIMEOUT"
    ORDER_CANCELLED = "ORDER_CANCELLED"


class ActionType(str, Enum):
    """Actions the engine may execute - FIXED, cannot be extended by the model."""
    # Catalog
    SHOW_CATALOG = "SHOW_CATALOG"
    SHOW_PRODUCT = "SHOW_PRODUCT"
    # Cart
    ADD_TO_CART = "ADD_TO_CART"
    UPDATE_QUANTITY = "UPDATE_QUANTITY"
    REMOVE_ITEM = "REMOVE_ITEM"
    CLEAR_CART = "CLEAR_CART"
    # Order
    REVIEW_ORDER = "REVIEW_ORDER"
    CONFIRM_ORDER = "CONFIRM_ORDER"
    CANCEL_ORDER = "CANCEL_ORDER"
    # Conversation
    REPLY = "REPLY"
    CLARIFY = "CLARIFY"
    ESCALATE = "ESCALATE"


class ProhibitedAction(str, Enum):
    """Operations the model may never trigger, in any state."""
    MODIFY_PRICE = "MODIFY_PRICE"
    APPLY_DISCOUNT = "APPLY_DISCOUNT"
    APPROVE_PAYMENT = "APPROVE_PAYMENT"
    REJECT_PAYMENT = "REJECT_PAYMENT"
    DISABLE_OVERRIDE = "DISABLE_OVERRIDE"


ALLOWED_ACTION_NAMES: FrozenSet[str] = frozenset(a.value for a in ActionType)
PROHIBITED_ACTION_NAMES: FrozenSet[str] = frozenset(a.value for a in ProhibitedAction)

QUANTITY_MIN = 1
QUANTITY_MAX = 100

ALL_STATES: FrozenSet[FsmState] = frozenset(FsmState)


@dataclass(frozen=True)
class ActionRule:
    """One row of the legality matrix."""
    valid_states: FrozenSet[FsmState]
    requires_product_id: bool = False
    requires_quantity: bool = False
    requires_item_in_cart: bool = False
    requires_cart_not_empty: bool = False


ACTION_RULES: Dict[ActionType, ActionRule] = {
    ActionType.SHOW_CATALOG: ActionRule(ALL_STATES),
    ActionType.SHOW_PRODUCT: ActionRule(ALL_STATES, requires_product_id=True),
    ActionType.ADD_TO_CART: ActionRule(
        frozenset({FsmState.IDLE, FsmState.BROWSING, FsmState.CART_OPEN}),
        requires_product_id=True,
        requires_quantity=True,
    ),
    ActionType.UPDATE_QUANTITY: ActionRule(
        frozenset({FsmState.CART_OPEN}),
        requires_product_id=True,
        requires_quantity=True,
        requires_item_in_cart=True,
    ),
    ActionType.REMOVE_ITEM: ActionRule(
        frozenset({FsmState.CART_OPEN}),
        requires_product_id=True,
        requires_item_in_cart=True,
    ),
    ActionType.CLEAR_CART: ActionRule(
        frozenset({FsmState.CART_OPEN}), requires_cart_not_empty=True
    ),
    ActionType.REVIEW_ORDER: ActionRule(
        frozenset({FsmState.CART_OPEN}), requires_cart_not_empty=True
    ),
    ActionType.CONFIRM_ORDER: ActionRule(
        frozenset({FsmState.CHECKOUT}), requires_cart_not_empty=True
    ),
    ActionType.CANCEL_ORDER: ActionRule(
        frozenset({FsmState.CART_OPEN, FsmState.CHECKOUT, FsmState.AWAITING_PAYMENT})
    ),
    ActionType.REPLY: ActionRule(ALL_STATES),
    ActionType.CLARIFY: ActionRule(ALL_STATES),
    # ESCALATE also raises human_override when executed
    ActionType.ESCALATE: ActionRule(ALL_STATES),
}

if set(ACTION_RULES) != set(ActionType):
    raise RuntimeError("Legality matrix must cover every ActionType")


# =============================================================================
# Cart / catalog
# =============================================================================

class CartItem(BaseModel):
    product_id: str
    name: str
    quantity: int = Field(ge=QUANTITY_MIN, le=QUANTITY_MAX)
    unit_price: float
    subtotal: float = 0.0


class Cart(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    total: float = 0.0
    currency: str = "BOB"

    def find(self, product_id: Optional[str]) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def is_empty(self) -> bool:
        return not self.items

    def recalculate(self) -> "Cart":
        """Recompute every line subtotal and the total, in place."""
        for item in self.items:
            item.subtotal = item.quantity * item.unit_price
        self.total = sum(item.subtotal for item in self.items)
        return self


class Product(BaseModel):
    """Catalog product. Read-only: the engine never writes a price."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: float
    active: bool = True


# =============================================================================
# Proposals / validation
# =============================================================================

class ActionParams(BaseModel):
    """Narrow parameter bag. Untrusted until the validator has seen it."""
    product_id: Optional[Any] = None
    product_name: Optional[Any] = None
    quantity: Optional[Any] = None
    reason: Optional[Any] = None


class ProposedAction(BaseModel):
    """
    An action proposed by the model.

    `type` is a plain string here so prohibited or unknown names can still
    be handed to the validator and rejected with a reason.
    """
    type: str
    params: ActionParams = Field(default_factory=ActionParams)

    def payload(self) -> Dict[str, Any]:
        return self.params.model_dump(exclude_none=True)


class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None
    action: ProposedAction


class Proposal(BaseModel):
    """Validated (or fallback) output of the generation component."""
    proposed_actions: List[ProposedAction] = Field(default_factory=list)
    response_text: str = ""
    suggested_state: Optional[FsmState] = None
    reasoning: Optional[str] = None
    is_fallback: bool = False


# =============================================================================
# Conversation state
# =============================================================================

class ConversationState(BaseModel):
    fsm_state: FsmState = FsmState.IDLE
    human_override: bool = False
    human_override_at: Optional[datetime] = None
    cart: Cart = Field(default_factory=Cart)
    pending_order_id: Optional[str] = None
    last_proposal: Optional[Dict[str, Any]] = None
    updated_at: Optional[datetime] = None


class HistoryTurn(BaseModel):
    role: str  # "customer" | "assistant"
    text: str


class ActionHistoryRecord(BaseModel):
    """Audit row. Written once, never mutated."""
    conversation_id: str
    action_type: str
    action_payload: Dict[str, Any] = Field(default_factory=dict)
    validated: bool
    executed: bool
    fsm_state_before: FsmState
    fsm_state_after: FsmState


def default_state(currency: str = "BOB") -> ConversationState:
    """Initial state for a conversation seen for the first time."""
    return ConversationState(cart=Cart(currency=currency))
