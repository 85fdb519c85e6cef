"""
Action Validator - rule-based legality checks for proposed actions.

================================================================================
SAFETY ARCHITECTURE
================================================================================

THIS MODULE DECIDES WHAT MAY RUN, IT NEVER RUNS ANYTHING.

Flow:
1. The model proposes actions (untrusted, non-deterministic)
2. Validator checks every proposal against the legality matrix
3. Only accepted actions reach the executor
4. Every rejection carries a human-readable reason

Check order per action (first failure wins):
1. Prohibited type (price, discount, payment decisions, override) -> reject
2. Unknown type -> reject
3. Current state not in the action's valid states -> reject
4. Missing / wrong-typed / out-of-range params -> reject
5. Item-targeting action on a product not in the cart -> reject
6. Cart must not be empty -> reject

The validator only reads the supplied state and cart. Same inputs, same
result.
================================================================================
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from vendi.agent.domain import (
    ACTION_RULES,
    ALLOWED_ACTION_NAMES,
    PROHIBITED_ACTION_NAMES,
    QUANTITY_MAX,
    QUANTITY_MIN,
    ActionType,
    Cart,
    FsmState,
    ProposedAction,
    ValidationResult,
)


@dataclass(frozen=True)
class ValidationContext:
    current_state: FsmState
    cart: Cart


def validate_action(action: ProposedAction, context: ValidationContext) -> ValidationResult:
    """Validate a single proposed action against the legality matrix."""
    error = _first_error(action, context)
    if error:
        return ValidationResult(valid=False, error=error, action=action)
    return ValidationResult(valid=True, action=action)


def validate_actions(
    actions: List[ProposedAction], context: ValidationContext
) -> List[ValidationResult]:
    """One result per action, in the order received."""
    return [validate_action(action, context) for action in actions]


def partition_actions(
    actions: List[ProposedAction], context: ValidationContext
) -> Tuple[List[ProposedAction], List[ValidationResult]]:
    """Split proposals into accepted actions and rejected results.

    Accepted actions keep their original relative order.
    """
    accepted: List[ProposedAction] = []
    rejected: List[ValidationResult] = []
    for result in validate_actions(actions, context):
        if result.valid:
            accepted.append(result.action)
        else:
            rejected.append(result)
    return accepted, rejected


def _first_error(action: ProposedAction, context: ValidationContext) -> Optional[str]:
    name = action.type

    if name in PROHIBITED_ACTION_NAMES:
        return f'Action "{name}" is prohibited'

    if name not in ALLOWED_ACTION_NAMES:
        return f'Action "{name}" is not a recognized action type'

    action_type = ActionType(name)
    rule = ACTION_RULES[action_type]
    params = action.params

    if context.current_state not in rule.valid_states:
        valid = ", ".join(sorted(s.value for s in rule.valid_states))
        return (
            f'Action "{name}" is not allowed in state "{context.current_state.value}". '
            f"Valid states: {valid}"
        )

    if rule.requires_product_id:
        error = _check_product_id(params.product_id)
        if error:
            return error

    if rule.requires_quantity:
        error = _check_quantity(params.quantity)
        if error:
            return error

    if rule.requires_item_in_cart and context.cart.find(params.product_id) is None:
        return f'Item with product_id "{params.product_id}" not found in cart'

    if rule.requires_cart_not_empty and context.cart.is_empty():
        return "Cart is empty"

    return None


def _check_product_id(product_id) -> Optional[str]:
    if product_id is None:
        return "product_id is required"
    if not isinstance(product_id, str):
        return f"product_id must be a string, got: {type(product_id).__name__}"
    if not product_id.strip():
        return "product_id is required"
    return None


def _check_quantity(quantity) -> Optional[str]:
    if quantity is None:
        return "quantity is required"
    # bool is an int subclass; True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return f"quantity must be an integer, got: {quantity!r}"
    if quantity < QUANTITY_MIN or quantity > QUANTITY_MAX:
        return f"quantity must be between {QUANTITY_MIN} and {QUANTITY_MAX}, got: {quantity}"
    return None
