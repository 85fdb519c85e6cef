"""
Action validator tests.

Covers:
1. Prohibited actions rejected in every state
2. Legality matrix (state x action) is total and deterministic
3. Parameter checks (product_id, quantity bounds, integer only)
4. Cart preconditions (item in cart, cart not empty)
5. Order preservation in partition_actions
"""
import pytest

from vendi.agent.action_validator import (
    ValidationContext,
    partition_actions,
    validate_action,
    validate_actions,
)
from vendi.agent.domain import (
    ACTION_RULES,
    ActionParams,
    ActionType,
    Cart,
    CartItem,
    FsmState,
    ProhibitedAction,
    ProposedAction,
)


def action(type_, **params):
    return ProposedAction(type=type_, params=ActionParams(**params))


def cart_with(*lines):
    cart = Cart(items=[
        CartItem(product_id=pid, name=pid, quantity=qty, unit_price=price)
        for pid, qty, price in lines
    ])
    return cart.recalculate()


EMPTY = Cart()
ONE_LINE = cart_with(("P1", 2, 30.0))


@pytest.mark.parametrize("prohibited", [p.value for p in ProhibitedAction])
@pytest.mark.parametrize("state", list(FsmState))
def test_prohibited_actions_always_rejected(prohibited, state):
    result = validate_action(action(prohibited), ValidationContext(state, ONE_LINE))
    assert not result.valid
    assert "prohibited" in result.error


def test_unknown_action_rejected():
    result = validate_action(action("SEND_GIFT"), ValidationContext(FsmState.BROWSING, EMPTY))
    assert not result.valid
    assert "not a recognized action type" in result.error


def test_confirm_order_in_idle_rejected():
    """Scenario B: CONFIRM_ORDER from IDLE is illegal."""
    result = validate_action(action("CONFIRM_ORDER"), ValidationContext(FsmState.IDLE, EMPTY))
    assert not result.valid
    assert 'not allowed in state "IDLE"' in result.error


def test_matrix_is_total_and_deterministic():
    """Every (action, state) pair yields a result, and the same one twice."""
    for action_type in ActionType:
        for state in FsmState:
            for cart in (EMPTY, ONE_LINE):
                proposed = action(action_type.value, product_id="P1", quantity=1)
                context = ValidationContext(state, cart)
                first = validate_action(proposed, context)
                second = validate_action(proposed, context)
                assert first == second
                if state not in ACTION_RULES[action_type].valid_states:
                    assert not first.valid


@pytest.mark.parametrize("state", list(FsmState))
def test_conversation_actions_allowed_everywhere(state):
    for name in ("SHOW_CATALOG", "REPLY", "CLARIFY", "ESCALATE"):
        assert validate_action(action(name), ValidationContext(state, EMPTY)).valid


def test_show_product_needs_product_id():
    context = ValidationContext(FsmState.IDLE, EMPTY)
    assert not validate_action(action("SHOW_PRODUCT"), context).valid
    assert validate_action(action("SHOW_PRODUCT", product_id="P1"), context).valid


@pytest.mark.parametrize("quantity", [0, -1, 101, 2.5, 2.0, "3", True, None])
def test_add_to_cart_rejects_bad_quantities(quantity):
    result = validate_action(
        action("ADD_TO_CART", product_id="P1", quantity=quantity),
        ValidationContext(FsmState.BROWSING, EMPTY),
    )
    assert not result.valid
    assert "quantity" in result.error


@pytest.mark.parametrize("quantity", [1, 50, 100])
def test_add_to_cart_accepts_bounds(quantity):
    result = validate_action(
        action("ADD_TO_CART", product_id="P1", quantity=quantity),
        ValidationContext(FsmState.BROWSING, EMPTY),
    )
    assert result.valid


def test_add_to_cart_rejects_non_string_product_id():
    result = validate_action(
        action("ADD_TO_CART", product_id=42, quantity=1),
        ValidationContext(FsmState.IDLE, EMPTY),
    )
    assert not result.valid
    assert "product_id" in result.error


@pytest.mark.parametrize("quantity", [0, 101, 1.5])
def test_update_quantity_rejects_bad_quantities(quantity):
    result = validate_action(
        action("UPDATE_QUANTITY", product_id="P1", quantity=quantity),
        ValidationContext(FsmState.CART_OPEN, ONE_LINE),
    )
    assert not result.valid


def test_item_actions_require_item_in_cart():
    context = ValidationContext(FsmState.CART_OPEN, ONE_LINE)
    assert validate_action(action("REMOVE_ITEM", product_id="P1"), context).valid

    missing = validate_action(action("REMOVE_ITEM", product_id="P2"), context)
    assert not missing.valid
    assert 'product_id "P2" not found in cart' in missing.error

    update = validate_action(action("UPDATE_QUANTITY", product_id="P2", quantity=3), context)
    assert not update.valid


def test_cart_not_empty_preconditions():
    empty_open = ValidationContext(FsmState.CART_OPEN, EMPTY)
    for name in ("CLEAR_CART", "REVIEW_ORDER"):
        result = validate_action(action(name), empty_open)
        assert not result.valid
        assert result.error == "Cart is empty"

    assert not validate_action(action("CONFIRM_ORDER"), ValidationContext(FsmState.CHECKOUT, EMPTY)).valid
    assert validate_action(action("CONFIRM_ORDER"), ValidationContext(FsmState.CHECKOUT, ONE_LINE)).valid


@pytest.mark.parametrize("state", [FsmState.CART_OPEN, FsmState.CHECKOUT, FsmState.AWAITING_PAYMENT])
def test_cancel_order_valid_states(state):
    assert validate_action(action("CANCEL_ORDER"), ValidationContext(state, EMPTY)).valid


@pytest.mark.parametrize("state", [FsmState.IDLE, FsmState.BROWSING, FsmState.COMPLETED, FsmState.HUMAN_TAKEOVER])
def test_cancel_order_invalid_states(state):
    assert not validate_action(action("CANCEL_ORDER"), ValidationContext(state, EMPTY)).valid


def test_partition_preserves_order_and_reports_every_rejection():
    proposals = [
        action("REPLY"),
        action("APPLY_DISCOUNT"),
        action("ADD_TO_CART", product_id="P2", quantity=1),
        action("CONFIRM_ORDER"),
        action("ADD_TO_CART", product_id="P3", quantity=2),
    ]
    context = ValidationContext(FsmState.CART_OPEN, ONE_LINE)

    accepted, rejected = partition_actions(proposals, context)

    assert [a.type for a in accepted] == ["REPLY", "ADD_TO_CART", "ADD_TO_CART"]
    assert [a.params.product_id for a in accepted[1:]] == ["P2", "P3"]
    assert [r.action.type for r in rejected] == ["APPLY_DISCOUNT", "CONFIRM_ORDER"]
    assert all(r.error for r in rejected)
    assert len(validate_actions(proposals, context)) == len(proposals)


def test_validation_never_mutates_cart():
    cart = cart_with(("P1", 2, 30.0))
    before = cart.model_dump()
    validate_actions(
        [action("REMOVE_ITEM", product_id="P1"), action("CLEAR_CART")],
        ValidationContext(FsmState.CART_OPEN, cart),
    )
    assert cart.model_dump() == before
