"""
Proposal generator tests.

Tests:
1. Valid model output becomes a Proposal
2. Any contract violation returns the fallback (no partial trust)
3. Model errors and missing client degrade to the fallback
4. Prompt carries the bounded context
"""
import json

import pytest

from conftest import FakeModelClient
from vendi.agent.domain import Cart, CartItem, ConversationEvent, FsmState, HistoryTurn, Product
from vendi_ai.fallback import FALLBACK_RESPONSE_TEXT
from vendi_ai.groq_client import GroqClient
from vendi_ai.proposal_generator import GenerationContext, generate_proposal, parse_and_validate


def context(state=FsmState.BROWSING, message="quiero 2 tortas de chocolate", **fields):
    return GenerationContext(
        current_state=state,
        customer_message=message,
        product_catalog=[Product(id="P1", name="Torta de chocolate", price=30.0)],
        **fields,
    )


def assert_fallback(proposal, state):
    assert proposal.is_fallback is True
    assert proposal.proposed_actions == []
    assert proposal.response_text == FALLBACK_RESPONSE_TEXT
    assert proposal.suggested_state == state


VALID = {
    "proposed_actions": [{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": 2}}],
    "response_text": "Listo, agregué 2 tortas de chocolate a tu carrito.",
    "suggested_state": "CART_OPEN",
    "reasoning": "Customer asked for two cakes",
}


def test_valid_output_accepted():
    print("\n" + "=" * 70)
    print("TEST 1: Valid model output")
    print("=" * 70)

    proposal = generate_proposal(context(), client=FakeModelClient(VALID))

    assert proposal.is_fallback is False
    assert len(proposal.proposed_actions) == 1
    add = proposal.proposed_actions[0]
    assert add.type == "ADD_TO_CART"
    assert add.params.product_id == "P1"
    assert add.params.quantity == 2
    assert proposal.suggested_state == FsmState.CART_OPEN
    assert proposal.reasoning == "Customer asked for two cakes"
    print("  PASS: Proposal built from contract output")


def test_suggested_state_defaults_to_current():
    output = {"proposed_actions": [{"type": "REPLY"}], "response_text": "¡Hola!"}
    proposal = generate_proposal(context(state=FsmState.IDLE), client=FakeModelClient(output))
    assert proposal.suggested_state == FsmState.IDLE
    assert proposal.proposed_actions[0].params.product_id is None


def test_whole_number_float_quantity_coerced():
    output = {
        "proposed_actions": [{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": 3.0}}],
        "response_text": "ok",
    }
    proposal = generate_proposal(context(), client=FakeModelClient(output))
    assert proposal.proposed_actions[0].params.quantity == 3
    assert isinstance(proposal.proposed_actions[0].params.quantity, int)


def test_code_fence_is_stripped():
    fenced = "```json\n" + json.dumps(VALID) + "\n```"
    proposal = generate_proposal(context(), client=FakeModelClient(fenced))
    assert proposal.is_fallback is False


def _with(**overrides):
    data = json.loads(json.dumps(VALID))
    data.update(overrides)
    return data


@pytest.mark.parametrize("output", [
    "this is not json",
    "[1, 2, 3]",
    "",
    # Scenario C: invented action
    _with(proposed_actions=[{"type": "SEND_GIFT", "params": {}}]),
    # prohibited names are not in the contract either
    _with(proposed_actions=[{"type": "APPLY_DISCOUNT", "params": {}}]),
    _with(proposed_actions=[]),
    _with(proposed_actions=[{"type": "REPLY"}] * 6),
    _with(response_text="x" * 501),
    _with(response_text=42),
    _with(suggested_state="SHIPPED"),
    _with(proposed_actions=[{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": 0}}]),
    _with(proposed_actions=[{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": 101}}]),
    _with(proposed_actions=[{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": 2.5}}]),
    _with(proposed_actions=[{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": "2"}}]),
    _with(proposed_actions=[{"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": True}}]),
    _with(proposed_actions=[{"type": "ADD_TO_CART", "params": {"product_id": 7, "quantity": 1}}]),
])
def test_contract_violation_returns_fallback(output):
    proposal = generate_proposal(context(state=FsmState.CART_OPEN), client=FakeModelClient(output))
    assert_fallback(proposal, FsmState.CART_OPEN)


def test_one_bad_action_discards_all():
    output = _with(proposed_actions=[
        {"type": "ADD_TO_CART", "params": {"product_id": "P1", "quantity": 2}},
        {"type": "MODIFY_PRICE", "params": {"product_id": "P1"}},
    ])
    proposal = generate_proposal(context(), client=FakeModelClient(output))
    assert_fallback(proposal, FsmState.BROWSING)


def test_max_length_boundaries_accepted():
    output = _with(proposed_actions=[{"type": "REPLY"}] * 5, response_text="x" * 500)
    proposal = generate_proposal(context(), client=FakeModelClient(output))
    assert proposal.is_fallback is False
    assert len(proposal.proposed_actions) == 5


def test_client_exception_returns_fallback():
    print("\n" + "=" * 70)
    print("TEST: Model call raises")
    print("=" * 70)

    client = FakeModelClient(error=TimeoutError("model timed out"))
    proposal = generate_proposal(context(state=FsmState.CHECKOUT), client=client)

    assert_fallback(proposal, FsmState.CHECKOUT)
    assert len(client.prompts) == 1
    print("  PASS: Exception degraded to fallback")


def test_client_returning_none_returns_fallback():
    proposal = generate_proposal(context(), client=FakeModelClient(None))
    assert_fallback(proposal, FsmState.BROWSING)


def test_unconfigured_groq_client_returns_fallback():
    client = GroqClient(api_key="")
    assert client.is_available() is False
    proposal = generate_proposal(context(), client=client)
    assert_fallback(proposal, FsmState.BROWSING)


def test_prompt_contains_bounded_context():
    cart = Cart(items=[CartItem(product_id="P1", name="Torta de chocolate", quantity=1, unit_price=30.0)]).recalculate()
    client = FakeModelClient(VALID)
    generate_proposal(
        context(
            state=FsmState.CART_OPEN,
            message="y una más por favor",
            cart=cart,
            detected_events=[ConversationEvent.GREETING_RECEIVED],
            recent_history=[HistoryTurn(role="customer", text="hola")],
        ),
        client=client,
    )

    prompt = client.prompts[0]
    assert "CART_OPEN" in prompt
    assert "y una más por favor" in prompt
    assert "GREETING_RECEIVED" in prompt
    assert "Torta de chocolate" in prompt
    assert "hola" in prompt


def test_parse_and_validate_accepts_decoded_dict():
    assert parse_and_validate(VALID) is not None
    assert parse_and_validate("```\n" + json.dumps(VALID) + "\n```") is not None
    assert parse_and_validate(["not", "a", "dict"]) is None
