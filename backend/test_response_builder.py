"""Response builder tests: handled / silent / not-handled rules."""
from vendi.agent.domain import ActionParams, FsmState, ProposedAction
from vendi.agent.response_builder import build_response

ADD = ProposedAction(type="ADD_TO_CART", params=ActionParams(product_id="P1", quantity=2))


def test_override_wins_over_text():
    result = build_response(True, "Hola!", FsmState.HUMAN_TAKEOVER, [ADD], [])
    assert result.handled is True
    assert result.response_text is None
    assert result.new_state == FsmState.HUMAN_TAKEOVER
    assert result.executed_actions == [ADD]


def test_text_is_delivered():
    result = build_response(False, "Listo, agregué 2 tortas.", FsmState.CART_OPEN, [ADD], [])
    assert result.handled is True
    assert result.response_text == "Listo, agregué 2 tortas."
    assert result.validation_errors is None


def test_blank_text_is_not_handled():
    for text in ("", "   ", None):
        result = build_response(False, text, FsmState.BROWSING, [], [])
        assert result.handled is False
        assert result.response_text is None
        assert result.new_state == FsmState.BROWSING


def test_errors_attached_when_present():
    errors = ['Action "CONFIRM_ORDER" is not allowed in state "IDLE". Valid states: CHECKOUT']
    result = build_response(False, "Claro", FsmState.IDLE, [], errors)
    assert result.validation_errors == errors

    errors.append("mutated later")
    assert len(result.validation_errors) == 1
