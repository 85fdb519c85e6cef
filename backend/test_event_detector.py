"""Event detector tests: keyword events, priority order, timeout, override."""
from datetime import datetime, timedelta, timezone

import pytest

from vendi.agent.domain import ConversationEvent
from vendi.agent.event_detector import detect_events

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("message", [
    "Quiero hablar con una persona",
    "me pasas con un asesor?",
    "can I talk to a human please",
])
def test_escalation_detected(message):
    assert ConversationEvent.ESCALATION_REQUESTED in detect_events(message, human_override=False)


@pytest.mark.parametrize("message", [
    "ya pagué, te mando el comprobante",
    "te transferí hace un rato",
    "I paid already",
])
def test_payment_proof_detected(message):
    assert detect_events(message, human_override=False) == [ConversationEvent.PAYMENT_PROOF_RECEIVED]


@pytest.mark.parametrize("message", [
    "quiero transferir, ¿a qué cuenta?",
    "puedo pagar por transferencia?",
])
def test_intent_to_pay_is_not_proof(message):
    assert ConversationEvent.PAYMENT_PROOF_RECEIVED not in detect_events(message, human_override=False)


def test_image_counts_as_payment_proof():
    events = detect_events("", human_override=False, has_image=True)
    assert events == [ConversationEvent.PAYMENT_PROOF_RECEIVED]


@pytest.mark.parametrize("message", ["quiero cancelar mi pedido", "ya no quiero nada", "cancel my order"])
def test_cancellation_detected(message):
    assert ConversationEvent.ORDER_CANCELLED in detect_events(message, human_override=False)


@pytest.mark.parametrize("message", ["Hola!", "buenas tardes", "hi there", "Good morning"])
def test_greeting_detected(message):
    assert detect_events(message, human_override=False) == [ConversationEvent.GREETING_RECEIVED]


def test_plain_order_message_has_no_events():
    assert detect_events("quiero 2 tortas de chocolate", human_override=False) == []


def test_events_in_priority_order():
    events = detect_events(
        "hola, ya pagué pero quiero hablar con una persona",
        human_override=False,
        last_activity_at=NOW - timedelta(hours=2),
        now=NOW,
    )
    assert events == [
        ConversationEvent.ESCALATION_REQUESTED,
        ConversationEvent.PAYMENT_PROOF_RECEIVED,
        ConversationEvent.GREETING_RECEIVED,
        ConversationEvent.SESSION_TIMEOUT,
    ]


def test_session_timeout_window():
    inside = detect_events("ok", human_override=False, last_activity_at=NOW - timedelta(minutes=29), now=NOW)
    outside = detect_events("ok", human_override=False, last_activity_at=NOW - timedelta(minutes=31), now=NOW)
    assert inside == []
    assert outside == [ConversationEvent.SESSION_TIMEOUT]


def test_naive_last_activity_is_treated_as_utc():
    naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    events = detect_events("ok", human_override=False, last_activity_at=naive, now=NOW)
    assert events == [ConversationEvent.SESSION_TIMEOUT]


def test_human_override_silences_detection():
    events = detect_events(
        "hola, quiero hablar con un humano",
        human_override=True,
        has_image=True,
        last_activity_at=NOW - timedelta(days=1),
        now=NOW,
    )
    assert events == []


def test_empty_message_is_fine():
    assert detect_events("", human_override=False) == []
    assert detect_events(None, human_override=False) == []
