"""
Event Detector - keyword based detection of conversation events.

Pure function: no database, no logging, no clock reads unless `now` is
omitted. Events are returned in priority order:
    1. ESCALATION_REQUESTED
    2. PAYMENT_PROOF_RECEIVED
    3. ORDER_CANCELLED
    4. GREETING_RECEIVED
    5. SESSION_TIMEOUT

False positives on escalation only cost an extra handoff, so the escalation
patterns are intentionally broad.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from vendi.agent.domain import ConversationEvent

ESCALATION_PATTERNS = [
    r"hablar con (alguien|una persona|un humano)",
    r"\basesor(a)?\b",
    r"\bhumano\b",
    r"\b(talk|speak) to (a |an )?(human|person|agent|someone)\b",
    r"\breal person\b",
]

PAYMENT_PROOF_PATTERNS = [
    r"pagu[eé]",
    r"\btransfer[ií]\b",
    r"\bcomprobante\b",
    r"\bi (have )?paid\b",
    r"\bpayment (sent|done|made)\b",
]

CANCELLATION_PATTERNS = [
    r"cancelar (el |mi )?pedido",
    r"ya no quiero",
    r"\bcancel (the |my )?order\b",
]

GREETING_PATTERNS = [
    r"\bhola\b",
    r"buen(os|as) (d[ií]as|tardes|noches)",
    r"^\s*(hi|hello|hey)\b",
    r"\bgood (morning|afternoon|evening)\b",
]


def _matches(patterns: List[str], text: str) -> bool:
    return any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def detect_events(
    customer_message: str,
    *,
    human_override: bool,
    has_image: bool = False,
    last_activity_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
    timeout_minutes: int = 30,
) -> List[ConversationEvent]:
    """Detect conversation events from a customer message and its signals.

    Args:
        customer_message: Raw customer text (may be empty)
        human_override: While a human is in control no events are surfaced
        has_image: Message carried an image (treated as payment proof)
        last_activity_at: Last persisted activity of the conversation
        now: Reference time for the session timeout check
        timeout_minutes: Inactivity window after which SESSION_TIMEOUT fires

    Returns:
        Ordered list of events, highest priority first
    """
    if human_override:
        return []

    text = (customer_message or "").lower()
    events: List[ConversationEvent] = []

    if _matches(ESCALATION_PATTERNS, text):
        events.append(ConversationEvent.ESCALATION_REQUESTED)

    if has_image or _matches(PAYMENT_PROOF_PATTERNS, text):
        events.append(ConversationEvent.PAYMENT_PROOF_RECEIVED)

    if _matches(CANCELLATION_PATTERNS, text):
        events.append(ConversationEvent.ORDER_CANCELLED)

    if _matches(GREETING_PATTERNS, text):
        events.append(ConversationEvent.GREETING_RECEIVED)

    if last_activity_at is not None:
        reference = _as_utc(now or datetime.now(timezone.utc))
        if reference - _as_utc(last_activity_at) > timedelta(minutes=timeout_minutes):
            events.append(ConversationEvent.SESSION_TIMEOUT)

    return events
