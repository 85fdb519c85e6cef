"""
Audit logging for engine decisions and operator actions.

JSON lines on a separate "audit" logger so they can be shipped to
centralized logging independently of application logs. These complement
the action_history table; they never replace it.
"""
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

# Separate logger for audit events
audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for conversation-engine events."""

    @staticmethod
    def log_turn(
        conversation_id: str,
        state_before: str,
        state_after: str,
        executed: List[str],
        rejected: List[str],
        fallback: bool,
    ):
        """
        One line per processed message.

        Usage:
            AuditLog.log_turn("c-1", "BROWSING", "CART_OPEN", ["ADD_TO_CART"], [], False)
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": "agent.turn",
            "conversation_id": conversation_id,
            "state_before": state_before,
            "state_after": state_after,
            "executed": executed,
            "rejected": rejected,
            "fallback": fallback,
        }
        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_silenced(conversation_id: str):
        """Message received while a human is in control; the agent stayed silent."""
        audit_logger.info(json.dumps({
            "timestamp": _now(),
            "event_type": "agent.silenced",
            "conversation_id": conversation_id,
        }))

    @staticmethod
    def log_operator_action(
        action: str,  # "release_override", "payment_approved", "payment_rejected"
        conversation_id: str,
        state_before: str,
        state_after: str,
        details: Optional[str] = None,
    ):
        """
        Log human operator decisions that move the FSM.

        Usage:
            AuditLog.log_operator_action("payment_approved", "c-1", "AWAITING_PAYMENT", "COMPLETED")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"operator.{action}",
            "conversation_id": conversation_id,
            "state_before": state_before,
            "state_after": state_after,
        }
        if details:
            log_entry["details"] = details

        audit_logger.info(json.dumps(log_entry))
