"""
Domain exceptions and safe HTTP error factories.

SECURITY PRINCIPLE: Don't expose internal details to callers.
Use generic error messages externally, detailed logging internally.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class VendiError(Exception):
    """Base class for errors raised by the agent backend."""


class StateGatewayError(VendiError):
    """
    Persistence failure while reading or writing conversation state.

    Never masked: the pipeline cannot decide how to retry a storage write,
    so this always propagates to the caller.
    """


class ConversationNotFound(VendiError):
    """Operator call referenced a conversation that has no stored state."""


class InvalidOperatorAction(VendiError):
    """Operator decision does not apply to the conversation's current state."""


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        Generic 404.

        Example:
            if state is None:
                raise BusinessError.not_found("Conversation")
        """
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation / business logic errors.

        OK to include specific details here since the caller caused the issue.
        Example: "Conversation is not awaiting payment"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides it from the caller.

        SECURITY: Never expose stack traces, SQL errors, or internal paths.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )
