"""Build the final ProcessMessageResult. Pure function, no business logic."""
from typing import List, Optional

from pydantic import BaseModel, Field

from vendi.agent.domain import FsmState, ProposedAction


class ProcessMessageResult(BaseModel):
    handled: bool
    response_text: Optional[str] = None
    new_state: Optional[FsmState] = None
    executed_actions: List[ProposedAction] = Field(default_factory=list)
    validation_errors: Optional[List[str]] = None


def build_response(
    human_override: bool,
    response_text: Optional[str],
    new_state: FsmState,
    executed_actions: List[ProposedAction],
    validation_errors: List[str],
) -> ProcessMessageResult:
    """
    Rules, first match wins:
    - human_override -> handled, no text (the caller must stay silent)
    - non-empty response_text -> handled with that text
    - otherwise -> not handled (caller falls back to another path)

    Validation errors are attached whenever there are any.
    """
    errors = list(validation_errors) if validation_errors else None

    if human_override:
        handled, text = True, None
    elif response_text and response_text.strip():
        handled, text = True, response_text
    else:
        handled, text = False, None

    return ProcessMessageResult(
        handled=handled,
        response_text=text,
        new_state=new_state,
        executed_actions=list(executed_actions),
        validation_errors=errors,
    )
