"""Proposal Schema - strict JSON contract for model output.

The model is asked to output ONLY this schema.
Any deviation (unknown field type, unknown action, out-of-range value)
fails validation and the whole output is replaced by the fallback.
"""

import math
from typing import List, Optional

from pydantic import BaseModel, Field, StrictStr, field_validator

from vendi.agent.domain import (
    QUANTITY_MAX,
    QUANTITY_MIN,
    ActionParams,
    ActionType,
    FsmState,
    Proposal,
    ProposedAction,
)

MAX_ACTIONS = 5
MAX_RESPONSE_TEXT_LENGTH = 500


class ContractParams(BaseModel):
    """Typed action parameters. Unknown keys are ignored."""
    product_id: Optional[StrictStr] = None
    product_name: Optional[StrictStr] = None
    quantity: Optional[int] = None
    reason: Optional[StrictStr] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def validate_quantity(cls, v):
        """Only whole numbers in range.

        Validation rules:
        - None passes (optional)
        - Booleans and strings are rejected (no silent coercion)
        - 3.0 is accepted as 3, 3.5 is rejected
        - Values outside [1, 100] are rejected
        """
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("quantity must be an integer")
        if not math.isfinite(v) or v != int(v):
            raise ValueError("quantity must be an integer")
        v = int(v)
        if v < QUANTITY_MIN or v > QUANTITY_MAX:
            raise ValueError(f"quantity must be between {QUANTITY_MIN} and {QUANTITY_MAX}")
        return v


class ContractAction(BaseModel):
    type: ActionType
    params: Optional[ContractParams] = None

    def to_proposed(self) -> ProposedAction:
        params = self.params or ContractParams()
        return ProposedAction(
            type=self.type.value,
            params=ActionParams(**params.model_dump()),
        )


class ProposalOutput(BaseModel):
    """Validated output from the model.

    Fields:
        proposed_actions: 1-5 actions from the allowed list
        response_text: Customer-facing reply, max 500 characters
        suggested_state: Optional next state hint (audit only)
        reasoning: Optional free text, never shown to the customer
    """
    proposed_actions: List[ContractAction] = Field(min_length=1, max_length=MAX_ACTIONS)
    response_text: StrictStr = Field(max_length=MAX_RESPONSE_TEXT_LENGTH)
    suggested_state: Optional[FsmState] = None
    reasoning: Optional[StrictStr] = None

    def to_proposal(self, current_state: FsmState) -> Proposal:
        """Convert to the engine's Proposal, defaulting the suggested state."""
        return Proposal(
            proposed_actions=[action.to_proposed() for action in self.proposed_actions],
            response_text=self.response_text,
            suggested_state=self.suggested_state or current_state,
            reasoning=self.reasoning,
        )
