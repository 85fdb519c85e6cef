"""Proposal generation for the conversation engine.

The model only PROPOSES actions and a reply. Its output is validated against
a strict schema; anything else becomes the fixed fallback proposal.
"""

from .proposal_generator import GenerationContext, generate_proposal
from .fallback import FALLBACK_RESPONSE_TEXT, fallback_proposal

__all__ = ["GenerationContext", "generate_proposal", "FALLBACK_RESPONSE_TEXT", "fallback_proposal"]
