"""
Groq API Client - wrapper for the proposal generation call.

================================================================================
CRITICAL: THE MODEL ONLY PROPOSES
================================================================================

This client sends the prompt built by `prompts.build_prompt` and returns
the raw text. It DOES NOT:
- Parse or trust the output (proposal_generator validates it)
- Touch conversation state
- Send anything to customers

Every failure (missing key, timeout, rate limit, API error) returns None,
which the generator turns into the fixed fallback proposal.
================================================================================
"""

import logging
import time
from typing import Optional

from groq import Groq, APIError, APITimeoutError, RateLimitError

from vendi.core.config import settings

# NEVER log API keys
logger = logging.getLogger(__name__)


class GroqClient:
    """
    Minimal wrapper for the Groq chat completions API.

    - Temperature: 0 (same context, same proposal as far as the API allows)
    - Max tokens: 700 (five actions plus a 500-char reply fit comfortably)
    - JSON mode: the API is asked for a JSON object
    - Timeout and retries come from settings
    """

    TEMPERATURE = 0
    MAX_TOKENS = 700

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.model = model or settings.GROQ_MODEL
        self.timeout = settings.GROQ_TIMEOUT_SECONDS
        self.max_retries = settings.GROQ_MAX_RETRIES

        if not api_key:
            logger.warning(
                "GROQ_API_KEY not found in environment. "
                "Proposal generation is DISABLED; every turn will use the fallback reply."
            )
            self.client = None
        else:
            # Retries are handled below so backoff is visible in our logs
            self.client = Groq(api_key=api_key, timeout=self.timeout, max_retries=0)
            logger.info("Groq client initialized")

    def is_available(self) -> bool:
        return self.client is not None

    def complete(self, prompt: str) -> Optional[str]:
        """
        Call the model and return its raw text.

        Args:
            prompt: Complete prompt (instructions + JSON context)

        Returns:
            Raw response text, or None on any error
        """
        if not self.is_available():
            logger.debug("Groq client not available - skipping model call")
            return None

        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.TEMPERATURE,
                    max_tokens=self.MAX_TOKENS,
                    response_format={"type": "json_object"},
                    stream=False,
                )

                if response.choices:
                    content = response.choices[0].message.content
                    logger.debug(f"Model response received: {len(content or '')} chars (attempt {attempt + 1})")
                    return content
                logger.warning("Model returned empty response")
                return None

            except APITimeoutError:
                if attempt < self.max_retries:
                    wait_time = 0.5 * (2 ** attempt)  # 0.5s, 1s
                    logger.warning(f"Groq timeout, retry {attempt + 1}/{self.max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning(f"Groq API timeout after {self.max_retries} retries")
                    return None

            except RateLimitError:
                if attempt < self.max_retries:
                    wait_time = 1.0 * (2 ** attempt)  # 1s, 2s
                    logger.warning(f"Groq rate limit, retry {attempt + 1}/{self.max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning("Groq API rate limit exceeded after retries")
                    return None

            except APIError as e:
                logger.error(f"Groq API error (permanent): {e}")
                return None

        return None


_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    """Get or create the shared GroqClient."""
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client
