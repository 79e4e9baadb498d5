"""
LLM Client for the Google Gemini API.

All generative features go through GeminiClient.generate:
- the task's complexity tier picks the candidate models
- models that answer with quota/429 errors are parked in the ModelManager
- other failures fall through to the next model with a short linear backoff
- when the whole tier is parked, AIRateLimitError tells callers when to retry
"""
import re
import time
from typing import Optional

import google.generativeai as genai

from applyos.core.config import get_settings
from applyos.core.exceptions import AIRateLimitError, LLMError
from applyos.core.logging_config import get_logger
from applyos.llm.model_manager import ModelManager, TaskComplexity, get_model_manager

logger = get_logger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "AI service not configured. Please add your Gemini API key to use this feature."
)

_RETRY_AFTER_PATTERN = re.compile(r"retry(?:_delay| in)?[^0-9]{0,20}(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)


def is_rate_limit_error(error: Exception) -> bool:
    """Gemini reports quota exhaustion as 429 / RESOURCE_EXHAUSTED."""
    message = str(error).lower()
    return any(
        marker in message
        for marker in ("429", "quota", "rate limit", "resource_exhausted", "resource exhausted")
    )


def parse_retry_after(error: Exception) -> Optional[int]:
    """Pull a 'retry in 23s' hint out of a Gemini error, if present."""
    match = _RETRY_AFTER_PATTERN.search(str(error))
    if not match:
        return None
    return max(1, int(float(match.group(1))))


class GeminiClient:
    """
    Thin wrapper around google-generativeai with tiered model fallback.

    Example:
        >>> client = GeminiClient()
        >>> client.generate("Say hi", TaskComplexity.SIMPLE)
        'Hi!'
    """

    def __init__(self, model_manager: Optional[ModelManager] = None):
        self.settings = get_settings()
        self.model_manager = model_manager or get_model_manager()
        self.temperature = self.settings.llm_temperature
        self.max_tokens = self.settings.llm_max_tokens
        self.retry_delay = self.settings.llm_retry_delay_seconds

        if self.is_configured:
            genai.configure(api_key=self.settings.gemini_api_key)
            logger.info("Gemini client initialized")
        else:
            logger.warning("GEMINI_API_KEY not set; AI features disabled")

    @property
    def is_configured(self) -> bool:
        return self.settings.ai_enabled

    def generate(
        self,
        prompt: str,
        complexity: TaskComplexity = TaskComplexity.MEDIUM,
        system_prompt: Optional[str] = None,
    ) -> str:
        """
        Generate text, walking the tier's available models in order.

        Raises:
            LLMError: AI disabled, or every attempted model failed
            AIRateLimitError: every model of the tier is rate limited
        """
        if not self.is_configured:
            raise LLMError(NOT_CONFIGURED_MESSAGE)

        models = self.model_manager.get_available_models(complexity)
        if not models:
            raise AIRateLimitError(self.model_manager.next_available_time(complexity))

        last_error: Optional[Exception] = None

        for i, model in enumerate(models):
            try:
                if i > 0:
                    logger.info(f"Attempt {i + 1}: falling back to {model}")
                    time.sleep(self.retry_delay * i)

                text = self._generate_google(prompt, system_prompt, model)
                logger.debug(f"Generated {len(text)} chars with {model}")
                return text

            except Exception as e:
                if is_rate_limit_error(e):
                    self.model_manager.mark_rate_limited(model, parse_retry_after(e))
                else:
                    logger.error(f"Gemini call failed ({model}): {e}")
                last_error = e

        if self.model_manager.all_limited(complexity):
            raise AIRateLimitError(self.model_manager.next_available_time(complexity))

        logger.critical(f"All Gemini models failed for tier {complexity.value}")
        raise LLMError(f"AI generation failed. Last error: {last_error}")

    def _generate_google(self, prompt: str, system_prompt: Optional[str], model: str) -> str:
        model_instance = genai.GenerativeModel(
            model_name=model,
            system_instruction=system_prompt,
        )
        generation_config = genai.types.GenerationConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )
        response = model_instance.generate_content(prompt, generation_config=generation_config)

        text = response.text
        if not text or not text.strip():
            raise LLMError(f"Empty response from {model}")
        return text


_llm_client: Optional[GeminiClient] = None


def get_llm_client() -> GeminiClient:
    """Get or create the shared Gemini client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = GeminiClient()
    return _llm_client


def reset_llm_client() -> None:
    global _llm_client
    _llm_client = None
