"""
LLM Service - completion provider adapter

Wraps an OpenAI-compatible chat completions endpoint (DeepSeek by default)
and turns every SDK failure into one of three domain errors:

- ProviderAuthError: 401/403 or no API key configured
- ProviderQuotaError: 429, or any error whose text mentions "quota"
- ProviderError: everything else, timeouts included

Only plain connection errors are retried. Timeouts and rate limits are not:
the caller decides what a rate limit means (chat and content generation fall
back locally).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

from openai import (
    AsyncOpenAI, APIConnectionError, APIStatusError, APITimeoutError,
    AuthenticationError, PermissionDeniedError, RateLimitError,
)
import tiktoken

from aistaff.config import settings
from aistaff.errors import ProviderError, ProviderAuthError, ProviderQuotaError, ProviderErrorKind

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM completion"""
    content: str
    model: str
    tokens_prompt: int
    tokens_completion: int
    tokens_total: int
    finish_reason: Optional[str] = None
    usage_estimated: bool = False

    @property
    def usage(self) -> Dict[str, Any]:
        return {
            "prompt_tokens": self.tokens_prompt,
            "completion_tokens": self.tokens_completion,
            "total_tokens": self.tokens_total,
            "estimated": self.usage_estimated,
        }


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def classify_provider_error(error: BaseException) -> ProviderErrorKind:
    """Map a provider/SDK exception onto the three-way classification."""
    if isinstance(error, ProviderError):
        return error.kind
    if isinstance(error, APITimeoutError):
        return ProviderErrorKind.OTHER

    status = _status_of(error)
    if isinstance(error, (AuthenticationError, PermissionDeniedError)) or status in (401, 403):
        return ProviderErrorKind.AUTH
    if isinstance(error, RateLimitError) or status == 429:
        return ProviderErrorKind.QUOTA
    if "quota" in str(error).lower():
        return ProviderErrorKind.QUOTA
    return ProviderErrorKind.OTHER


def to_provider_error(error: BaseException) -> ProviderError:
    """Wrap an SDK exception in the matching domain error."""
    if isinstance(error, ProviderError):
        return error

    kind = classify_provider_error(error)
    status = _status_of(error)
    if kind == ProviderErrorKind.AUTH:
        return ProviderAuthError(
            "Completion provider authentication failed. Verify LLM_API_KEY.", status=status
        )
    if kind == ProviderErrorKind.QUOTA:
        return ProviderQuotaError(
            "Completion provider rate limit/quota exceeded. Please try again later.", status=status
        )
    if isinstance(error, APITimeoutError):
        return ProviderError("Completion provider timed out.", status=status)
    detail = getattr(error, "message", None) or str(error) or "Unknown provider error"
    return ProviderError(detail, status=status)


class LLMService:
    """
    Completion provider client.

    ``complete`` returns an LLMResponse or raises a ProviderError subclass;
    SDK exceptions never escape.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.base_url = base_url or settings.llm_base_url
        self.default_model = model or settings.llm_model
        self.timeout = timeout or settings.llm_timeout_seconds
        self.max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self._client: Optional[AsyncOpenAI] = None
        self._encoding = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            # SDK-level retries off: a 429 must surface immediately
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ProviderAuthError(
                "Completion provider API key not configured. Set LLM_API_KEY (or DEEPSEEK_API_KEY)."
            )

    def count_tokens(self, text: str) -> int:
        """Count tokens in a text string (approximation for non-OpenAI models)."""
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding("cl100k_base")
        return len(self._encoding.encode(text))

    def count_message_tokens(self, messages: List[Dict[str, str]]) -> int:
        total = 0
        for message in messages:
            total += 4  # Approximate overhead per message
            total += self.count_tokens(message.get("content", ""))
            total += self.count_tokens(message.get("role", ""))
        total += 2  # Priming tokens
        return total

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        model: Optional[str] = None,
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            messages: Ordered list of {"role", "content"} dicts
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            model: Override the configured model

        Returns:
            LLMResponse with content and token usage
        """
        self.ensure_configured()
        model = model or self.default_model
        retry_delay = 1.0

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(f"Calling completion provider ({model}, {len(messages)} messages)")
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
                break

            except APITimeoutError as e:
                logger.error(f"Completion provider timed out after {self.timeout}s")
                raise to_provider_error(e) from e

            except APIConnectionError as e:
                if attempt < self.max_retries:
                    wait_time = retry_delay * (2 ** attempt)
                    logger.warning(f"Connection error, retrying in {wait_time}s: {e}")
                    await asyncio.sleep(wait_time)
                    continue
                logger.error(f"Completion provider unreachable: {e}")
                raise to_provider_error(e) from e

            except APIStatusError as e:
                logger.error(f"Completion provider error {e.status_code}: {e.message}")
                raise to_provider_error(e) from e

            except Exception as e:
                logger.error(f"Completion provider call failed: {e}")
                raise to_provider_error(e) from e

        if not response.choices:
            raise ProviderError("Completion provider returned no choices.")

        choice = response.choices[0]
        content = choice.message.content or ""
        usage = response.usage

        if usage is not None:
            return LLMResponse(
                content=content,
                model=response.model or model,
                tokens_prompt=usage.prompt_tokens or 0,
                tokens_completion=usage.completion_tokens or 0,
                tokens_total=usage.total_tokens or 0,
                finish_reason=choice.finish_reason,
            )

        # Provider omitted usage; estimate it locally
        prompt_tokens = self.count_message_tokens(messages)
        completion_tokens = self.count_tokens(content)
        return LLMResponse(
            content=content,
            model=response.model or model,
            tokens_prompt=prompt_tokens,
            tokens_completion=completion_tokens,
            tokens_total=prompt_tokens + completion_tokens,
            finish_reason=choice.finish_reason,
            usage_estimated=True,
        )


# Singleton instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get the LLM service singleton."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
