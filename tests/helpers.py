"""Scripted stand-in for the completion provider"""

from typing import Dict, List, Union

from aistaff.errors import ProviderAuthError
from aistaff.services.llm_service import LLMResponse


class ScriptedLLM:
    """
    Replays queued replies in order. A queued exception is raised instead of
    answering. With ``configured=False`` it behaves like a provider with
    no API key. Every call's messages and sampling settings are recorded.
    """

    def __init__(self, *replies: Union[str, BaseException], configured: bool = True):
        self.replies: List[Union[str, BaseException]] = list(replies)
        self.calls: List[Dict] = []
        self.configured = configured

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ProviderAuthError("Completion provider API key not configured.")

    async def complete(self, messages, temperature, max_tokens, model=None) -> LLMResponse:
        self.ensure_configured()
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        reply = self.replies.pop(0) if self.replies else "OK"
        if isinstance(reply, BaseException):
            raise reply
        return LLMResponse(
            content=reply,
            model="scripted",
            tokens_prompt=10,
            tokens_completion=5,
            tokens_total=15,
            finish_reason="stop",
        )
