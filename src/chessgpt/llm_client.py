from __future__ import annotations
"""
LLM client facade over the OpenAI chat completions API.

The rest of the code should not care which SDK version is in use. This module
sends `model` + `messages` and returns the raw text of every sampled choice.
Response fields are treated as untrusted: anything that is not text is dropped.
"""
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from .config import Settings
from .errors import RemoteCallFailure

log = logging.getLogger("llm_client")


class LLMClient:
    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use so the server starts without credentials for engine/random bots.
        if self._client is None:
            s = self.settings
            self._client = AsyncOpenAI(
                api_key=s.openai_api_key or None,
                organization=s.openai_org_id or None,
                base_url=s.openai_base_url or None,
                timeout=s.openai_timeout_s,
                max_retries=0,
            )
        return self._client

    async def request_completions(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        n: Optional[int] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> List[str]:
        """One API call sampling `n` completions. Raises RemoteCallFailure on transport errors."""
        s = self.settings
        try:
            rsp = await self.client.chat.completions.create(
                model=model or s.openai_model,
                messages=messages,
                temperature=s.openai_temperature if temperature is None else temperature,
                max_tokens=max_tokens or s.openai_max_tokens,
                n=n or s.openai_num_completions,
            )
        except OpenAIError as e:
            raise RemoteCallFailure(str(e)) from e
        return _extract_texts(rsp)


def _extract_texts(rsp: Any) -> List[str]:
    choices = getattr(rsp, "choices", None)
    if not choices:
        log.warning("No choices in completion response")
        return []
    texts = []
    for choice in choices:
        text = _choice_text(choice)
        if text:
            texts.append(text)
    return texts


def _choice_text(choice: Any) -> str:
    msg = getattr(choice, "message", None)
    content = getattr(msg, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for c in content:
            if isinstance(c, dict):
                if c.get("type") == "text" and isinstance(c.get("text"), str):
                    parts.append(c["text"])
                continue
            t = getattr(c, "text", None)
            if isinstance(t, str):
                parts.append(t)
        return "\n".join(parts)
    return ""
