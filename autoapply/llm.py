"""Chat-completion client for the text-understanding collaborator.

Talks to any OpenAI-compatible endpoint through the ``openai`` SDK; by
default that is Groq. One instance is built per pipeline and handed to every
step that needs it, so tests can pass a stand-in with the same ``chat`` and
``available`` surface.
"""
from __future__ import annotations

from typing import Any

import openai

from autoapply.config import Settings
from autoapply.errors import CollaboratorUnavailable
from autoapply.log import get_logger
from autoapply.retry import exponential, retry

log = get_logger(__name__)

# Worth another attempt; anything else (bad key, bad request) is not.
_TRANSIENT = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)

Message = dict[str, str]


class LLMClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        *,
        timeout: float = 30.0,
        max_attempts: int = 3,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            base_url=settings.llm_base_url,
            timeout=settings.llm_timeout,
            max_attempts=settings.llm_max_attempts,
        )

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _sdk(self) -> Any:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def _create(self, messages: list[Message], temperature: float, max_tokens: int) -> Any:
        return self._sdk().chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    def chat(
        self,
        messages: list[Message],
        *,
        temperature: float = 0.2,
        max_tokens: int = 1000,
    ) -> str:
        """Send ``messages`` and return the reply text.

        Raises :class:`CollaboratorUnavailable` when no key is configured,
        the service keeps failing after retries, or the reply is empty.
        """
        if not self.available:
            raise CollaboratorUnavailable("LLM API key not configured")

        call = retry(exponential(self.max_attempts, base_delay=1.0), retryable=_TRANSIENT)(self._create)
        try:
            resp = call(messages, temperature, max_tokens)
        except openai.OpenAIError as exc:
            raise CollaboratorUnavailable(f"LLM request failed: {exc}") from exc

        content = ""
        if getattr(resp, "choices", None):
            content = (resp.choices[0].message.content or "").strip()
        if not content:
            raise CollaboratorUnavailable("LLM returned an empty response")
        log.debug("LLM reply (%d chars) from %s", len(content), self.model)
        return content

    def ask(self, system: str, user: str, **kwargs: Any) -> str:
        return self.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            **kwargs,
        )
