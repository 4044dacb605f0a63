"""Client for an OpenAI-compatible chat-completions endpoint (Groq by default).

Any failure surfaces as :class:`LLMUnavailableError`; callers turn that into a
503 so the rest of the API is unaffected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from teamboard.core.config import Settings
from teamboard.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 1024


class LLMUnavailableError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class LLMConfig:
    api_key: str
    base_url: str
    model: str
    timeout_seconds: float = 20.0

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMConfig | None:
        if not settings.llm_enabled:
            return None
        return cls(
            api_key=settings.llm_api_key.strip(),
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
        )


def _extract_text(body: Any) -> str:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMUnavailableError("Unexpected response from the AI service") from exc
    if not isinstance(content, str) or not content.strip():
        raise LLMUnavailableError("Empty response from the AI service")
    return content.strip()


class LLMClient:
    def __init__(self, config: LLMConfig | None, *, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.config is not None

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = 0.7,
    ) -> str:
        if self.config is None:
            raise LLMUnavailableError("AI service is not configured")

        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_seconds, connect=5.0),
        )
        try:
            resp = await client.post(
                self.config.base_url,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                json=payload,
            )
            resp.raise_for_status()
            return _extract_text(resp.json())
        except httpx.HTTPStatusError as exc:
            logger.warning("llm.http_error status=%s", exc.response.status_code)
            raise LLMUnavailableError("AI service returned an error") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("llm.request_failed error=%s", type(exc).__name__)
            raise LLMUnavailableError("AI service is unavailable") from exc
        finally:
            if owns_client:
                await client.aclose()
