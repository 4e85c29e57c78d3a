"""LLM client — the text-generation capability characters talk through.

Every implementation matches the protocol:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` identifies why a character is calling ("introduction" or
"response"). Implementations may use it for logging or routing; the
simplest implementation ignores it.

Implementations:

    HttpLLM       — real HTTP client for OpenAI, Anthropic and
                    KoboldCpp backends. Selected by provider_format.
    ResilientLLM  — wraps a primary LLM and serves a fallback LLM while
                    the primary is rate limited or failing.
    CannedLLM     — deterministic offline responses (see dnd_chat.canned).
    EchoLLM       — repeats the GM's latest prompt (LLM_PROVIDER=echo).

Production code calls build_llm() with the app settings. Tests use the
scripted doubles in conftest.py instead.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from typing import Any, Literal, Protocol

import httpx

from dnd_chat.canned import CannedLLM, extract_identity, focus_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""


class RateLimitedError(LLMError):
    """Raised on HTTP 429. `retry_after` is the cool-down in seconds."""

    def __init__(self, message: str, retry_after: float) -> None:
        super().__init__(message)
        self.retry_after = retry_after


DEFAULT_RETRY_AFTER = 60.0


# ---------------------------------------------------------------------------
# HttpLLM — connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["openai", "anthropic", "koboldcpp"]

_DEFAULT_URLS: dict[str, str] = {
    "openai": "https://api.openai.com",
    "anthropic": "https://api.anthropic.com",
    "koboldcpp": "http://localhost:5001",
}

_DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-3.5-turbo",
    "anthropic": "claude-3-sonnet-20240229",
    "koboldcpp": "",
}

ANTHROPIC_VERSION = "2023-06-01"


class HttpLLM:
    """Async HTTP client for chat/text-completion backends.

    Supported formats:
      "openai"     — POST /v1/chat/completions {"model", "messages", ...}
                     Response: {"choices": [{"message": {"content": "..."}}]}
      "anthropic"  — POST /v1/messages {"model", "messages", "max_tokens", ...}
                     Response: {"content": [{"text": "..."}]}
      "koboldcpp"  — POST /api/v1/generate {"prompt": ...}
                     Response: {"results": [{"text": "..."}]}

    Args:
        provider_format: Wire format to use.
        api_key:         Secret for the backend, or empty string if not required.
        provider_url:    Base URL; defaults to the provider's public endpoint.
        model:           Model identifier; defaults per provider.
        max_tokens:      Completion length cap. Defaults to 150.
        temperature:     Sampling temperature. Defaults to 0.8.
        timeout:         HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        provider_format: ProviderFormat = "openai",
        api_key: str = "",
        provider_url: str = "",
        model: str = "",
        max_tokens: int = 150,
        temperature: float = 0.8,
        timeout: float = 120.0,
    ) -> None:
        self._format = provider_format
        self._api_key = api_key
        self._base_url = (provider_url or _DEFAULT_URLS[provider_format]).rstrip("/")
        self._model = model or _DEFAULT_MODELS[provider_format]
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout

    @property
    def provider(self) -> str:
        return self._format

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if not self._api_key:
            return headers
        if self._format == "anthropic":
            headers["x-api-key"] = self._api_key
            headers["anthropic-version"] = ANTHROPIC_VERSION
        else:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "openai":
            return f"{self._base_url}/v1/chat/completions", {
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": self._max_tokens,
                "temperature": self._temperature,
            }
        if self._format == "anthropic":
            return f"{self._base_url}/v1/messages", {
                "model": self._model,
                "max_tokens": self._max_tokens,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self._temperature,
            }

        # koboldcpp
        body: dict[str, Any] = {"prompt": prompt, "max_length": self._max_tokens}
        return f"{self._base_url}/api/v1/generate", body

    def _parse_response(self, data: dict) -> str:
        """Extract the completion text from the response body."""
        if self._format == "openai":
            choices = data.get("choices")
            if not choices or "content" not in (choices[0].get("message") or {}):
                raise LLMError("Unexpected response format from OpenAI backend")
            return choices[0]["message"]["content"] or ""  # null content is rejected as empty
        if self._format == "anthropic":
            content = data.get("content")
            if not content or "text" not in content[0]:
                raise LLMError("Unexpected response format from Anthropic backend")
            return content[0]["text"]

        results = data.get("results")
        if not results or "text" not in results[0]:
            raise LLMError("Unexpected response format from KoboldCpp backend")
        return results[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        url, body = self._build_request(prompt)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                raise RateLimitedError(
                    "LLM backend rate limit exceeded",
                    retry_after=_retry_after(e.response),
                ) from e
            raise LLMError(f"LLM backend returned HTTP {status}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        try:
            text = self._parse_response(resp.json()).strip()
        except (ValueError, AttributeError, TypeError, KeyError, IndexError) as e:
            raise LLMError(f"Malformed response body from {self._format} backend") from e
        if not text:
            raise LLMError(f"Empty completion from {self._format} backend")
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


def _retry_after(response: Any) -> float:
    raw = response.headers.get("retry-after") if response.headers else None
    try:
        return float(raw) if raw else DEFAULT_RETRY_AFTER
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


# ---------------------------------------------------------------------------
# ResilientLLM — provider fallback while the primary is unavailable
# ---------------------------------------------------------------------------

class ResilientLLM:
    """Serve `primary`, falling back to `fallback` when it fails.

    A RateLimitedError opens a cool-down window during which the primary is
    not called at all. Any other LLMError falls back for that call only.
    Errors that are not LLMError propagate.
    """

    def __init__(
        self,
        primary: LLM,
        fallback: LLM,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._clock = clock
        self.rate_limited_until = 0.0

    @property
    def provider(self) -> str:
        return getattr(self._primary, "provider", type(self._primary).__name__)

    def is_rate_limited(self) -> bool:
        return self.rate_limited_until > self._clock()

    async def __call__(self, stage: str, prompt: str) -> str:
        if self.is_rate_limited():
            logger.warning("LLM rate limited, using fallback responses (stage=%s)", stage)
            return await self._fallback(stage, prompt)
        try:
            return await self._primary(stage, prompt)
        except RateLimitedError as e:
            self.rate_limited_until = self._clock() + e.retry_after
            logger.warning(
                "LLM rate limit exceeded, using fallback responses for %.0f seconds",
                e.retry_after,
            )
        except LLMError as e:
            logger.warning("LLM call failed (%s), using fallback response", e)
        return await self._fallback(stage, prompt)

    def reset_rate_limit(self) -> None:
        self.rate_limited_until = 0.0
        logger.info("Rate limit manually reset")

    def status(self) -> dict[str, Any]:
        limited = self.is_rate_limited()
        return {
            "provider": self.provider,
            "available": not limited,
            "rate_limited_until": self.rate_limited_until if limited else None,
        }


# ---------------------------------------------------------------------------
# EchoLLM — LLM_PROVIDER=echo, for checking the chat wiring end to end
# ---------------------------------------------------------------------------

class EchoLLM:
    """Answers as the character by repeating what the GM just said.

    Introductions repeat the character's name and class. No network calls.
    """

    provider = "echo"

    async def __call__(self, stage: str, prompt: str) -> str:
        name, role = extract_identity(prompt)
        if stage == "introduction":
            return f"{name} the {role} is here."
        return f"{name} heard: {focus_text(prompt)}"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

OFFLINE_PROVIDERS = ("mock", "echo")


def detect_provider(openai_key: str, anthropic_key: str) -> str:
    """Pick a provider from the available API keys; OpenAI wins a tie."""
    if openai_key:
        return "openai"
    if anthropic_key:
        return "anthropic"
    return "mock"


def build_llm(
    provider: str = "auto",
    *,
    openai_api_key: str | None = None,
    anthropic_api_key: str | None = None,
    provider_url: str = "",
    model: str = "",
    max_tokens: int = 150,
    temperature: float = 0.8,
    timeout: float = 120.0,
    seed: int | None = None,
) -> LLM:
    """Construct the LLM the app talks to.

    "auto" picks OpenAI or Anthropic from whichever API key is present and
    falls back to canned responses when neither is. Real providers are
    wrapped in ResilientLLM with CannedLLM as the fallback.
    """
    if openai_api_key is None:
        openai_api_key = os.getenv("OPENAI_API_KEY", "")
    if anthropic_api_key is None:
        anthropic_api_key = os.getenv("ANTHROPIC_API_KEY", "")

    if provider == "auto":
        provider = detect_provider(openai_api_key, anthropic_api_key)

    canned = CannedLLM(seed=seed)
    if provider == "mock":
        logger.info("LLM provider initialized: mock")
        return canned
    if provider == "echo":
        logger.info("LLM provider initialized: echo")
        return EchoLLM()
    if provider not in _DEFAULT_URLS:
        raise ValueError(f"Unknown LLM provider: {provider!r}")

    api_key = {"openai": openai_api_key, "anthropic": anthropic_api_key}.get(provider, "")
    if provider in ("openai", "anthropic") and not api_key:
        logger.warning("No %s API key found, falling back to mock responses", provider)
        return canned

    logger.info(
        "LLM provider initialized: %s (API key: %s)",
        provider, "present" if api_key else "missing",
    )
    http = HttpLLM(
        provider_format=provider,  # type: ignore[arg-type]
        api_key=api_key,
        provider_url=provider_url,
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        timeout=timeout,
    )
    return ResilientLLM(http, canned)


def llm_status(llm: LLM) -> dict[str, Any]:
    """Status dict for any LLM.

    `available` means a real model is answering; only ResilientLLM can be
    rate limited.
    """
    if isinstance(llm, ResilientLLM):
        return llm.status()
    provider = getattr(llm, "provider", type(llm).__name__)
    return {
        "provider": provider,
        "available": provider not in OFFLINE_PROVIDERS,
        "rate_limited_until": None,
    }
