"""App settings read from the environment (and .env via python-dotenv).

    LLM_PROVIDER       auto | openai | anthropic | koboldcpp | mock | echo  (auto)
    OPENAI_API_KEY     enables the openai provider under "auto"
    ANTHROPIC_API_KEY  enables the anthropic provider under "auto"
    LLM_PROVIDER_URL   base URL override (required for koboldcpp)
    LLM_MODEL          model override
    LLM_MAX_TOKENS     150
    LLM_TEMPERATURE    0.8
    LLM_TIMEOUT        HTTP timeout per call, seconds (120)
    LLM_SEED           seed for canned responses (unset = random)
    RESPONSE_TIMEOUT   bounded wait per character reply, seconds (90; 0 = none)
    MESSAGE_PACING     delay between streamed character messages, seconds (1.0)
"""

import os
from typing import Any

from pydantic import BaseModel

from dnd_chat.llm import LLM, build_llm


def _env(name: str, default: Any) -> Any:
    value = os.getenv(name)
    return default if value is None or value == "" else value


class Settings(BaseModel):
    llm_provider: str = "auto"
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_provider_url: str = ""
    llm_model: str = ""
    llm_max_tokens: int = 150
    llm_temperature: float = 0.8
    llm_timeout: float = 120.0
    llm_seed: int | None = None
    response_timeout: float = 90.0
    message_pacing: float = 1.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from os.environ, falling back to field defaults."""
        return cls(
            llm_provider=_env("LLM_PROVIDER", "auto").lower(),
            openai_api_key=_env("OPENAI_API_KEY", ""),
            anthropic_api_key=_env("ANTHROPIC_API_KEY", ""),
            llm_provider_url=_env("LLM_PROVIDER_URL", ""),
            llm_model=_env("LLM_MODEL", ""),
            llm_max_tokens=_env("LLM_MAX_TOKENS", 150),
            llm_temperature=_env("LLM_TEMPERATURE", 0.8),
            llm_timeout=_env("LLM_TIMEOUT", 120.0),
            llm_seed=_env("LLM_SEED", None),
            response_timeout=_env("RESPONSE_TIMEOUT", 90.0),
            message_pacing=_env("MESSAGE_PACING", 1.0),
        )

    def build_llm(self) -> LLM:
        return build_llm(
            self.llm_provider,
            openai_api_key=self.openai_api_key,
            anthropic_api_key=self.anthropic_api_key,
            provider_url=self.llm_provider_url,
            model=self.llm_model,
            max_tokens=self.llm_max_tokens,
            temperature=self.llm_temperature,
            timeout=self.llm_timeout,
            seed=self.llm_seed,
        )
