# cvtransformer/core/config.py
from __future__ import annotations
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field

from cvtransformer.core.exceptions import ConfigurationError

# Resolve the .env alongside the backend package root (adjust if your layout differs)
ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):

    # --- App info ---
    APP_NAME: str = Field(default="CV Transformer")
    LOG_LEVEL: str = Field(default="INFO")

    # --- LLM provider ---
    LLM_PROVIDER: str = Field(default="openai", description="'openai' (any OpenAI-compatible endpoint) or 'ollama'")

    # --- OpenAI-compatible endpoint (OpenRouter by default) ---
    OPENAI_API_KEY: str | None = Field(default=None, description="API key for the chat-completions endpoint")
    OPENAI_BASE_URL: str | None = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible API. Set to None to talk to api.openai.com.",
    )
    OPENAI_MODEL: str = Field(default="anthropic/claude-3.5-sonnet")
    HTTP_REFERER: str = Field(default="http://localhost:5000", description="Sent as HTTP-Referer (OpenRouter attribution)")

    # --- Ollama ---
    OLLAMA_BASE_URL: str | None = Field(default=None, description="Base URL of local Ollama server")
    LLM_CHAT_MODEL: str = Field(default="llama3.2", description="Ollama model used when LLM_PROVIDER=ollama")

    # --- Generation ---
    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS: int = 4000
    LLM_TIMEOUT_S: int = 90

    # --- Retry policy (linear backoff: attempt * delay) ---
    LLM_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    LLM_RETRY_DELAY_S: float = Field(default=1.0, ge=0.0)

    # --- Size limits (approximate tokens, 4 chars per token) ---
    LLM_MAX_INPUT_TOKENS: int = Field(default=12000, ge=1)
    CHUNK_MAX_TOKENS: int = Field(default=3000, ge=1)

    class Config:
        env_file = str(ENV_PATH)
        case_sensitive = True

    @property
    def provider(self) -> str:
        return (self.LLM_PROVIDER or "").strip().lower()

    @property
    def model_name(self) -> str:
        return self.LLM_CHAT_MODEL if self.provider == "ollama" else self.OPENAI_MODEL

    def require_llm_credentials(self) -> None:
        """Raise ConfigurationError when the selected provider is missing its key or URL."""
        if self.provider == "openai":
            if not self.OPENAI_API_KEY:
                raise ConfigurationError(
                    "OPENAI_API_KEY is not set. Please add it to your environment or .env file.",
                    details={"provider": "openai"},
                )
        elif self.provider == "ollama":
            if not self.OLLAMA_BASE_URL:
                raise ConfigurationError(
                    "OLLAMA_BASE_URL is not set. Please add it to your environment or .env file.",
                    details={"provider": "ollama"},
                )
        else:
            raise ConfigurationError(f"Unknown LLM_PROVIDER: {self.LLM_PROVIDER!r}")


settings = Settings()
