# cvtransformer/services/common/llm_client.py
"""LLM client for CV extraction supporting OpenAI-compatible endpoints (OpenRouter by default) and Ollama:
one synchronous chat_text call that returns the raw completion, plus prompt file loading."""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from openai import OpenAI, APIError

from cvtransformer.core.config import Settings
from cvtransformer.core.exceptions import ConfigurationError, LLMCallError

logger = logging.getLogger("ai.llm")

PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"  # points to cvtransformer/prompts

# Default Ollama chat options
DEFAULT_OLLAMA_OPTIONS: Dict[str, Any] = {
    "seed": 7,
    "repeat_penalty": 1.05,
    "num_ctx": 8192,
}


def load_prompt(relative_path: str) -> str:
    """
    Load a prompt file from cvtransformer/prompts/<relative_path>.
    If the exact relative path is not found, also try by basename under prompts/.
    """
    path = PROMPTS_DIR / relative_path
    if path.exists():
        text = path.read_text(encoding="utf-8")
        logger.debug("Loaded prompt: %s (%d chars)", relative_path, len(text))
        return text
    alt = PROMPTS_DIR / Path(relative_path).name
    if alt.exists():
        text = alt.read_text(encoding="utf-8")
        logger.debug("Loaded prompt by basename fallback: %s (%d chars)", alt.name, len(text))
        return text
    raise FileNotFoundError(f"Prompt file not found. Tried: {path} and {alt}")


class LLMClient:
    """
    Thin provider wrapper. chat_text returns the completion text or raises
    LLMCallError; JSON handling is left to the caller.

    Provider selection comes from config.LLM_PROVIDER:
      - "openai" → openai SDK against OPENAI_BASE_URL (OpenRouter by default)
      - "ollama" → POST {OLLAMA_BASE_URL}/api/chat via requests
    """

    def __init__(self, config: Settings):
        config.require_llm_credentials()
        self.config = config
        self.provider = config.provider
        self.model = config.model_name
        self._openai: Optional[OpenAI] = None

        if self.provider == "openai":
            self._openai = OpenAI(
                api_key=config.OPENAI_API_KEY,
                base_url=config.OPENAI_BASE_URL or None,
                default_headers={
                    "HTTP-Referer": config.HTTP_REFERER,
                    "X-Title": config.APP_NAME,
                },
                max_retries=0,  # retries are owned by the orchestrator
            )
            logger.info("🤖 LLM Client initialized with OpenAI-compatible API: %s @ %s",
                        self.model, config.OPENAI_BASE_URL or "api.openai.com")
        elif self.provider == "ollama":
            self.chat_url = f"{config.OLLAMA_BASE_URL.rstrip('/')}/api/chat"
            logger.info("🤖 LLM Client initialized with Ollama: %s @ %s", self.model, config.OLLAMA_BASE_URL)
        else:
            raise ConfigurationError(f"Unknown provider: {self.provider}")

    def chat_text(
        self,
        messages: List[Dict[str, str]],
        timeout: Optional[int] = None,
        *,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Run a chat completion and return the raw completion text."""
        timeout = timeout or self.config.LLM_TIMEOUT_S
        if self.provider == "ollama":
            content = self._chat_text_ollama(messages, timeout)
        else:
            content = self._chat_text_openai(messages, timeout, max_tokens=max_tokens)
        if not content:
            raise LLMCallError("LLM returned an empty completion", details={"provider": self.provider})
        return content

    # ===== Ollama Implementation =====
    def _chat_text_ollama(self, messages: List[Dict[str, str]], timeout: int) -> str:
        options = DEFAULT_OLLAMA_OPTIONS.copy()
        options["temperature"] = self.config.LLM_TEMPERATURE
        options["num_predict"] = self.config.LLM_MAX_TOKENS
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": options,
            "keep_alive": "30m",
        }
        try:
            response = requests.post(self.chat_url, json=payload, timeout=timeout)
            response.raise_for_status()
            content = ((response.json().get("message") or {}).get("content") or "").strip()
        except requests.RequestException as e:
            logger.warning("Ollama chat_text error: %s", e)
            raise LLMCallError(f"Ollama request failed: {e}", details={"provider": "ollama"}) from e
        except (ValueError, AttributeError, TypeError) as e:
            logger.warning("Ollama chat_text returned an unreadable body: %s", e)
            raise LLMCallError(f"Ollama response body unreadable: {e}", details={"provider": "ollama"}) from e

        logger.debug("Ollama chat_text received %d chars", len(content))
        return content

    # ===== OpenAI Implementation =====
    def _chat_text_openai(self, messages: List[Dict[str, str]], timeout: int, *, max_tokens: Optional[int] = None) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.config.LLM_TEMPERATURE,
            "max_tokens": max_tokens or self.config.LLM_MAX_TOKENS,
            "timeout": timeout,
        }
        try:
            resp = self._openai.chat.completions.create(**kwargs)
        except APIError as e:
            logger.warning("OpenAI API error in chat_text: %s", e)
            raise LLMCallError(f"LLM API request failed: {e}", details={"provider": "openai"}) from e

        if not resp.choices:
            return ""
        content = (resp.choices[0].message.content or "").strip()
        logger.debug("OpenAI chat_text received %d chars", len(content))
        return content
