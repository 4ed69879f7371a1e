"""
LLM Provider Abstraction for the compliance engine.

Provides a unified interface for OpenAI and Gemini providers.

Usage:
    from specguard.core.llm_provider import get_llm_provider

    provider = get_llm_provider()
    text = await provider.async_complete(user_prompt="...", system_prompt="...")

Environment variables (read through specguard.config.Settings):
    LLM_PROVIDER       "openai" (default) or "gemini"
    LLM_API_KEY        OpenAI secret key  (required when provider=openai)
    GOOGLE_API_KEY     Google/Gemini key  (required when provider=gemini)
    CUSTOM_MODEL_NAME  Model override (e.g. "gpt-4o", "gemini-1.5-pro")
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from specguard.config import Settings, settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Provider implementations
# ─────────────────────────────────────────────────────────────────────────────

class _OpenAIProvider:
    """Thin wrapper around the OpenAI chat-completions API."""

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None) -> None:
        from openai import OpenAI
        self._client = OpenAI(api_key=api_key, base_url=base_url) if base_url else OpenAI(api_key=api_key)
        self._model = model
        logger.info(f"[LLMProvider] OpenAI initialised, model={model}")

    def complete(
        self,
        user_prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        return (response.choices[0].message.content or "").strip()

    async def async_complete(
        self,
        user_prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        return await asyncio.to_thread(
            self.complete,
            user_prompt,
            system_prompt,
            max_tokens,
            temperature,
            json_mode,
        )

    @property
    def model_name(self) -> str:
        return self._model


class _GeminiProvider:
    """Thin wrapper around the Google Generative AI SDK (google-generativeai)."""

    def __init__(self, api_key: str, model: str) -> None:
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai package is required for Gemini provider. "
                "Install with: pip install 'specguard[gemini]'"
            )
        genai.configure(api_key=api_key)
        self._model_name = model
        self._genai = genai
        logger.info(f"[LLMProvider] Gemini initialised, model={model}")

    def complete(
        self,
        user_prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        generation_config = self._genai.types.GenerationConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if json_mode else "text/plain",
        )
        model = self._genai.GenerativeModel(
            model_name=self._model_name,
            system_instruction=system_prompt or None,
            generation_config=generation_config,
        )
        response = model.generate_content(user_prompt)
        return (response.text or "").strip()

    async def async_complete(
        self,
        user_prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        return await asyncio.to_thread(
            self.complete,
            user_prompt,
            system_prompt,
            max_tokens,
            temperature,
            json_mode,
        )

    @property
    def model_name(self) -> str:
        return self._model_name


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────

LLMProvider = _OpenAIProvider | _GeminiProvider

_singleton: Optional[LLMProvider] = None
_singleton_lock = threading.Lock()


def build_llm_provider(config: Settings) -> LLMProvider:
    """
    Construct a provider from configuration.

    Raises:
        RuntimeError: if the selected provider has no API key configured.
    """
    provider_name = (config.llm_provider or "openai").strip().lower()
    model_override = (config.custom_model_name or "").strip()

    if provider_name == "gemini":
        api_key = (config.google_api_key or "").strip()
        if not api_key:
            raise RuntimeError("LLM_PROVIDER=gemini but GOOGLE_API_KEY is not set.")
        return _GeminiProvider(api_key=api_key, model=model_override or "gemini-1.5-pro")

    if provider_name != "openai":
        logger.warning(f"[LLMProvider] Unknown provider '{provider_name}', defaulting to 'openai'.")
    api_key = (config.llm_api_key or "").strip()
    if not api_key:
        raise RuntimeError("LLM_PROVIDER=openai but LLM_API_KEY is not set.")
    return _OpenAIProvider(
        api_key=api_key,
        model=model_override or "gpt-4o-mini",
        base_url=config.base_url,
    )


def get_llm_provider() -> LLMProvider:
    """
    Return the module-level LLM provider singleton.

    The singleton is created on first call and reused on subsequent calls.

    Raises:
        RuntimeError: if the selected provider cannot be initialised
                      (e.g. missing API key or missing package).
    """
    global _singleton
    if _singleton is not None:
        return _singleton

    with _singleton_lock:
        if _singleton is None:
            _singleton = build_llm_provider(settings)
        return _singleton


def reset_provider() -> None:
    """Reset the singleton (useful for testing with different settings)."""
    global _singleton
    with _singleton_lock:
        _singleton = None
