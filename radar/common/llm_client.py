"""
Provider-agnostic LLM client for Radar.

Supports OpenAI, Azure OpenAI, Anthropic, and Google Gemini behind one
blocking ``generate`` call. Async callers wrap it in ``asyncio.to_thread``.

SDKs are imported lazily so only the configured provider's package needs
to be installed.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

from .config import LLMConfig

logger = logging.getLogger("radar.common.llm_client")

JSON_INSTRUCTION = "Respond with a single JSON object only."

_OPENAI_COMPATIBLE = ("openai", "azure")


class LLMClient:
    """Text generation over whichever provider is configured."""

    def __init__(
        self,
        provider: str = "openai",
        model: str = "",
        openai_api_key: Optional[str] = None,
        azure_endpoint: Optional[str] = None,
        azure_api_key: Optional[str] = None,
        azure_api_version: str = "2025-01-01-preview",
        anthropic_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "openai").lower()
        self.model = model
        self._client: Any = None
        self._gemini_models: Dict[str, Any] = {}

        builders = {
            "openai": lambda: self._build_openai(openai_api_key),
            "azure": lambda: self._build_azure(azure_endpoint, azure_api_key, azure_api_version),
            "anthropic": lambda: self._build_anthropic(anthropic_api_key),
            "google": lambda: self._build_google(google_api_key),
        }
        build = builders.get(self.provider)
        if build is None:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        try:
            self._client = build()
        except ImportError as e:
            logger.warning("SDK for %s is not installed: %s", self.provider, e)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    def _missing(self, what: str = "API key") -> None:
        logger.info("%s %s not provided, LLM client unavailable", self.provider, what)

    def _build_openai(self, api_key: Optional[str]):
        if not api_key:
            return self._missing()
        from openai import OpenAI

        return OpenAI(api_key=api_key)

    def _build_azure(self, endpoint: Optional[str], api_key: Optional[str], api_version: str):
        if not api_key or not endpoint:
            return self._missing("endpoint or key")
        from openai import AzureOpenAI

        return AzureOpenAI(azure_endpoint=endpoint, api_key=api_key, api_version=api_version)

    def _build_anthropic(self, api_key: Optional[str]):
        if not api_key:
            return self._missing()
        import anthropic

        return anthropic.Anthropic(api_key=api_key)

    def _build_google(self, api_key: Optional[str]):
        if not api_key:
            return self._missing()
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        return genai  # the module; models are created per system prompt

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        return cls(
            provider=config.provider,
            model=config.model,
            openai_api_key=config.openai_api_key or None,
            azure_endpoint=config.azure_endpoint or None,
            azure_api_key=config.azure_api_key or None,
            azure_api_version=config.azure_api_version,
            anthropic_api_key=config.anthropic_api_key or None,
            google_api_key=config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        json_mode: bool = False,
        max_tokens: int = 1024,
        timeout: float = 60.0,
    ) -> str:
        """
        Generate a completion for ``prompt``.

        With ``json_mode`` the model is asked for a single JSON object:
        natively on OpenAI/Azure and Gemini, through the system prompt on
        Anthropic and Gemini.

        Raises:
            RuntimeError: no client could be built for the provider
        """
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        if self.provider in _OPENAI_COMPATIBLE:
            return self._generate_openai(prompt, system, json_mode, max_tokens, timeout)

        if json_mode:
            system = f"{system}\n\n{JSON_INSTRUCTION}" if system else JSON_INSTRUCTION

        if self.provider == "anthropic":
            return self._generate_anthropic(prompt, system, max_tokens, timeout)
        return self._generate_google(prompt, system, json_mode, max_tokens, timeout)

    def _generate_openai(self, prompt, system, json_mode, max_tokens, timeout) -> str:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        extra = {"response_format": {"type": "json_object"}} if json_mode else {}

        response = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            timeout=timeout,
            **extra,
        )
        return (response.choices[0].message.content or "").strip()

    def _generate_anthropic(self, prompt, system, max_tokens, timeout) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            timeout=timeout,
            **extra,
        )
        return response.content[0].text.strip()

    def _generate_google(self, prompt, system, json_mode, max_tokens, timeout) -> str:
        key = hashlib.md5((system or "").encode()).hexdigest()
        model = self._gemini_models.get(key)
        if model is None:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            model = self._gemini_models[key] = self._client.GenerativeModel(**options)

        generation_config = {"max_output_tokens": max_tokens}
        if json_mode:
            generation_config["response_mime_type"] = "application/json"
        response = model.generate_content(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": timeout},
        )
        return response.text.strip()
