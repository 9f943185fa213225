"""
LLM Client

One blocking ``generate`` call over Anthropic, OpenAI or Gemini. The
resolver only needs short completions (rewrites and yes/no verdicts), so the
interface is a single prompt plus an optional system instruction.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable, Dict, Optional

from .config import LLMConfig

logger = logging.getLogger("askbase.common.llm_client")

PROVIDERS = ("anthropic", "openai", "google")


class LLMClient:
    """Text completion against the configured provider.

    A missing key or SDK leaves the client unavailable instead of failing
    construction; ``generate`` then raises RuntimeError.
    """

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client = None
        self._google_models: Dict[str, object] = {}

        if self.provider == "auto":
            raise ValueError(
                '"auto" is not a concrete provider; set llm.provider to '
                + ", ".join(PROVIDERS)
            )

        keys = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }
        if self.provider not in keys:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = keys[self.provider]
        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        connect = getattr(self, f"_connect_{self.provider}")
        try:
            self._client = connect(api_key)
        except ImportError:
            logger.warning("SDK for %s is not installed", self.provider)
        except Exception as e:
            logger.warning("Failed to initialize %s client: %s", self.provider, e)

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        provider = (config.provider or "").lower()
        model = getattr(config, f"{provider}_model", "") if provider in PROVIDERS else ""
        return cls(
            provider=provider,
            model=model,
            anthropic_api_key=config.anthropic_api_key or None,
            openai_api_key=config.openai_api_key or None,
            google_api_key=config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    # -- connection ---------------------------------------------------------

    @staticmethod
    def _connect_anthropic(api_key: str):
        import anthropic
        return anthropic.Anthropic(api_key=api_key)

    @staticmethod
    def _connect_openai(api_key: str):
        from openai import OpenAI
        return OpenAI(api_key=api_key)

    @staticmethod
    def _connect_google(api_key: str):
        import google.generativeai as genai
        genai.configure(api_key=api_key)
        return genai  # module; models are built per system instruction

    # -- generation ---------------------------------------------------------

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 256,
        temperature: float = 0.0,
        timeout: float = 30.0,
    ) -> str:
        """Return the model's reply text, stripped.

        Provider SDK exceptions propagate; callers decide whether they are
        transient (see ``askbase.resolver.collaborators``).
        """
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        backend: Callable[..., str] = getattr(self, f"_generate_{self.provider}")
        return backend(prompt, system, max_tokens, temperature, timeout)

    def _generate_anthropic(self, prompt, system, max_tokens, temperature, timeout) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
            **extra,
        )
        blocks = response.content or []
        return (blocks[0].text or "").strip() if blocks else ""

    def _generate_openai(self, prompt, system, max_tokens, temperature, timeout) -> str:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        response = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=timeout,
        )
        choices = response.choices or []
        return (choices[0].message.content or "").strip() if choices else ""

    def _generate_google(self, prompt, system, max_tokens, temperature, timeout) -> str:
        key = hashlib.md5((system or "").encode()).hexdigest()
        model = self._google_models.get(key)
        if model is None:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            model = self._client.GenerativeModel(**options)
            self._google_models[key] = model

        response = model.generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
            request_options={"timeout": timeout},
        )
        # .text raises when the candidate was blocked or is empty
        try:
            return response.text.strip()
        except ValueError:
            return ""
