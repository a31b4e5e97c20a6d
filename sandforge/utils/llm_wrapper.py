"""
LLM wrapper utilities for sandforge.

This module gives the particle generator one interface over the supported
text-generation providers.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger


@dataclass
class LLMResponse:
    """Represents a response from an LLM."""
    content: str
    model: str
    usage: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


def _is_reasoning_model(model_name: str) -> bool:
    # o-series models take reasoning_effort and max_completion_tokens, not temperature
    name = model_name.lower()
    return name.startswith(("o1", "o3", "o4"))


class LLMWrapper:
    """
    Unified LLM wrapper.

    Providers: "openai", "anthropic", "litellm", or "custom" (caller sets
    ``client``, an object with ``generate(prompt=..., system_prompt=..., **kw)``
    returning a dict with ``content``).
    """

    def __init__(self, model_name: str = "o3-mini",
                 provider: str = "openai",
                 api_key: Optional[str] = None,
                 base_url: Optional[str] = None,
                 temperature: float = 0.7,
                 max_tokens: int = 4000,
                 reasoning_effort: Optional[str] = "high",
                 timeout: float = 120.0,
                 client: Any = None):
        """
        Initialize the LLM wrapper.

        Args:
            model_name: Name of the model to use
            provider: LLM provider ("openai", "anthropic", "litellm", "custom")
            api_key: API key for the provider
            base_url: Base URL for the API (OpenAI-compatible servers)
            temperature: Temperature for non-reasoning models
            max_tokens: Maximum tokens to generate
            reasoning_effort: Effort hint for reasoning models
            timeout: Transport timeout in seconds
            client: Pre-built client (required for "custom")
        """
        self.model_name = model_name
        self.provider = provider
        self.api_key = api_key or (
            os.getenv("ANTHROPIC_API_KEY") if provider == "anthropic" else os.getenv("OPENAI_API_KEY")
        )
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.reasoning_effort = reasoning_effort
        self.timeout = timeout
        self.client = client

        if self.client is None:
            self._initialize_client()
        logger.info(f"Initialized LLM wrapper: {provider}/{model_name}")

    def _initialize_client(self) -> None:
        """Initialize the provider client."""
        try:
            if self.provider == "openai":
                import openai
                self.client = openai.OpenAI(
                    api_key=self.api_key,
                    base_url=self.base_url,
                    timeout=self.timeout,
                )

            elif self.provider == "anthropic":
                import anthropic
                self.client = anthropic.Anthropic(
                    api_key=self.api_key,
                    timeout=self.timeout,
                )

            elif self.provider == "litellm":
                import litellm
                self.client = litellm

            elif self.provider == "custom":
                logger.warning("Custom provider selected - ensure client is set")

            else:
                raise ValueError(f"Unsupported provider: {self.provider}")

        except ImportError as e:
            logger.error(f"Failed to import required library for {self.provider}: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to initialize LLM client: {e}")
            raise

    def generate(self, prompt: str, system_prompt: Optional[str] = None, **kwargs) -> LLMResponse:
        """
        Generate text using the LLM.

        Args:
            prompt: Input prompt
            system_prompt: Optional system prompt
            **kwargs: Additional parameters for the provider

        Returns:
            LLMResponse object
        """
        try:
            if self.provider == "openai":
                return self._generate_openai(prompt, system_prompt, **kwargs)
            elif self.provider == "anthropic":
                return self._generate_anthropic(prompt, system_prompt, **kwargs)
            elif self.provider == "litellm":
                return self._generate_litellm(prompt, system_prompt, **kwargs)
            elif self.provider == "custom":
                return self._generate_custom(prompt, system_prompt, **kwargs)
            else:
                raise ValueError(f"Unsupported provider: {self.provider}")

        except Exception as e:
            logger.error(f"LLM generation failed: {e}")
            raise

    def _messages(self, prompt: str, system_prompt: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _sampling_params(self) -> Dict[str, Any]:
        if _is_reasoning_model(self.model_name):
            params: Dict[str, Any] = {"max_completion_tokens": self.max_tokens}
            if self.reasoning_effort:
                params["reasoning_effort"] = self.reasoning_effort
            return params
        return {"temperature": self.temperature, "max_tokens": self.max_tokens}

    def _generate_openai(self, prompt: str, system_prompt: Optional[str], **kwargs) -> LLMResponse:
        """Generate text using the OpenAI chat completions API."""
        params = self._sampling_params()
        params.update(kwargs)
        response = self.client.chat.completions.create(
            model=self.model_name,
            messages=self._messages(prompt, system_prompt),
            **params
        )

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            } if response.usage else None
        )

    def _generate_anthropic(self, prompt: str, system_prompt: Optional[str], **kwargs) -> LLMResponse:
        """Generate text using the Anthropic messages API."""
        extra: Dict[str, Any] = {"system": system_prompt} if system_prompt else {}
        extra.update(kwargs)
        response = self.client.messages.create(
            model=self.model_name,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
            **extra
        )

        return LLMResponse(
            content=response.content[0].text,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens
            } if response.usage else None
        )

    def _generate_litellm(self, prompt: str, system_prompt: Optional[str], **kwargs) -> LLMResponse:
        """Generate text using LiteLLM."""
        params = self._sampling_params()
        params.update(kwargs)
        response = self.client.completion(
            model=self.model_name,
            messages=self._messages(prompt, system_prompt),
            timeout=self.timeout,
            **params
        )

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            } if getattr(response, "usage", None) else None,
            metadata=getattr(response, 'metadata', {})
        )

    def _generate_custom(self, prompt: str, system_prompt: Optional[str], **kwargs) -> LLMResponse:
        """Generate text using a caller-supplied client."""
        if self.client is None:
            raise ValueError("Custom client not set")

        response = self.client.generate(
            prompt=prompt,
            system_prompt=system_prompt,
            **kwargs
        )

        return LLMResponse(
            content=response.get("content", ""),
            model=self.model_name,
            usage=response.get("usage"),
            metadata=response.get("metadata")
        )

    def __str__(self) -> str:
        return f"LLMWrapper({self.provider}/{self.model_name})"

    def __repr__(self) -> str:
        return f"LLMWrapper(provider='{self.provider}', model_name='{self.model_name}')"
