"""
LLM Client - Unified interface for OpenAI-compatible LLM providers.
Supports Gemini, OpenAI, OpenRouter and Ollama, plus an offline mock.
"""
from openai import AsyncOpenAI
from typing import Any, Optional
import json
import logging
import re

from ..config import get_llm_config, settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Async LLM client with OpenAI-compatible API."""

    def __init__(self):
        config = get_llm_config()

        # Use mock client if provider is 'mock'
        if settings.llm_provider == "mock":
            from .mock_llm import MockLLMClient
            self._mock = MockLLMClient()
            self.model = self._mock.model
            self.client = None
        else:
            self._mock = None
            self.client = AsyncOpenAI(
                api_key=config["api_key"],
                base_url=config["base_url"],
                timeout=config["timeout"],
            )
            self.model = config["model"]

        self.temperature = config["temperature"]
        self.max_tokens = config["max_tokens"]
        logger.info(f"LLM client ready: provider={settings.llm_provider}, model={self.model}")

    async def chat(
        self,
        messages: list[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        schema: Optional[dict] = None
    ) -> str:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: If True, request JSON response format
            schema: Optional {"name", "schema"} JSON schema the reply must follow

        Returns:
            The assistant's response content
        """
        if self._mock is not None:
            return await self._mock.chat(messages, temperature, max_tokens, json_mode, schema)

        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

        # Structured output support differs by provider
        if schema is not None:
            kwargs["response_format"] = {"type": "json_schema", "json_schema": schema}
        elif json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            if "response_format" not in kwargs:
                raise
            # Retry once without the response format
            logger.warning(f"Structured request failed ({e}); retrying without response_format")
            del kwargs["response_format"]
            response = await self.client.chat.completions.create(**kwargs)

        return response.choices[0].message.content or ""

    async def chat_json(
        self,
        messages: list[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        schema: Optional[dict] = None
    ) -> Any:
        """
        Send a chat request and parse JSON response.

        Returns:
            Parsed JSON value, or None if the reply holds no JSON
        """
        response = await self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            schema=schema
        )

        return self._parse_json_response(response)

    def _parse_json_response(self, text: str) -> Any:
        """Parse JSON from LLM response, handling markdown code blocks."""
        text = text.strip()

        # Try direct parse first
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

        # Try extracting from markdown code block
        json_match = re.search(r'```(?:json)?\s*([\s\S]*?)```', text)
        if json_match:
            try:
                return json.loads(json_match.group(1).strip())
            except json.JSONDecodeError:
                pass

        # Try finding a JSON object or array in text, outermost first
        spans = []
        for open_char, close_char in (("{", "}"), ("[", "]")):
            start = text.find(open_char)
            end = text.rfind(close_char)
            if start != -1 and end > start:
                spans.append((start, end))
        for start, end in sorted(spans):
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                pass

        logger.warning(f"No JSON found in LLM reply ({len(text)} chars)")
        return None


# Global LLM client instance
llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the global LLM client."""
    global llm_client
    if llm_client is None:
        llm_client = LLMClient()
    return llm_client
