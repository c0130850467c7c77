# services/llm.py
"""Injected LLM client over Groq with JSON reply parsing."""

import json
import re
import time
from typing import Any, Dict, Optional

from groq import Groq

from config import GROQ_API_KEY, GROQ_MODEL
from services.observer import Observer


class LLMError(RuntimeError):
    """Raised when the LLM returns nothing usable."""


_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def extract_json(response: str) -> Dict[str, Any]:
    """Parse a JSON object from a reply, tolerating prose around it."""
    try:
        data = json.loads(response)
    except json.JSONDecodeError:
        match = _JSON_BLOCK.search(response or "")
        if not match:
            raise LLMError("No valid JSON found in AI response") from None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise LLMError(f"Malformed JSON in AI response: {e}") from e

    if not isinstance(data, dict):
        raise LLMError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class LLMClient:
    """
    Thin wrapper around a Groq chat client.

    Pass ``client`` to supply any object with the Groq
    ``chat.completions.create`` interface; otherwise one is built from
    ``api_key`` (or GROQ_API_KEY).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GROQ_MODEL,
        client: Any = None,
        observer: Optional[Observer] = None
    ):
        if client is None:
            api_key = api_key or GROQ_API_KEY
            if not api_key:
                raise ValueError("GROQ_API_KEY is required. Please configure it in .env file.")
            client = Groq(api_key=api_key)
        self.client = client
        self.model = model
        self.observer = observer

    def complete(
        self,
        system: str,
        prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 2000,
        json_mode: bool = False,
        name: str = "llm_completion"
    ) -> str:
        """Run one chat completion and return the reply text."""
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt}
        ]
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        start = time.perf_counter()
        response = self.client.chat.completions.create(**params)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("No response from AI service")

        if self.observer:
            self.observer.log_llm_call(
                name=name,
                model=self.model,
                prompts=messages,
                response=content,
                token_usage=_usage(response),
                model_parameters={"temperature": temperature, "max_tokens": max_tokens},
                latency_ms=latency_ms
            )
        return content

    def complete_json(
        self,
        system: str,
        prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 2000,
        name: str = "llm_completion"
    ) -> Dict[str, Any]:
        content = self.complete(
            system, prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            name=name
        )
        return extract_json(content)


def _usage(response: Any) -> Dict[str, int]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return {}
    return {
        "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
        "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
        "total_tokens": getattr(usage, "total_tokens", 0) or 0
    }
