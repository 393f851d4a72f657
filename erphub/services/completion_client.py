"""
OpenAI-compatible chat completion client used as the assistant's last-resort fallback.
"""
from typing import Optional, List, Dict

import httpx

from ..config import settings

EMPTY_COMPLETION_REPLY = "I apologize, but I couldn't generate a response. Please try again."


class CompletionError(Exception):
    """The completion backend could not be reached or returned an error."""


def is_configured() -> bool:
    return bool(settings.openai_api_key)


class CompletionClient:
    """Client for a /chat/completions endpoint"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.openai_model
        self.timeout = timeout or settings.openai_timeout_s

        if not self.api_key:
            raise ValueError("Completion API key is required")

    def complete(self, messages: List[Dict[str, str]]) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.8,
            "max_tokens": 1200,
            "top_p": 0.9,
            "frequency_penalty": 0.3,
            "presence_penalty": 0.3,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CompletionError(str(e)) from e

        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content")
        return content or EMPTY_COMPLETION_REPLY
