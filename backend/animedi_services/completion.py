from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .config import env_float, env_str

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_API_BASE = "https://api.openai.com/v1"


class CompletionError(RuntimeError):
    pass


@dataclass(frozen=True)
class CompletionProfile:
    name: str
    temperature: float
    max_tokens: int
    fallback: str = ""


CHAT = CompletionProfile("chat", 0.7, 800, "Sorry, I could not generate a response.")
TIP = CompletionProfile("tip", 1.0, 60)
CARE_GUIDE = CompletionProfile("care_guide", 1.0, 4000)
HEALTH_REPORT = CompletionProfile("health_report", 0.7, 3000)
HEALTH_SCORE = CompletionProfile("health_score", 0.2, 10)


def provider_error_message(response: httpx.Response) -> str:
    message = response.text.strip()
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
        msg = payload.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return message or f"HTTP {response.status_code}"


def coerce_completion_text(response_json: Any) -> str:
    if not isinstance(response_json, dict):
        return ""
    choices = response_json.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                text_value = item.get("text")
                if isinstance(text_value, str):
                    parts.append(text_value)
        return "\n".join(parts)
    return ""


class CompletionClient:
    """Single-shot calls to an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else env_str("OPENAI_API_KEY", "VITE_OPENAI_API_KEY")
        self.base_url = (base_url or env_str("OPENAI_API_BASE_URL", default=DEFAULT_API_BASE)).rstrip("/")
        self.model = model or env_str("ANIMEDI_CHAT_MODEL", default=DEFAULT_MODEL)
        self.timeout_seconds = timeout_seconds or env_float("ANIMEDI_LLM_TIMEOUT_SECONDS", 120.0)
        self._transport = transport

    def complete(self, messages: list[dict[str, Any]], profile: CompletionProfile) -> str:
        if not self.api_key:
            raise CompletionError("OpenAI API key is not configured.")
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": profile.temperature,
            "max_tokens": profile.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
                transport=self._transport,
            ) as client:
                response = client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise CompletionError(f"{profile.name} completion transport failed: {exc}") from exc
        if response.status_code >= 400:
            raise CompletionError(provider_error_message(response))
        try:
            completion_payload = response.json()
        except ValueError as exc:
            raise CompletionError("Completion response was not JSON.") from exc
        text = coerce_completion_text(completion_payload).strip()
        if not text:
            logger.info("%s completion returned no text, using fallback", profile.name)
            return profile.fallback
        return text

    def complete_system_prompt(self, prompt: str, profile: CompletionProfile) -> str:
        return self.complete([{"role": "system", "content": prompt}], profile)
