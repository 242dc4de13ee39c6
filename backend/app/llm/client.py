"""Chat-completions client used by duplicate verification and merge planning."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from http import client as http_client
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from app.config import Settings, get_settings, require_openai_api_key

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class LLMClientError(RuntimeError):
    """Raised when the completion provider is unreachable or returns unusable output."""


@dataclass(slots=True)
class TokenUsage:
    """Running prompt/completion token totals for one client."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    requests: int = 0

    def add(self, prompt_tokens: int, completion_tokens: int) -> None:
        self.prompt_tokens += max(0, int(prompt_tokens))
        self.completion_tokens += max(0, int(completion_tokens))
        self.requests += 1

    def estimated_cost(self, input_cost_per_million: float, output_cost_per_million: float) -> float:
        return (
            self.prompt_tokens * input_cost_per_million / 1_000_000
            + self.completion_tokens * output_cost_per_million / 1_000_000
        )


class CompletionClient(Protocol):
    """Protocol for pluggable JSON completion clients."""

    usage: TokenUsage

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Return the completion parsed as a JSON object."""


@dataclass(slots=True)
class OpenAIChatCompletionsClient:
    """Minimal OpenAI Chat Completions client using stdlib HTTP."""

    api_key: str
    model: str
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: int = 60
    usage: TokenUsage = field(default_factory=TokenUsage)

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Call OpenAI and return the parsed JSON object from the reply."""

        payload: dict[str, Any] = {
            "model": self.model,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if max_tokens is not None:
            payload["max_completion_tokens"] = max_tokens
        url = f"{self.base_url.rstrip('/')}/chat/completions"
        req = urllib_request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise LLMClientError(f"OpenAI HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise LLMClientError(f"OpenAI request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise LLMClientError("OpenAI request timed out") from exc
        except (http_client.HTTPException, OSError, UnicodeDecodeError) as exc:
            raise LLMClientError(f"OpenAI response could not be read: {exc}") from exc

        try:
            decoded = json.loads(raw)
            usage = decoded.get("usage") or {}
            self.usage.add(usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0))
            message = decoded["choices"][0]["message"]
            refusal = message.get("refusal")
            if isinstance(refusal, str) and refusal.strip():
                raise LLMClientError(f"OpenAI refused request: {refusal.strip()}")
            content = message["content"]
            if not isinstance(content, str):
                raise TypeError("OpenAI response content is not a string")
        except LLMClientError:
            raise
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as exc:
            raise LLMClientError("OpenAI returned an unexpected response envelope") from exc
        return parse_json_object(content)


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a JSON object from model text, tolerating prose around the braces."""

    match = _JSON_OBJECT_RE.search(text)
    candidate = match.group(0) if match else text
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise LLMClientError("Model did not return valid JSON") from exc
    if not isinstance(parsed, dict):
        raise LLMClientError("Model returned JSON that is not an object")
    return parsed


def get_default_llm_client(*, model: str | None = None, settings: Settings | None = None) -> OpenAIChatCompletionsClient:
    """Build the OpenAI client from settings; raises ``ConfigError`` without a key."""

    active = settings or get_settings()
    return OpenAIChatCompletionsClient(
        api_key=require_openai_api_key(active),
        model=model or active.openai_model,
        base_url=active.openai_base_url,
        timeout_seconds=active.openai_timeout_seconds,
    )
