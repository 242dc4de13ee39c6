"""Web search client returning ranked snippets."""

from __future__ import annotations

import json
from dataclasses import dataclass
from http import client as http_client
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from app.config import Settings, get_settings


class SearchClientError(RuntimeError):
    """Raised when the search provider fails or returns an unexpected payload."""


@dataclass(slots=True)
class SearchSnippet:
    """One ranked search hit."""

    title: str
    url: str
    content: str
    score: float = 0.0


class SearchClient(Protocol):
    """Protocol for pluggable web search clients."""

    def search(self, query: str, *, max_results: int = 5) -> list[SearchSnippet]:
        """Return snippets ordered by descending relevance."""


@dataclass(slots=True)
class TavilySearchClient:
    """Tavily search API client using stdlib HTTP."""

    api_key: str
    base_url: str = "https://api.tavily.com"
    timeout_seconds: int = 30

    def search(self, query: str, *, max_results: int = 5) -> list[SearchSnippet]:
        payload = {
            "api_key": self.api_key,
            "query": query,
            "max_results": max_results,
            "search_depth": "basic",
        }
        req = urllib_request.Request(
            url=f"{self.base_url.rstrip('/')}/search",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                decoded: dict[str, Any] = json.loads(resp.read().decode("utf-8"))
        except urllib_error.HTTPError as exc:
            raise SearchClientError(f"Tavily HTTP {exc.code}") from exc
        except (urllib_error.URLError, TimeoutError, http_client.HTTPException) as exc:
            raise SearchClientError(f"Tavily request failed: {exc}") from exc
        except ValueError as exc:
            raise SearchClientError("Tavily returned non-JSON output") from exc

        snippets: list[SearchSnippet] = []
        try:
            for item in decoded.get("results") or []:
                if not isinstance(item, dict):
                    continue
                snippets.append(
                    SearchSnippet(
                        title=str(item.get("title") or ""),
                        url=str(item.get("url") or ""),
                        content=str(item.get("content") or ""),
                        score=float(item.get("score") or 0.0),
                    )
                )
        except (AttributeError, TypeError, ValueError) as exc:
            raise SearchClientError("Tavily returned an unexpected payload") from exc
        snippets.sort(key=lambda snippet: snippet.score, reverse=True)
        return snippets[:max_results]


def get_default_search_client(settings: Settings | None = None) -> TavilySearchClient | None:
    """Return a Tavily client when a key is configured, else ``None``."""

    active = settings or get_settings()
    if not active.tavily_api_key:
        return None
    return TavilySearchClient(api_key=active.tavily_api_key, base_url=active.tavily_base_url)
