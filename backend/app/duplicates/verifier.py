"""LLM-backed duplicate verification for chef and restaurant pairs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http import client as http_client

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.duplicates.types import ChefProfile, RestaurantProfile
from app.llm.client import CompletionClient, LLMClientError
from app.llm.search import SearchClient, SearchClientError, SearchSnippet

logger = logging.getLogger(__name__)

# Failures a completion or search call may raise for one pair.
_CALL_ERRORS = (
    LLMClientError,
    SearchClientError,
    ValidationError,
    http_client.HTTPException,
    OSError,
    AttributeError,
    KeyError,
    TypeError,
    ValueError,
)

RESTAURANT_SYSTEM_PROMPT = """You review restaurant listings for a TV chef directory and decide whether two entries describe the SAME physical restaurant.

Rules:
- Name variants in the same city are duplicates ("Aba" vs "Aba Chicago").
- The same name in a different city is NOT a duplicate.
- Similar names with different addresses in one city are usually different locations.
- Similar rating and review counts support a duplicate judgment; very different counts argue against it.
- Chains, franchises and sister restaurants are separate locations.

Respond with ONLY a JSON object:
{"isDuplicate": true|false, "confidence": 0.0-1.0, "reasoning": "short explanation"}"""

CHEF_SYSTEM_PROMPT = """You review chef profiles for a TV chef directory and decide whether two records describe the SAME person.

Rules:
- Spelling variants of one name with overlapping shows or restaurants are the same person.
- Shared show seasons are strong evidence; conflicting show histories are strong counter-evidence.
- Use any web search snippets provided to confirm identity.
- Confidence 0.9-1.0 means definitely the same person, 0.7-0.9 likely, below 0.7 uncertain.

Respond with ONLY a JSON object:
{"isDuplicate": true|false, "confidence": 0.0-1.0, "reasoning": "short explanation"}"""


class _VerificationPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    isDuplicate: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str


@dataclass(slots=True)
class VerificationResult:
    """Outcome of one verifier call. ``error`` is set when the call failed closed."""

    is_duplicate: bool
    confidence: float
    reasoning: str
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failure(cls, message: str) -> "VerificationResult":
        return cls(
            is_duplicate=False,
            confidence=0.0,
            reasoning=f"Error during detection: {message}",
            error=message,
        )


class DuplicateVerifier:
    """Ask the completion service whether two records are the same entity.

    Every public method returns a ``VerificationResult``; transport, parsing and
    schema errors are converted to a not-duplicate result with zero confidence.
    """

    def __init__(
        self,
        client: CompletionClient,
        *,
        search_client: SearchClient | None = None,
        max_tokens: int = 500,
    ) -> None:
        self._client = client
        self._search_client = search_client
        self._max_tokens = max_tokens

    @property
    def client(self) -> CompletionClient:
        return self._client

    def verify_restaurants(self, left: RestaurantProfile, right: RestaurantProfile) -> VerificationResult:
        location = f"{left.city}, {left.state}" if left.state else left.city
        prompt = json.dumps(
            {
                "task": f"Are these two restaurants in {location} the same restaurant?",
                "restaurant_a": _restaurant_fields(left),
                "restaurant_b": _restaurant_fields(right),
            },
            ensure_ascii=True,
        )
        return self._verify(RESTAURANT_SYSTEM_PROMPT, prompt, left_id=left.id, right_id=right.id)

    def verify_chefs(self, left: ChefProfile, right: ChefProfile) -> VerificationResult:
        body: dict[str, object] = {
            "task": "Are these two chef records the same person?",
            "chef_a": _chef_fields(left),
            "chef_b": _chef_fields(right),
        }
        snippets = self._search_snippets(left, right)
        if snippets:
            body["web_search_results"] = [
                {"title": snippet.title, "url": snippet.url, "content": snippet.content}
                for snippet in snippets
            ]
        prompt = json.dumps(body, ensure_ascii=True)
        return self._verify(CHEF_SYSTEM_PROMPT, prompt, left_id=left.id, right_id=right.id)

    def _verify(self, system_prompt: str, user_prompt: str, *, left_id: str, right_id: str) -> VerificationResult:
        try:
            raw = self._client.complete_json(system_prompt, user_prompt, max_tokens=self._max_tokens)
            validated = _VerificationPayload.model_validate(raw)
        except _CALL_ERRORS as exc:
            logger.warning(
                "duplicates.verify_failed left_id=%s right_id=%s error=%s",
                left_id,
                right_id,
                exc,
            )
            return VerificationResult.failure(str(exc))
        return VerificationResult(
            is_duplicate=validated.isDuplicate,
            confidence=validated.confidence,
            reasoning=validated.reasoning.strip(),
        )

    def _search_snippets(self, left: ChefProfile, right: ChefProfile) -> list[SearchSnippet]:
        if self._search_client is None:
            return []
        snippets: list[SearchSnippet] = []
        for name in dict.fromkeys((left.name, right.name)):
            try:
                snippets.extend(self._search_client.search(f"{name} chef", max_results=3))
            except _CALL_ERRORS as exc:
                logger.warning("duplicates.search_failed name=%s error=%s", name, exc)
        return snippets


def _restaurant_fields(record: RestaurantProfile) -> dict[str, object]:
    return {
        "name": record.name,
        "address": record.address,
        "city": record.city,
        "state": record.state,
        "rating": record.google_rating,
        "review_count": record.google_review_count,
    }


def _chef_fields(record: ChefProfile) -> dict[str, object]:
    return {
        "name": record.name,
        "bio": record.mini_bio,
        "restaurant_count": record.restaurant_count,
        "instagram": record.instagram_handle,
        "shows": [
            f"{show.show_name} {show.season}".strip() if show.season else show.show_name
            for show in record.shows
        ],
    }
