"""Unit tests for LLM duplicate verification contracts."""

from __future__ import annotations

import json
import unittest
from http import client as http_client

from app.duplicates.types import ChefProfile, RestaurantProfile, ShowAppearance
from app.duplicates.verifier import DuplicateVerifier
from app.llm.client import LLMClientError, TokenUsage
from app.llm.search import SearchClientError, SearchSnippet


class _StubClient:
    def __init__(self, payload: dict | Exception) -> None:
        self.payload = payload
        self.usage = TokenUsage()
        self.calls: list[tuple[str, str]] = []

    def complete_json(self, system_prompt, user_prompt, *, max_tokens=None):  # noqa: ANN001
        _ = max_tokens
        self.calls.append((system_prompt, user_prompt))
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class _StubSearch:
    def __init__(self, fail: bool = False, error: Exception | None = None) -> None:
        self.fail = fail
        self.error = error
        self.queries: list[str] = []

    def search(self, query, *, max_results=5):  # noqa: ANN001
        _ = max_results
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        if self.fail:
            raise SearchClientError("search down")
        return [SearchSnippet(title=f"{query} profile", url="https://example.com", content="Top Chef Season 15")]


def _restaurant(record_id: str, name: str, city: str = "Chicago") -> RestaurantProfile:
    return RestaurantProfile(id=record_id, name=name, slug=record_id, city=city, state="IL", chef_id="chef-1")


def _chef(record_id: str, name: str) -> ChefProfile:
    return ChefProfile(
        id=record_id,
        name=name,
        slug=record_id,
        restaurant_count=1,
        shows=[ShowAppearance(show_name="Top Chef", season="Season 15", result="winner")],
    )


class DuplicateVerifierTests(unittest.TestCase):
    def test_valid_reply_is_returned(self) -> None:
        client = _StubClient({"isDuplicate": True, "confidence": 0.95, "reasoning": " Same place. "})
        verifier = DuplicateVerifier(client)

        result = verifier.verify_restaurants(_restaurant("r1", "Aba"), _restaurant("r2", "Aba Chicago"))

        self.assertTrue(result.is_duplicate)
        self.assertEqual(result.confidence, 0.95)
        self.assertEqual(result.reasoning, "Same place.")
        self.assertFalse(result.failed)
        prompt = json.loads(client.calls[0][1])
        self.assertEqual(prompt["restaurant_a"]["name"], "Aba")
        self.assertIn("Chicago, IL", prompt["task"])

    def test_transport_error_fails_closed(self) -> None:
        verifier = DuplicateVerifier(_StubClient(LLMClientError("OpenAI HTTP 429: slow down")))

        result = verifier.verify_restaurants(_restaurant("r1", "Aba"), _restaurant("r2", "Aba"))

        self.assertFalse(result.is_duplicate)
        self.assertEqual(result.confidence, 0.0)
        self.assertTrue(result.failed)
        self.assertTrue(result.reasoning.startswith("Error during detection:"))

    def test_malformed_payloads_fail_closed(self) -> None:
        bad_payloads = [
            {"isDuplicate": "yes", "confidence": 0.9, "reasoning": "x"},
            {"isDuplicate": True, "confidence": 1.4, "reasoning": "x"},
            {"isDuplicate": True, "reasoning": "x"},
            {"isDuplicate": True, "confidence": 0.9, "reasoning": "x", "extra": 1},
        ]
        for payload in bad_payloads:
            verifier = DuplicateVerifier(_StubClient(payload))
            result = verifier.verify_chefs(_chef("c1", "Joe Flamm"), _chef("c2", "Joseph Flamm"))
            self.assertFalse(result.is_duplicate, payload)
            self.assertEqual(result.confidence, 0.0, payload)
            self.assertTrue(result.failed, payload)

    def test_chef_prompt_includes_search_snippets(self) -> None:
        client = _StubClient({"isDuplicate": True, "confidence": 0.92, "reasoning": "Same Top Chef winner."})
        search = _StubSearch()
        verifier = DuplicateVerifier(client, search_client=search)

        result = verifier.verify_chefs(_chef("c1", "Joe Flamm"), _chef("c2", "Joseph Flamm"))

        self.assertTrue(result.is_duplicate)
        self.assertEqual(search.queries, ["Joe Flamm chef", "Joseph Flamm chef"])
        prompt = json.loads(client.calls[0][1])
        self.assertEqual(len(prompt["web_search_results"]), 2)
        self.assertEqual(prompt["chef_a"]["shows"], ["Top Chef Season 15"])

    def test_search_failure_does_not_block_verification(self) -> None:
        client = _StubClient({"isDuplicate": False, "confidence": 0.3, "reasoning": "Different people."})
        verifier = DuplicateVerifier(client, search_client=_StubSearch(fail=True))

        result = verifier.verify_chefs(_chef("c1", "Joe Flamm"), _chef("c2", "Joe Flan"))

        self.assertFalse(result.failed)
        self.assertEqual(result.confidence, 0.3)
        self.assertNotIn("web_search_results", json.loads(client.calls[0][1]))

    def test_unexpected_search_and_read_errors_stay_inside(self) -> None:
        client = _StubClient({"isDuplicate": True, "confidence": 0.91, "reasoning": "Same chef."})
        verifier = DuplicateVerifier(client, search_client=_StubSearch(error=ValueError("bad score")))

        result = verifier.verify_chefs(_chef("c1", "Joe Flamm"), _chef("c2", "Joseph Flamm"))

        self.assertFalse(result.failed)
        self.assertEqual(result.confidence, 0.91)

        truncated = DuplicateVerifier(_StubClient(http_client.IncompleteRead(b"{")))
        result = truncated.verify_chefs(_chef("c1", "Joe Flamm"), _chef("c2", "Joseph Flamm"))
        self.assertTrue(result.failed)
        self.assertFalse(result.is_duplicate)
        self.assertEqual(result.confidence, 0.0)


if __name__ == "__main__":
    unittest.main()
