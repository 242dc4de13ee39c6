"""Unit tests for the completion and search HTTP clients."""

from __future__ import annotations

import io
import json
import unittest
from http import client as http_client
from unittest.mock import patch
from urllib import error as urllib_error

from app.config import ConfigError, Settings
from app.llm.client import (
    LLMClientError,
    OpenAIChatCompletionsClient,
    TokenUsage,
    get_default_llm_client,
    parse_json_object,
)
from app.llm.search import SearchClientError, TavilySearchClient, get_default_search_client


class _FakeResponse(io.BytesIO):
    def __enter__(self):  # noqa: ANN204
        return self

    def __exit__(self, *exc_info):  # noqa: ANN002, ANN204
        self.close()
        return False


def _envelope(content: str, *, refusal: str | None = None) -> _FakeResponse:
    body = {
        "choices": [{"message": {"content": content, "refusal": refusal}}],
        "usage": {"prompt_tokens": 120, "completion_tokens": 30},
    }
    return _FakeResponse(json.dumps(body).encode("utf-8"))


class CompletionClientTests(unittest.TestCase):
    def test_complete_json_parses_reply_and_tracks_usage(self) -> None:
        client = OpenAIChatCompletionsClient(api_key="test-key", model="gpt-test")
        with patch("app.llm.client.urllib_request.urlopen", return_value=_envelope('{"isDuplicate": true}')) as urlopen:
            result = client.complete_json("system", "user", max_tokens=50)

        self.assertEqual(result, {"isDuplicate": True})
        self.assertEqual(client.usage.prompt_tokens, 120)
        self.assertEqual(client.usage.completion_tokens, 30)
        self.assertEqual(client.usage.requests, 1)
        sent = json.loads(urlopen.call_args.args[0].data.decode("utf-8"))
        self.assertEqual(sent["model"], "gpt-test")
        self.assertEqual(sent["max_completion_tokens"], 50)

    def test_refusal_and_bad_envelope_raise(self) -> None:
        client = OpenAIChatCompletionsClient(api_key="test-key", model="gpt-test")
        with patch("app.llm.client.urllib_request.urlopen", return_value=_envelope("", refusal="no")):
            with self.assertRaises(LLMClientError):
                client.complete_json("system", "user")
        with patch("app.llm.client.urllib_request.urlopen", return_value=_FakeResponse(b'{"choices": []}')):
            with self.assertRaises(LLMClientError):
                client.complete_json("system", "user")

    def test_http_errors_raise_client_error(self) -> None:
        client = OpenAIChatCompletionsClient(api_key="test-key", model="gpt-test")
        http_error = urllib_error.HTTPError(
            url="https://api.openai.com/v1/chat/completions",
            code=429,
            msg="Too Many Requests",
            hdrs=None,
            fp=io.BytesIO(b"rate limited"),
        )
        with patch("app.llm.client.urllib_request.urlopen", side_effect=http_error):
            with self.assertRaisesRegex(LLMClientError, "429"):
                client.complete_json("system", "user")

    def test_truncated_body_raises_client_error(self) -> None:
        client = OpenAIChatCompletionsClient(api_key="test-key", model="gpt-test")
        with patch("app.llm.client.urllib_request.urlopen", side_effect=http_client.IncompleteRead(b"{")):
            with self.assertRaises(LLMClientError):
                client.complete_json("system", "user")

    def test_parse_json_object_tolerates_prose(self) -> None:
        self.assertEqual(parse_json_object('Sure: {"a": 1} done'), {"a": 1})
        with self.assertRaises(LLMClientError):
            parse_json_object("[1, 2]")
        with self.assertRaises(LLMClientError):
            parse_json_object("not json")

    def test_usage_cost(self) -> None:
        usage = TokenUsage()
        usage.add(2_000_000, 500_000)
        self.assertAlmostEqual(usage.estimated_cost(0.40, 1.60), 0.8 + 0.8)

    def test_missing_key_is_a_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            get_default_llm_client(settings=Settings(openai_api_key=None))
        client = get_default_llm_client(model="gpt-5-nano", settings=Settings(openai_api_key="k"))
        self.assertEqual(client.model, "gpt-5-nano")


class SearchClientTests(unittest.TestCase):
    def test_results_are_ranked_and_capped(self) -> None:
        body = {
            "results": [
                {"title": "low", "url": "https://a", "content": "a", "score": 0.2},
                {"title": "high", "url": "https://b", "content": "b", "score": 0.9},
                "noise",
            ]
        }
        client = TavilySearchClient(api_key="tvly-test")
        with patch("app.llm.search.urllib_request.urlopen", return_value=_FakeResponse(json.dumps(body).encode())):
            snippets = client.search("Joe Flamm chef", max_results=1)

        self.assertEqual([snippet.title for snippet in snippets], ["high"])

    def test_failures_raise_search_error(self) -> None:
        client = TavilySearchClient(api_key="tvly-test")
        with patch("app.llm.search.urllib_request.urlopen", side_effect=urllib_error.URLError("down")):
            with self.assertRaises(SearchClientError):
                client.search("Joe Flamm chef")

    def test_malformed_payloads_raise_search_error(self) -> None:
        client = TavilySearchClient(api_key="tvly-test")
        bodies = [
            {"results": [{"title": "Joe Flamm", "url": "https://a", "content": "a", "score": "high"}]},
            [{"title": "Joe Flamm"}],
            {"results": 7},
        ]
        for body in bodies:
            with patch(
                "app.llm.search.urllib_request.urlopen",
                return_value=_FakeResponse(json.dumps(body).encode("utf-8")),
            ):
                with self.assertRaises(SearchClientError, msg=str(body)):
                    client.search("Joe Flamm chef")

    def test_default_client_needs_a_key(self) -> None:
        self.assertIsNone(get_default_search_client(Settings(tavily_api_key=None)))
        self.assertIsNotNone(get_default_search_client(Settings(tavily_api_key="tvly-test")))


if __name__ == "__main__":
    unittest.main()
