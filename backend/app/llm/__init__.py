"""LLM completion and web search clients."""

from app.llm.client import (
    CompletionClient,
    LLMClientError,
    OpenAIChatCompletionsClient,
    TokenUsage,
    get_default_llm_client,
)
from app.llm.search import SearchClient, SearchClientError, SearchSnippet, TavilySearchClient

__all__ = [
    "CompletionClient",
    "LLMClientError",
    "OpenAIChatCompletionsClient",
    "SearchClient",
    "SearchClientError",
    "SearchSnippet",
    "TavilySearchClient",
    "TokenUsage",
    "get_default_llm_client",
]
