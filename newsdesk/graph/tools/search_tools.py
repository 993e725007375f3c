"""
tools/search_tools.py
---------------------
Search capabilities and the tool wrapper the agents see.

A capability only knows how to turn a query into result text. `SearchTool`
gives it a name, a description and a result-count hint, and exposes it as a
LangChain `StructuredTool` for binding to the chat model.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from duckduckgo_search import DDGS
from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field
from tavily import TavilyClient

logger = logging.getLogger(__name__)


class SearchCapability(Protocol):
    def search(self, query: str, max_results: int) -> str: ...


def format_results(query: str, items: List[Dict[str, str]]) -> str:
    """Render normalized {title, url, snippet, date} items into plain text for the model."""
    if not items:
        return f"No results found for: {query}"
    lines = [f"Search results for: {query}"]
    for i, item in enumerate(items, 1):
        lines.append(f"\n--- SOURCE {i}: {item.get('title') or 'Untitled'} ---")
        if item.get("url"):
            lines.append(f"URL: {item['url']}")
        if item.get("date"):
            lines.append(f"Published: {item['date']}")
        lines.append(item.get("snippet") or "")
    return "\n".join(lines)


class TavilySearch:
    """Tavily news search."""

    def __init__(self, api_key: str = "", client: Optional[TavilyClient] = None) -> None:
        self._client = client if client is not None else TavilyClient(api_key=api_key)

    def search(self, query: str, max_results: int) -> str:
        response = self._client.search(query, max_results=max_results, topic="news")
        items = [
            {
                "title": r.get("title", ""),
                "url": r.get("url", ""),
                "snippet": r.get("content", ""),
                "date": r.get("published_date", ""),
            }
            for r in response.get("results", [])
        ]
        return format_results(query, items)


class DuckDuckGoSearch:
    """DuckDuckGo news search; needs no API key."""

    def __init__(self, region: str = "us-en", ddgs_factory: Callable[[], Any] = DDGS) -> None:
        self.region = region
        self._ddgs_factory = ddgs_factory

    def search(self, query: str, max_results: int) -> str:
        with self._ddgs_factory() as ddgs:
            raw = list(ddgs.news(query, region=self.region, max_results=max_results) or [])
        items = [
            {
                "title": r.get("title", ""),
                "url": r.get("url", ""),
                "snippet": r.get("body", ""),
                "date": r.get("date", ""),
            }
            for r in raw
        ]
        return format_results(query, items)


class OfflineSearch:
    """Synthetic results for dev mode (DEV_NO_LLM) so the graph runs without network access."""

    def search(self, query: str, max_results: int) -> str:
        items = [
            {"title": f"{query} - Latest developments",
             "url": "https://example.com/news1",
             "snippet": "Observers report steady progress and growing interest."},
            {"title": f"{query} - Industry reaction",
             "url": "https://example.com/news2",
             "snippet": "Companies are adjusting plans in response to recent announcements."},
            {"title": f"{query} - What comes next",
             "url": "https://example.com/news3",
             "snippet": "Analysts expect further updates over the coming months."},
        ]
        return format_results(query, items[:max_results])


class SearchArgs(BaseModel):
    query: str = Field(description="Search query to run")


@dataclass(frozen=True)
class SearchTool:
    name: str
    description: str
    capability: SearchCapability
    max_results: int = 5

    def _run(self, query: str) -> str:
        if not query.strip():
            raise ValueError(f"{self.name} requires a non-empty 'query' string argument")
        logger.info("Tool %s searching for %r", self.name, query)
        return self.capability.search(query.strip(), self.max_results)

    @cached_property
    def langchain_tool(self) -> StructuredTool:
        """The tool as bound to the chat model; `args_schema` validates the call arguments."""
        return StructuredTool.from_function(
            self._run,
            name=self.name,
            description=self.description,
            args_schema=SearchArgs,
        )

    def invoke(self, args: Mapping[str, Any]) -> str:
        if not isinstance(args, Mapping):
            raise ValueError(f"{self.name} expects keyword arguments, got {type(args).__name__}")
        return self.langchain_tool.invoke(dict(args))
