# =============================================================================
# Shared fixtures: scripted chat capability, fake search capabilities, and a
# small two-researcher workflow. No API keys or network access needed.
# =============================================================================

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from newsdesk.graph.graph import Orchestrator
from newsdesk.graph.nodes import AgentSpec, Workflow
from newsdesk.graph.schemas import SummarizerResponse
from newsdesk.graph.tools.search_tools import SearchTool
from newsdesk.models import Message, ToolCall


class FakeChat:
    """Returns scripted replies in order; an Exception entry is raised instead."""

    def __init__(self, script: Sequence[Union[Message, Exception]]) -> None:
        self.script: List[Union[Message, Exception]] = list(script)
        self.calls: List[Dict[str, Any]] = []

    def generate(self, messages, tools=(), response_schema=None) -> Message:
        self.calls.append({"messages": list(messages), "tools": list(tools), "schema": response_schema})
        if not self.script:
            raise AssertionError("FakeChat script exhausted")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class LoopingChat:
    """Always asks for another search."""

    def __init__(self) -> None:
        self.count = 0

    def generate(self, messages, tools=(), response_schema=None) -> Message:
        self.count += 1
        return tool_reply("search", "again", f"loop-{self.count}")


class FakeSearch:
    def __init__(self, prefix: str = "results") -> None:
        self.prefix = prefix
        self.queries: List[str] = []

    def search(self, query: str, max_results: int) -> str:
        self.queries.append(query)
        return f"{self.prefix} for {query} (max {max_results})"


class FailingSearch:
    def search(self, query: str, max_results: int) -> str:
        raise ConnectionError("search backend unavailable")


def text_reply(content: str) -> Message:
    return Message(role="assistant", content=content)


def tool_reply(tool: str, query: str, call_id: str = "call-1") -> Message:
    return Message(role="assistant", tool_calls=[ToolCall(id=call_id, name=tool, args={"query": query})])


def summary_json(headline: str = "X", point: str = "A", details: str = "B") -> str:
    return json.dumps(
        {
            "reasoning": {
                "information_assessment": "enough",
                "key_themes": ["theme"],
                "synthesis_approach": "merge",
            },
            "summary": {
                "headline": headline,
                "overview": "Overview text",
                "key_points": [{"point": point, "details": details}],
                "insights": "Insight text",
                "conclusion": "Conclusion text",
            },
            "metadata": {"completeness": 0.9, "topic_coverage": ["theme"]},
        }
    )


def make_tools(search: Optional[Any] = None) -> Dict[str, SearchTool]:
    return {"search": SearchTool("search", "Search the news.", search or FakeSearch(), 3)}


def make_workflow(n_research: int = 2) -> Workflow:
    return Workflow(
        research=tuple(
            AgentSpec(f"agent{i}", f"You are research agent {i}.", ("search",)) for i in range(1, n_research + 1)
        ),
        synthesis=AgentSpec("synthesis", "You write the report.", (), SummarizerResponse),
    )


@pytest.fixture
def make_orchestrator():
    def _make(chat, search=None, workflow=None, max_steps: int = 25, checkpointer=None) -> Orchestrator:
        return Orchestrator(workflow or make_workflow(), chat, make_tools(search), checkpointer, max_steps=max_steps)
    return _make
