"""
capabilities.py
---------------
Language-generation adapters.

The graph only depends on `ChatCapability.generate`: history in, one
`Message` out. `OpenAIChatCapability` does the LangChain conversion both ways;
`OfflineChatCapability` is the dev/offline stand-in (DEV_NO_LLM=true or no
OpenAI key) that never leaves the process.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from ..config import Settings
from ..models import Message, ToolCall
from .schemas import SummarizerResponse, ResearcherResponse, json_schema_format
from .tools.search_tools import SearchTool


class ChatCapability(Protocol):
    def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[SearchTool] = (),
        response_schema: Optional[Type[BaseModel]] = None,
    ) -> Message: ...


# --------------------------------------------------------------------------------------
# Message conversion
# --------------------------------------------------------------------------------------
def to_langchain_messages(messages: Sequence[Message]) -> List[BaseMessage]:
    out: List[BaseMessage] = []
    for m in messages:
        if m.role == "system":
            out.append(SystemMessage(content=m.content))
        elif m.role == "user":
            out.append(HumanMessage(content=m.content))
        elif m.role == "tool":
            out.append(ToolMessage(content=m.content, tool_call_id=m.tool_call_id or ""))
        else:
            out.append(
                AIMessage(
                    content=m.content,
                    name=m.author,
                    tool_calls=[
                        {"id": c.id, "name": c.name, "args": dict(c.args), "type": "tool_call"}
                        for c in m.tool_calls
                    ],
                )
            )
    return out


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    # Content blocks: keep the text parts only
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def from_langchain_message(message: BaseMessage) -> Message:
    tool_calls = [
        ToolCall(id=c.get("id") or "", name=c["name"], args=c.get("args") or {})
        for c in getattr(message, "tool_calls", None) or []
    ]
    return Message(role="assistant", content=_content_text(message.content), tool_calls=tool_calls)


# --------------------------------------------------------------------------------------
# OpenAI
# --------------------------------------------------------------------------------------
class OpenAIChatCapability:
    def __init__(self, llm: ChatOpenAI) -> None:
        self._llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatCapability":
        llm = ChatOpenAI(
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout,
        )
        return cls(llm)

    def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[SearchTool] = (),
        response_schema: Optional[Type[BaseModel]] = None,
    ) -> Message:
        bind_kwargs: Dict[str, Any] = {}
        if response_schema is not None:
            bind_kwargs["response_format"] = json_schema_format(response_schema)

        if tools:
            runnable = self._llm.bind_tools([t.langchain_tool for t in tools], **bind_kwargs)
        elif bind_kwargs:
            runnable = self._llm.bind(**bind_kwargs)
        else:
            runnable = self._llm

        return from_langchain_message(runnable.invoke(to_langchain_messages(messages)))


# --------------------------------------------------------------------------------------
# Offline stub (dev mode)
# --------------------------------------------------------------------------------------
class OfflineChatCapability:
    """
    Deterministic replies to validate end-to-end plumbing without an LLM.

    A tool-bearing agent that has not seen a tool result since the last user
    turn asks for one search; afterwards it reports what it found.
    """

    def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[SearchTool] = (),
        response_schema: Optional[Type[BaseModel]] = None,
    ) -> Message:
        topic = next((m.content for m in reversed(messages) if m.role == "user"), "")
        turn = list(messages)
        last_user = max((i for i, m in enumerate(turn) if m.role == "user"), default=-1)
        seen_results = [m.content for m in turn[last_user + 1:] if m.role == "tool"]

        if tools and not seen_results:
            call = ToolCall(id=f"offline-{len(turn)}", name=tools[0].name, args={"query": topic})
            return Message(role="assistant", tool_calls=[call])

        if response_schema is SummarizerResponse:
            return Message(role="assistant", content=self._summary(topic, seen_results))
        if response_schema is ResearcherResponse:
            return Message(role="assistant", content=self._findings(topic, seen_results))
        return Message(role="assistant", content=f"Draft (offline) for: {topic}\n\n" + "\n\n".join(seen_results))

    @staticmethod
    def _findings(topic: str, results: List[str]) -> str:
        payload = {
            "reasoning": {
                "query_analysis": f"Offline analysis of: {topic}",
                "search_strategy": "Single news search",
                "tool_selection": "First available search tool",
            },
            "action": {"type": "provide_findings", "tool_name": None, "findings": "\n\n".join(results)},
            "metadata": {"confidence": 0.1, "sources_needed": False},
        }
        return json.dumps(payload)

    @staticmethod
    def _summary(topic: str, results: List[str]) -> str:
        payload = {
            "reasoning": {
                "information_assessment": "Offline placeholder",
                "key_themes": [topic],
                "synthesis_approach": "Template",
            },
            "summary": {
                "headline": f"{topic} (offline)",
                "overview": "Generated without a language model.",
                "key_points": [{"point": "Placeholder", "details": f"{len(results)} search result(s) in context."}],
                "insights": "[placeholder]",
                "conclusion": "[placeholder]",
            },
            "metadata": {"completeness": 0.0, "topic_coverage": [topic]},
        }
        return json.dumps(payload)
