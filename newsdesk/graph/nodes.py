"""
nodes.py
--------
Agent node implementations for the LangGraph pipeline.

This module defines:
- `AgentSpec` / `Workflow`: static description of the agents in a run
- The agent step (prompt formatting + one capability call)
- The tool step (executes every pending tool call on the latest message)

Nodes return partial state updates; the `messages` reducer appends them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import BaseModel

from ..models import Message, SessionState
from .capabilities import ChatCapability
from .errors import GraphConfigError, UnknownToolError
from .prompts import render_system_prompt
from .tools.search_tools import SearchTool

logger = logging.getLogger(__name__)

TOOLS_NODE = "call_tool"
END_KEY = "end"
RESERVED_NAMES = frozenset({TOOLS_NODE, END_KEY, "user", "__start__", "__end__"})


# --------------------------------------------------------------------------------------
# Static configuration
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class AgentSpec:
    name: str
    instructions: str
    tools: Tuple[str, ...] = ()
    response_schema: Optional[Type[BaseModel]] = None

    def system_prompt(self) -> str:
        return render_system_prompt(self.instructions, self.tools, self.response_schema is not None)


@dataclass(frozen=True)
class Workflow:
    """Research agents, visited round-robin, followed by one terminal synthesis agent."""
    synthesis: AgentSpec
    research: Tuple[AgentSpec, ...] = field(default_factory=tuple)

    @property
    def agents(self) -> Tuple[AgentSpec, ...]:
        return self.research + (self.synthesis,)

    @property
    def research_names(self) -> List[str]:
        return [a.name for a in self.research]

    @property
    def entry(self) -> str:
        return self.research[0].name if self.research else self.synthesis.name

    def validate(self, tools: Mapping[str, SearchTool]) -> None:
        names = [a.name for a in self.agents]
        if len(set(names)) != len(names):
            raise GraphConfigError(f"Duplicate agent names: {names}")
        for spec in self.agents:
            if spec.name in RESERVED_NAMES:
                raise GraphConfigError(f"Agent name {spec.name!r} is reserved")
            for tool_name in spec.tools:
                if tool_name not in tools:
                    raise UnknownToolError(tool_name)


# --------------------------------------------------------------------------------------
# Agent step
# --------------------------------------------------------------------------------------
def build_prompt(spec: AgentSpec, history: Sequence[Message]) -> List[Message]:
    """Prepend the agent's system prompt unless the history already carries one."""
    if any(m.role == "system" for m in history):
        return list(history)
    return [Message(role="system", content=spec.system_prompt())] + list(history)


def _log_reply(name: str, reply: Message) -> None:
    if reply.tool_calls:
        logger.info("%s requested %d tool call(s)", name, len(reply.tool_calls))
        return
    try:
        payload = json.loads(reply.content)
    except (ValueError, RecursionError):
        logger.info("%s completed: %s...", name, reply.content[:100])
        return
    if not isinstance(payload, dict):
        logger.info("%s completed: %s...", name, reply.content[:100])
        return
    logger.info("%s completed with structured reply", name)
    logger.debug("%s reasoning: %s", name, json.dumps(payload.get("reasoning"), indent=2))
    action = payload.get("action")
    if isinstance(action, dict):
        logger.info("%s action: %s", name, action.get("type"))
    summary = payload.get("summary")
    if isinstance(summary, dict):
        logger.info("%s headline: %s", name, summary.get("headline"))


def run_agent_node(
    state: SessionState,
    spec: AgentSpec,
    chat: ChatCapability,
    tools: Sequence[SearchTool] = (),
) -> Dict[str, Any]:
    """
    Call the chat capability once for `spec` and fold the reply into the state.

    A reply without tool calls is attributed to the agent (`author`) and
    counts as the agent's contribution for this turn. Capability errors
    propagate; nothing is appended in that case.
    """
    logger.info("Executing agent %s (%d messages)", spec.name, len(state.messages))
    reply = chat.generate(build_prompt(spec, state.messages), tools=tools, response_schema=spec.response_schema)
    _log_reply(spec.name, reply)

    update: Dict[str, Any] = {"sender": spec.name}
    if not reply.tool_calls:
        reply = reply.model_copy(update={"author": spec.name})
        update["pending_agents"] = [n for n in state.pending_agents if n != spec.name]
    update["messages"] = [reply]
    return update


# --------------------------------------------------------------------------------------
# Tool step
# --------------------------------------------------------------------------------------
def run_tool_node(state: SessionState, tools: Mapping[str, SearchTool]) -> Dict[str, Any]:
    """
    Execute every tool call on the latest message, in order, one result message per call.

    An unregistered tool name aborts the run. A failing search is reported back
    to the requesting agent as the tool message content.
    """
    last = state.last_message
    calls = last.tool_calls if last is not None else []
    results: List[Message] = []
    for call in calls:
        tool = tools.get(call.name)
        if tool is None:
            raise UnknownToolError(call.name)
        try:
            content = tool.invoke(call.args)
        except Exception as e:
            logger.warning("Tool %s failed for call %s: %s", call.name, call.id, e)
            content = f"Error: {call.name} failed: {e}"
        results.append(Message(role="tool", content=content, tool_call_id=call.id))
    return {"messages": results}
