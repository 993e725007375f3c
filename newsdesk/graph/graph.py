"""
graph.py
--------
LangGraph wiring. Defines the state machine and node transitions.

Flow (multi):
START -> TavilyResearcher <-> call_tool
      -> WebResearcher    <-> call_tool
      -> Summarizer -> END

Flow (single):
START -> NewsAnalyst <-> call_tool -> END

Every agent node routes through `router.route`; the tool node returns to
whichever agent asked for the tools. The transition table is checked for
completeness before the graph is compiled.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.errors import GraphRecursionError
from langgraph.graph import StateGraph, START, END

from ..models import LookupResponse, Message, SessionState, ToolCall
from .capabilities import ChatCapability
from .errors import GraphConfigError, RunawayRoutingError
from .formatter import format_report
from .memory import SessionLocks
from .nodes import END_KEY, TOOLS_NODE, AgentSpec, Workflow, run_agent_node, run_tool_node
from .prompts import (
    NEWS_ANALYST_INSTRUCTIONS,
    RESEARCHER_INSTRUCTIONS,
    SUMMARIZER_INSTRUCTIONS,
    USER_REQUEST,
)
from .router import route, route_after_tools
from .schemas import ResearcherResponse, SummarizerResponse
from .tools.search_tools import SearchTool

logger = logging.getLogger(__name__)

MAX_STEPS = 25
FALLBACK_RESULT = "Oops, something went wrong!"
EMPTY_RESULT = "No response available"

TAVILY_TOOL = "tavily_search"
WEB_TOOL = "web_search"


# --------------------------------------------------------------------------------------
# Workflow presets
# --------------------------------------------------------------------------------------
def multi_agent_workflow() -> Workflow:
    return Workflow(
        research=(
            AgentSpec("TavilyResearcher", RESEARCHER_INSTRUCTIONS, (TAVILY_TOOL,), ResearcherResponse),
            AgentSpec("WebResearcher", RESEARCHER_INSTRUCTIONS, (WEB_TOOL,), ResearcherResponse),
        ),
        synthesis=AgentSpec("Summarizer", SUMMARIZER_INSTRUCTIONS, (), SummarizerResponse),
    )


def single_agent_workflow() -> Workflow:
    return Workflow(synthesis=AgentSpec("NewsAnalyst", NEWS_ANALYST_INSTRUCTIONS, (TAVILY_TOOL,)))


WORKFLOWS = {"multi": multi_agent_workflow, "single": single_agent_workflow}


# --------------------------------------------------------------------------------------
# Transition table
# --------------------------------------------------------------------------------------
def build_transition_table(workflow: Workflow) -> Dict[str, Dict[str, str]]:
    """(node, decision key) -> next node, for every node in the graph."""
    agent_edges = {TOOLS_NODE: TOOLS_NODE, END_KEY: END}
    agent_edges.update({a.name: a.name for a in workflow.agents})
    table = {a.name: dict(agent_edges) for a in workflow.agents}
    table[TOOLS_NODE] = {a.name: a.name for a in workflow.agents}
    return table


def check_transition_table(table: Mapping[str, Mapping[str, str]], workflow: Workflow) -> None:
    agent_names = {a.name for a in workflow.agents}
    nodes = agent_names | {TOOLS_NODE}
    required = {
        **{name: agent_names | {TOOLS_NODE, END_KEY} for name in agent_names},
        TOOLS_NODE: agent_names,
    }
    for node, keys in required.items():
        edges = table.get(node)
        if edges is None:
            raise GraphConfigError(f"No transitions for node {node!r}")
        missing = keys - set(edges)
        if missing:
            raise GraphConfigError(f"Node {node!r} has no transition for {sorted(missing)}")
        dangling = {target for target in edges.values() if target not in nodes and target != END}
        if dangling:
            raise GraphConfigError(f"Node {node!r} routes to unknown node(s) {sorted(dangling)}")


# --------------------------------------------------------------------------------------
# Graph build & run
# --------------------------------------------------------------------------------------
def build_graph(
    workflow: Workflow,
    chat: ChatCapability,
    tools: Mapping[str, SearchTool],
    checkpointer: Optional[BaseCheckpointSaver] = None,
):
    """
    Build and compile the LangGraph state machine. With a checkpointer, the
    state is saved after every step under the run's `thread_id`.
    """
    workflow.validate(tools)
    table = build_transition_table(workflow)
    check_transition_table(table, workflow)

    g = StateGraph(SessionState)

    for spec in workflow.agents:
        g.add_node(spec.name, _agent_node(spec, chat, [tools[name] for name in spec.tools]))
    g.add_node(TOOLS_NODE, lambda state: run_tool_node(state, tools))

    def _route(state: SessionState) -> str:
        return route(state, workflow).key

    g.add_edge(START, workflow.entry)
    for spec in workflow.agents:
        g.add_conditional_edges(spec.name, _route, table[spec.name])
    g.add_conditional_edges(TOOLS_NODE, route_after_tools, table[TOOLS_NODE])

    return g.compile(checkpointer=checkpointer)


def _agent_node(spec: AgentSpec, chat: ChatCapability, tools):
    def node(state: SessionState) -> Dict[str, Any]:
        return run_agent_node(state, spec, chat, tools)
    return node


def _to_state(values: Any) -> SessionState:
    if isinstance(values, SessionState):
        return values
    return SessionState.model_validate(dict(values or {}))


def unanswered_tool_calls(messages: List[Message]) -> List[ToolCall]:
    """Tool calls in `messages` that no tool message answers."""
    answered = {m.tool_call_id for m in messages if m.role == "tool"}
    return [c for m in messages if m.role == "assistant" for c in m.tool_calls if c.id not in answered]


class Orchestrator:
    """Runs one user turn per call, resuming the session's checkpointed history."""

    def __init__(
        self,
        workflow: Workflow,
        chat: ChatCapability,
        tools: Mapping[str, SearchTool],
        checkpointer: Optional[BaseCheckpointSaver] = None,
        max_steps: int = MAX_STEPS,
    ) -> None:
        self.workflow = workflow
        self.max_steps = max_steps
        self.checkpointer = checkpointer if checkpointer is not None else MemorySaver()
        self.locks = SessionLocks()
        self.graph = build_graph(workflow, chat, tools, self.checkpointer)

    def config(self, session_id: str) -> Dict[str, Any]:
        return {"configurable": {"thread_id": session_id}, "recursion_limit": self.max_steps}

    def load(self, session_id: str) -> SessionState:
        """Latest checkpointed state; an unknown session loads as an empty state."""
        return _to_state(self.graph.get_state(self.config(session_id)).values)

    def run(self, session_id: str, user_message: str) -> SessionState:
        config = self.config(session_id)
        with self.locks.hold(session_id):
            prior = self.load(session_id)
            logger.info("Starting workflow for session %s (%d prior messages)", session_id, len(prior.messages))

            # The messages reducer appends this turn to the checkpointed history
            turn = {
                "messages": [Message(role="user", content=user_message)],
                "sender": "user",
                "pending_agents": self.workflow.research_names,
            }
            try:
                self.graph.invoke(turn, config=config)
            except Exception as e:
                self._close_failed_turn(session_id)
                if isinstance(e, GraphRecursionError):
                    raise RunawayRoutingError(session_id, self.max_steps) from e
                raise
            final = self.load(session_id)

        logger.info("Workflow completed with %d total messages", len(final.messages))
        return final

    def _close_failed_turn(self, session_id: str) -> None:
        """
        Steps completed before a failure stay checkpointed. Tool calls left
        without results get an error result so the next turn's history is
        still well formed.
        """
        state = self.load(session_id)
        dangling = unanswered_tool_calls(state.messages)
        if not dangling:
            return
        logger.warning("Closing %d unanswered tool call(s) for session %s", len(dangling), session_id)
        results = [
            Message(role="tool", content=f"Error: {c.name} was not run because the turn failed", tool_call_id=c.id)
            for c in dangling
        ]
        self.graph.update_state(self.config(session_id), {"messages": results}, as_node=TOOLS_NODE)


def lookup_topic(orchestrator: Orchestrator, topic: str, session_id: str) -> LookupResponse:
    """
    Run the workflow for a topic and render the final message. Fatal errors of
    any kind come back as the fixed fallback result.
    """
    try:
        state = orchestrator.run(session_id, USER_REQUEST.format(topic=topic))
    except Exception:
        logger.exception("Workflow failed for session %s", session_id)
        return LookupResponse(result=FALLBACK_RESULT)

    final = state.last_message
    if final is None or not final.content:
        return LookupResponse(result=EMPTY_RESULT)
    return LookupResponse(result=format_report(final.content))
