"""
router.py
---------
Routing policy. `route` is a pure function of the session state; the graph
maps its decision key onto the next node through the transition table.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import SessionState
from .nodes import END_KEY, TOOLS_NODE, Workflow

logger = logging.getLogger(__name__)


class Route(str, Enum):
    TOOLS = "route_to_tools"
    AGENT = "route_to_agent"
    END = "end"


@dataclass(frozen=True)
class RouteDecision:
    route: Route
    agent: Optional[str] = None

    @property
    def key(self) -> str:
        """Edge key in the transition table."""
        if self.route is Route.TOOLS:
            return TOOLS_NODE
        if self.route is Route.END:
            return END_KEY
        return self.agent or ""


def route(state: SessionState, workflow: Workflow) -> RouteDecision:
    """
    Priority:
    1. pending tool calls on the latest message -> tools
    2. the synthesis agent spoke last -> end
    3. every research agent has contributed this turn -> synthesis agent
    4. next pending research agent, round-robin after the current sender
    """
    last = state.last_message
    if last is not None and last.tool_calls:
        decision = RouteDecision(Route.TOOLS)
    elif state.sender == workflow.synthesis.name:
        decision = RouteDecision(Route.END)
    else:
        decision = RouteDecision(Route.AGENT, _next_research_agent(state, workflow) or workflow.synthesis.name)
    logger.info("Router: sender=%s messages=%d -> %s", state.sender, len(state.messages), decision.key)
    return decision


def _next_research_agent(state: SessionState, workflow: Workflow) -> Optional[str]:
    names = workflow.research_names
    if not names:
        return None
    start = names.index(state.sender) + 1 if state.sender in names else 0
    for offset in range(len(names)):
        candidate = names[(start + offset) % len(names)]
        if candidate in state.pending_agents:
            return candidate
    return None


def route_after_tools(state: SessionState) -> str:
    """Tool results always go back to the agent that requested them."""
    logger.info("Returning tool results to %s", state.sender)
    return state.sender
