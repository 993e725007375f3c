"""
errors.py
---------
Fatal workflow errors. Search failures are not listed here: the tool node
turns them into tool messages instead of raising.
"""
from __future__ import annotations


class WorkflowError(RuntimeError):
    """Base class for errors that abort a graph run."""


class GraphConfigError(WorkflowError):
    """The workflow or its transition table is incomplete or inconsistent."""


class UnknownToolError(WorkflowError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class RunawayRoutingError(WorkflowError):
    def __init__(self, session_id: str, limit: int) -> None:
        super().__init__(f"Session {session_id!r} exceeded {limit} graph steps without reaching END")
        self.session_id = session_id
        self.limit = limit
