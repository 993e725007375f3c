"""
models.py
---------
Pydantic models used by the API layer and LangGraph state.
"""
from __future__ import annotations
import operator
from typing import Annotated, Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "tool", "system"]


class LookupRequest(BaseModel):
    command: Literal["lookup_topic"] = "lookup_topic"
    topic: str = Field(..., description="Topic to research and report on")
    session_id: str = Field(..., description="Stable session/thread id for memory & checkpointing")


class LookupResponse(BaseModel):
    result: str


class ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """One conversation turn. Frozen: history entries are never edited in place."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    author: Optional[str] = None  # agent that produced it, independent of role
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_call_id: Optional[str] = None  # set on 'tool' messages only


class SessionState(BaseModel):
    """
    State threaded through the graph for one session.

    `messages` is reduced by concatenation, so node updates can only append.
    `pending_agents` lists research agents that still owe a non-tool reply
    in the current turn.
    """
    messages: Annotated[List[Message], operator.add] = Field(default_factory=list)
    sender: str = "user"
    pending_agents: List[str] = Field(default_factory=list)

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None
