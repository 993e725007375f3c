# =============================================================================
# Integration Tests — Orchestrator, transition table, lookup_topic
# =============================================================================
#
# Drives the compiled LangGraph with scripted chat replies and fake search
# capabilities; no API keys or network needed.
# =============================================================================

from __future__ import annotations

import pytest
from langgraph.checkpoint.memory import MemorySaver

from conftest import (
    FailingSearch,
    FakeChat,
    LoopingChat,
    make_tools,
    make_workflow,
    summary_json,
    text_reply,
    tool_reply,
)

from newsdesk.graph.capabilities import OfflineChatCapability
from newsdesk.graph.errors import GraphConfigError, RunawayRoutingError
from newsdesk.graph.graph import (
    EMPTY_RESULT,
    FALLBACK_RESULT,
    TAVILY_TOOL,
    WEB_TOOL,
    Orchestrator,
    build_transition_table,
    check_transition_table,
    lookup_topic,
    multi_agent_workflow,
    unanswered_tool_calls,
)
from newsdesk.graph.nodes import AgentSpec, Workflow
from newsdesk.graph.tools.search_tools import OfflineSearch, SearchTool
from newsdesk.models import Message, SessionState


def _node_sequence(orchestrator: Orchestrator, topic: str = "quantum computing"):
    initial = {
        "messages": [Message(role="user", content=f"report current events about: {topic}")],
        "sender": "user",
        "pending_agents": orchestrator.workflow.research_names,
    }
    return [name for chunk in orchestrator.graph.stream(initial, orchestrator.config("seq"), stream_mode="updates") for name in chunk]


def _plain_script():
    return [text_reply("agent1 findings"), text_reply("agent2 findings"), text_reply(summary_json())]


def _tool_script():
    return [
        tool_reply("search", "quantum computing news", "c1"),
        text_reply("agent1 findings"),
        text_reply("agent2 findings"),
        text_reply(summary_json()),
    ]


# ---------------------------------------------------------------------------
# Test: Transition table
# ---------------------------------------------------------------------------


class TestTransitionTable:
    def test_preset_table_is_complete(self):
        wf = multi_agent_workflow()
        check_transition_table(build_transition_table(wf), wf)

    def test_missing_decision_rejected(self):
        wf = make_workflow()
        table = build_transition_table(wf)
        del table["agent1"]["synthesis"]
        with pytest.raises(GraphConfigError, match="agent1"):
            check_transition_table(table, wf)

    def test_missing_node_rejected(self):
        wf = make_workflow()
        table = build_transition_table(wf)
        del table["call_tool"]
        with pytest.raises(GraphConfigError):
            check_transition_table(table, wf)

    def test_dangling_target_rejected(self):
        wf = make_workflow()
        table = build_transition_table(wf)
        table["call_tool"]["agent1"] = "ghost"
        with pytest.raises(GraphConfigError, match="ghost"):
            check_transition_table(table, wf)


# ---------------------------------------------------------------------------
# Test: Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_no_tool_calls(self, make_orchestrator):
        assert _node_sequence(make_orchestrator(FakeChat(_plain_script()))) == ["agent1", "agent2", "synthesis"]

        response = lookup_topic(make_orchestrator(FakeChat(_plain_script())), "quantum computing", "s1")
        assert response.result.startswith("# X")
        assert "**A**\nB" in response.result

    def test_one_tool_call(self, make_orchestrator):
        sequence = _node_sequence(make_orchestrator(FakeChat(_tool_script())))
        assert sequence == ["agent1", "call_tool", "agent1", "agent2", "synthesis"]

    def test_tool_result_returns_to_requester(self, make_orchestrator):
        script = [
            text_reply("agent1 findings"),
            tool_reply("search", "follow-up", "c2"),
            text_reply("agent2 findings"),
            text_reply(summary_json()),
        ]
        sequence = _node_sequence(make_orchestrator(FakeChat(script)))
        assert sequence == ["agent1", "agent2", "call_tool", "agent2", "synthesis"]

    def test_failing_search_does_not_abort(self, make_orchestrator):
        orchestrator = make_orchestrator(FakeChat(_tool_script()), search=FailingSearch())

        state = orchestrator.run("s1", "report current events about: quantum computing")

        tool_messages = [m for m in state.messages if m.role == "tool"]
        assert len(tool_messages) == 1
        assert tool_messages[0].tool_call_id == "c1"
        assert tool_messages[0].content.startswith("Error:")
        assert state.sender == "synthesis"
        assert state.last_message.author == "synthesis"

    def test_single_agent_loop(self):
        wf = Workflow(synthesis=AgentSpec("solo", "Answer with news.", ("search",)))
        chat = FakeChat([tool_reply("search", "q"), text_reply("final answer")])
        orchestrator = Orchestrator(wf, chat, make_tools())

        assert lookup_topic(orchestrator, "topic", "s1").result == "final answer"
        assert [m.role for m in orchestrator.load("s1").messages] == ["user", "assistant", "tool", "assistant"]

    def test_offline_preset_end_to_end(self):
        tools = {
            TAVILY_TOOL: SearchTool(TAVILY_TOOL, "t", OfflineSearch(), 3),
            WEB_TOOL: SearchTool(WEB_TOOL, "w", OfflineSearch(), 3),
        }
        orchestrator = Orchestrator(multi_agent_workflow(), OfflineChatCapability(), tools)

        result = lookup_topic(orchestrator, "quantum computing", "s1").result

        assert result.startswith("# report current events about: quantum computing (offline)")
        authors = [m.author for m in orchestrator.load("s1").messages if m.author]
        assert authors == ["TavilyResearcher", "WebResearcher", "Summarizer"]


# ---------------------------------------------------------------------------
# Test: State invariants
# ---------------------------------------------------------------------------


class TestInvariants:
    def test_history_is_append_only(self, make_orchestrator):
        orchestrator = make_orchestrator(FakeChat(_tool_script()))
        orchestrator.run("s1", "hello")

        history = list(orchestrator.graph.get_state_history(orchestrator.config("s1")))
        snapshots = [SessionState.model_validate(dict(s.values)) for s in reversed(history)]

        assert len(snapshots) >= 5
        for before, after in zip(snapshots, snapshots[1:]):
            assert after.messages[: len(before.messages)] == before.messages

    def test_tool_messages_link_to_earlier_calls(self, make_orchestrator):
        script = [
            Message(
                role="assistant",
                tool_calls=[
                    tool_reply("search", "one", "c1").tool_calls[0],
                    tool_reply("search", "two", "c2").tool_calls[0],
                ],
            ),
            text_reply("agent1 findings"),
            text_reply("agent2 findings"),
            text_reply(summary_json()),
        ]
        state = make_orchestrator(FakeChat(script)).run("s1", "hello")

        for i, msg in enumerate(state.messages):
            if msg.role == "tool":
                earlier_ids = {
                    c.id for m in state.messages[:i] if m.role == "assistant" for c in m.tool_calls
                }
                assert msg.tool_call_id in earlier_ids

    def test_runaway_routing_hits_cap(self, make_orchestrator):
        orchestrator = make_orchestrator(LoopingChat(), max_steps=6)

        with pytest.raises(RunawayRoutingError):
            orchestrator.run("s1", "hello")

        # completed steps stay checkpointed and every tool call has a result
        messages = orchestrator.load("s1").messages
        assert messages[0].content == "hello"
        assert unanswered_tool_calls(messages) == []

    def test_failed_turn_leaves_history_usable(self, make_orchestrator):
        script = [
            tool_reply("no_such_tool", "q", "c9"),
            text_reply("agent1 findings"),
            text_reply("agent2 findings"),
            text_reply(summary_json(headline="Recovered")),
        ]
        orchestrator = make_orchestrator(FakeChat(script))

        assert lookup_topic(orchestrator, "topic", "s1").result == FALLBACK_RESULT

        closed = orchestrator.load("s1").messages[-1]
        assert closed.role == "tool"
        assert closed.tool_call_id == "c9"
        assert closed.content.startswith("Error:")

        assert lookup_topic(orchestrator, "topic", "s1").result.startswith("# Recovered")

    def test_runaway_routing_yields_fallback(self, make_orchestrator):
        orchestrator = make_orchestrator(LoopingChat(), max_steps=6)
        assert lookup_topic(orchestrator, "topic", "s1").result == FALLBACK_RESULT


# ---------------------------------------------------------------------------
# Test: Sessions and results
# ---------------------------------------------------------------------------


class TestSessions:
    def test_follow_up_turn_resumes_history(self, make_orchestrator):
        chat = FakeChat(_plain_script() + _plain_script())
        orchestrator = make_orchestrator(chat)

        orchestrator.run("s1", "first question")
        state = orchestrator.run("s1", "second question")

        assert len(state.messages) == 8
        assert [m.content for m in state.messages if m.role == "user"] == ["first question", "second question"]
        # both researchers visited again in the second turn
        assert [m.author for m in state.messages[5:]] == ["agent1", "agent2", "synthesis"]
        # second turn's first prompt: system + 4 prior + new user message
        assert len(chat.calls[3]["messages"]) == 6

    def test_sessions_are_isolated(self, make_orchestrator):
        saver = MemorySaver()
        cats = make_orchestrator(FakeChat(_plain_script()), checkpointer=saver)
        dogs = make_orchestrator(FakeChat(_plain_script()), checkpointer=saver)
        cats.run("s1", "about cats")
        dogs.run("s2", "about dogs")

        s1 = [m.content for m in cats.load("s1").messages]
        s2 = [m.content for m in cats.load("s2").messages]
        assert "about dogs" not in s1
        assert "about cats" not in s2

    def test_generation_failure_returns_fallback(self, make_orchestrator):
        orchestrator = make_orchestrator(FakeChat([text_reply("ok"), RuntimeError("rate limited")]))

        assert lookup_topic(orchestrator, "topic", "s1").result == FALLBACK_RESULT
        # the step that finished before the failure stays checkpointed
        assert [m.content for m in orchestrator.load("s1").messages] == [
            "report current events about: topic",
            "ok",
        ]

    def test_deeply_nested_reply_passed_through(self, make_orchestrator):
        script = [text_reply("[" * 100000), text_reply("a2"), text_reply("plain")]
        assert lookup_topic(make_orchestrator(FakeChat(script)), "topic", "s1").result == "plain"

    def test_deeply_nested_final_reply_returned_raw(self, make_orchestrator):
        nested = "[" * 100000
        script = [text_reply("a1"), text_reply("a2"), text_reply(nested)]
        assert lookup_topic(make_orchestrator(FakeChat(script)), "topic", "s1").result == nested

    def test_unstructured_final_message_returned_raw(self, make_orchestrator):
        script = [text_reply("a1"), text_reply("a2"), text_reply("plain report")]
        assert lookup_topic(make_orchestrator(FakeChat(script)), "topic", "s1").result == "plain report"

    def test_empty_final_message(self, make_orchestrator):
        script = [text_reply("a1"), text_reply("a2"), text_reply("")]
        assert lookup_topic(make_orchestrator(FakeChat(script)), "topic", "s1").result == EMPTY_RESULT
