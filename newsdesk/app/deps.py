from __future__ import annotations
import logging
from functools import lru_cache
from typing import Dict

from langgraph.checkpoint.base import BaseCheckpointSaver

from ..config import settings
from ..graph.capabilities import ChatCapability, OfflineChatCapability, OpenAIChatCapability
from ..graph.graph import TAVILY_TOOL, WEB_TOOL, WORKFLOWS, Orchestrator
from ..graph.memory import make_checkpointer
from ..graph.tools.search_tools import DuckDuckGoSearch, OfflineSearch, SearchTool, TavilySearch

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_checkpointer() -> BaseCheckpointSaver:
    return make_checkpointer(settings.checkpoint_backend, settings.checkpoint_db)


@lru_cache(maxsize=1)
def get_chat() -> ChatCapability:
    if settings.offline:
        logger.warning("No OpenAI key or DEV_NO_LLM set: using offline chat capability")
        return OfflineChatCapability()
    return OpenAIChatCapability.from_settings(settings)


@lru_cache(maxsize=1)
def get_tools() -> Dict[str, SearchTool]:
    if settings.offline:
        tavily = web = OfflineSearch()
    else:
        tavily = TavilySearch(settings.tavily_api_key)
        web = DuckDuckGoSearch()
    n = settings.search_max_results
    return {
        TAVILY_TOOL: SearchTool(TAVILY_TOOL, "Search recent news articles with Tavily.", tavily, n),
        WEB_TOOL: SearchTool(WEB_TOOL, "Search recent news articles on the web with DuckDuckGo.", web, n),
    }


@lru_cache(maxsize=1)
def get_orchestrator() -> Orchestrator:
    workflow = WORKFLOWS[settings.workflow]()
    return Orchestrator(workflow, get_chat(), get_tools(), get_checkpointer(), max_steps=settings.max_graph_steps)
