"""
schemas.py
----------
Structured-output contracts for the agents.

Every object forbids extra keys and declares all fields required (nullable
where optional) so the generated JSON schema is accepted by OpenAI strict mode.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


# --------------------------------------------------------------------------------------
# Researcher
# --------------------------------------------------------------------------------------
class ResearchReasoning(_Strict):
    query_analysis: str = Field(description="Analysis of what information is needed")
    search_strategy: str = Field(description="Strategy for finding relevant information")
    tool_selection: str = Field(description="Why this tool was chosen")


class ResearchAction(_Strict):
    type: Literal["use_tool", "provide_findings"] = Field(description="Type of action to take")
    tool_name: Optional[str] = Field(description="Name of tool to use if type is use_tool")
    findings: Optional[str] = Field(description="Research findings if type is provide_findings")


class ResearchMetadata(_Strict):
    confidence: float = Field(description="Confidence in findings (0-1)")
    sources_needed: bool = Field(description="Whether more sources are needed")


class ResearcherResponse(_Strict):
    reasoning: ResearchReasoning
    action: ResearchAction
    metadata: ResearchMetadata


# --------------------------------------------------------------------------------------
# Summarizer
# --------------------------------------------------------------------------------------
class SynthesisReasoning(_Strict):
    information_assessment: str = Field(description="Assessment of gathered information")
    key_themes: List[str] = Field(description="Main themes identified")
    synthesis_approach: str = Field(description="How information will be synthesized")


class KeyPoint(_Strict):
    point: str
    details: str


class ReportSummary(_Strict):
    headline: str = Field(description="Compelling headline for the summary")
    overview: str = Field(description="High-level overview paragraph")
    key_points: List[KeyPoint] = Field(description="Structured key points with details")
    insights: str = Field(description="Analysis and insights")
    conclusion: str = Field(description="Concluding thoughts")


class SynthesisMetadata(_Strict):
    completeness: float = Field(description="How complete the information is (0-1)")
    topic_coverage: List[str] = Field(description="Topics covered in summary")


class SummarizerResponse(_Strict):
    reasoning: SynthesisReasoning
    summary: ReportSummary
    metadata: SynthesisMetadata


def json_schema_format(schema: Type[BaseModel], name: str = "agent_response") -> Dict[str, Any]:
    """OpenAI `response_format` payload requesting strict schema-constrained output."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "strict": True,
            "schema": schema.model_json_schema(),
        },
    }
