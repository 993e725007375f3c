"""
formatter.py
------------
Render the synthesis agent's structured reply as a readable report.
"""
from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from .schemas import ReportSummary


def render_summary(summary: ReportSummary) -> str:
    parts = [f"# {summary.headline}", summary.overview, "## Key Points"]
    parts += [f"**{kp.point}**\n{kp.details}" for kp in summary.key_points]
    parts += ["## Insights", summary.insights, "## Conclusion", summary.conclusion]
    return "\n\n".join(parts)


def format_report(content: Any) -> Any:
    """
    Format a summarizer reply. Accepts the full response object (uses its
    `summary`) or a bare summary. Anything that is not a valid summary is
    returned unchanged.
    """
    try:
        payload = json.loads(content)
        if isinstance(payload, dict) and "summary" in payload:
            payload = payload["summary"]
        return render_summary(ReportSummary.model_validate(payload))
    except (TypeError, ValueError, RecursionError, ValidationError):
        return content
