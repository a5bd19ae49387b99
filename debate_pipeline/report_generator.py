"""
Markdown rendering for pipeline runs.

`PipelineReporter` renders a finished DebatePipelineResult; the stage
sections always appear in pipeline order. `render_task_summary` renders the
raw analyst task results (status table, each agent's output, consolidated
signal lines).
"""

import json
import re
import sys
from datetime import datetime
from typing import List, Optional, Sequence

from debate_pipeline.models import AgentTaskResult, DebatePipelineResult, TaskStatus

SUMMARY_PREVIEW_LENGTH = 200
TEXT_PREVIEW_LENGTH = 500

_STATUS_LABELS = {
    TaskStatus.SUCCESS: "OK",
    TaskStatus.TIMEOUT: "TIMEOUT",
    TaskStatus.ERROR: "ERR",
}

_SIGNAL_LINE = re.compile(
    r"(?<![A-Za-z0-9_])(?:MACRO_SIGNAL|TECHNICAL_SIGNAL|SENTIMENT_SIGNAL|NEWS_SIGNAL|RISK_LEVEL)"
    r"\**[ \t]*:[ \t*]*\w+",
    re.IGNORECASE,
)


def _pct(value: float) -> str:
    return f"{value:.0%}"


def _bool(value: bool) -> str:
    return "true" if value else "false"


class PipelineReporter:
    """Generates the markdown report of one pipeline run."""

    def __init__(self, title: str = "Debate Pipeline Report"):
        self.title = title

    def generate_report(self, result: DebatePipelineResult) -> str:
        """Render every stage section in pipeline order, then the config dump."""
        parts = [
            f"# {self.title}",
            "",
            f"Fund: **{result.fund_id}**",
            f"Started: {result.started_at.isoformat()}",
            f"Ended: {result.ended_at.isoformat()}",
            f"Total cost: ${result.total_cost_usd:.2f}",
            "",
            "---",
            "",
        ]
        parts.extend(self._analyst_section(result))
        parts.extend(["", "---", ""])
        parts.extend(self._investment_debate_section(result))
        parts.extend(["", "---", ""])
        parts.extend(self._trader_section(result))
        parts.extend(["", "---", ""])
        parts.extend(self._risk_debate_section(result))
        parts.extend(["", "---", ""])
        parts.extend(self._fund_manager_section(result))
        parts.extend(["", "---", ""])
        parts.append("## Pipeline Config")
        parts.append("```json")
        parts.append(json.dumps(result.pipeline_config.to_dict(), indent=2))
        parts.append("```")
        return "\n".join(parts) + "\n"

    def _analyst_section(self, result: DebatePipelineResult) -> List[str]:
        lines = ["## Stage 1: Analyst Reports", ""]
        if not result.analyst_reports:
            lines.append("_No analyst produced a report._")
        for report in result.analyst_reports:
            summary = self._clean_text(report.summary)[:SUMMARY_PREVIEW_LENGTH]
            lines.append(
                f"- **{report.analyst_name}**: {report.signal} ({_pct(report.confidence)}): {summary}"
            )
        return lines

    def _investment_debate_section(self, result: DebatePipelineResult) -> List[str]:
        debate = result.investment_debate
        lines = [
            "## Stage 2: Investment Debate",
            f"Prevailing Perspective: **{debate.prevailing_perspective}** ({_pct(debate.confidence)})",
            f"Rounds: {debate.rounds_completed}",
            f"Rationale: {self._clean_text(debate.rationale)}",
            "",
            "Strongest bull arguments:",
        ]
        lines.extend(f"- {a}" for a in debate.key_bull_arguments)
        lines.append("")
        lines.append("Strongest bear arguments:")
        lines.extend(f"- {a}" for a in debate.key_bear_arguments)
        return lines

    def _trader_section(self, result: DebatePipelineResult) -> List[str]:
        decision = result.trader_decision
        lines = [
            "## Stage 3: Trader Decision",
            f"Action: **{decision.action}**",
            f"Symbols: {', '.join(decision.symbols) or 'none'}",
            f"Conviction: {_pct(decision.conviction)}",
        ]
        if decision.position_size_pct is not None:
            lines.append(f"Position Size: {decision.position_size_pct:g}%")
        lines.append(f"Reasoning: {self._clean_text(decision.reasoning)[:TEXT_PREVIEW_LENGTH]}")
        return lines

    def _risk_debate_section(self, result: DebatePipelineResult) -> List[str]:
        risk = result.risk_debate
        lines = [
            "## Stage 4: Risk Management Debate",
            f"Approved: **{_bool(risk.approved)}**",
            f"Adjusted Action: {risk.adjusted_action}",
            f"Rounds: {risk.rounds_completed}",
            f"Rationale: {self._clean_text(risk.rationale)}",
        ]
        if risk.risk_adjustments:
            lines.append("Risk adjustments:")
            lines.extend(f"- {a}" for a in risk.risk_adjustments)
        lines.append("")
        lines.append(f"- Aggressive view: {risk.aggressive_summary}")
        lines.append(f"- Conservative view: {risk.conservative_summary}")
        lines.append(f"- Neutral view: {risk.neutral_summary}")
        return lines

    def _fund_manager_section(self, result: DebatePipelineResult) -> List[str]:
        final = result.fund_manager_decision
        lines = [
            "## Stage 5: Fund Manager Decision",
            f"Approved: **{_bool(final.approved)}**",
            f"Final Action: **{final.final_action}**",
            f"Symbols: {', '.join(final.final_symbols) or 'none'}",
        ]
        if final.position_size_pct is not None:
            lines.append(f"Position Size: {final.position_size_pct:g}%")
        lines.append(f"Rationale: {self._clean_text(final.rationale)[:TEXT_PREVIEW_LENGTH]}")
        if final.risk_adjustments_applied:
            lines.append("Applied risk adjustments:")
            lines.extend(f"- {a}" for a in final.risk_adjustments_applied)
        return lines

    def _clean_text(self, text: str) -> str:
        """Clean up text for markdown output."""
        if not text:
            return ""
        # Remove excessive whitespace
        text = re.sub(r'\n{3,}', '\n\n', text)
        return text.strip()


def render_task_summary(
    results: Sequence[AgentTaskResult],
    generated_at: Optional[datetime] = None
) -> str:
    """Combined view of analyst task results: table, outputs, signal lines."""
    generated_at = generated_at or datetime.now()
    parts = [
        "# Combined Analyst Task Summary",
        "",
        f"Generated: {generated_at.isoformat()}",
        f"Agents: {len(results)}",
        "",
        "## Agent Summary",
        "",
        "| Agent | Status | Duration |",
        "|-------|--------|----------|",
    ]
    for r in results:
        parts.append(f"| {r.role_label} | {_STATUS_LABELS[r.status]} | {r.duration_seconds:.0f}s |")
    parts.append("")

    for r in results:
        parts.append("---")
        parts.append(f"## {r.role_label} ({r.id})")
        parts.append(f"Status: {r.status}")
        parts.append("")
        if r.succeeded:
            parts.append(r.output_text)
        else:
            parts.append(f"> **Error:** {r.error_message or 'Unknown error'}")
        parts.append("")

    parts.append("---")
    parts.append("## Consolidated Signals")
    parts.append("")
    for r in results:
        if not r.succeeded:
            continue
        for match in _SIGNAL_LINE.finditer(r.output_text):
            parts.append(f"- {match.group(0).replace('*', '')}")

    return "\n".join(parts) + "\n"


def suppress_logging():
    """
    Suppress all logging output except critical errors.
    Ensures logging goes to stderr so it doesn't pollute stdout reports.
    """
    import logging
    import warnings

    warnings.filterwarnings("ignore")

    # Configure root logger to only show CRITICAL errors, directed to stderr
    logging.basicConfig(
        level=logging.CRITICAL,
        format='%(message)s',
        stream=sys.stderr,
        force=True
    )

    # Silence all existing loggers
    for logger_name in list(logging.root.manager.loggerDict.keys()):
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)
        logging.getLogger(logger_name).propagate = False

    # Specifically silence noisy libraries
    for logger_name in ['httpx', 'httpcore', 'google', 'langchain', 'langgraph',
                        'debate_pipeline']:
        logging.getLogger(logger_name).setLevel(logging.CRITICAL)

    import structlog

    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
