"""
Analyst team stage.

Runs the domain analysts in parallel through the TaskRunner. A failed analyst
simply has no report: the stage returns one AnalystReport per *successful*
task, in task order, and zero reports is a valid outcome.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

from debate_pipeline.config import ANALYST_LIMITS, DebatePipelineConfig
from debate_pipeline.extraction import ANALYST_REPORT_GRAMMAR, extract_fields
from debate_pipeline.models import AgentTask, AgentTaskResult, AnalystReport, Signal
from debate_pipeline.prompts import PromptRegistry, get_registry
from debate_pipeline.task_runner import TaskRunner

logger = structlog.get_logger(__name__)

DEFAULT_ANALYST_KEYS = (
    "macro_analyst",
    "technical_analyst",
    "sentiment_analyst",
    "news_analyst",
    "risk_analyst",
)

NO_REPORTS_TEXT = "No analyst reports are available for this session."


@dataclass(frozen=True)
class AnalystSpec:
    """
    One analyst to run.

    Attributes:
        analyst_type: Stable id, also used as the task id (e.g. "macro")
        analyst_name: Display name (e.g. "Macro Analyst")
        prompt: Full prompt text for the task
        model: Model for this analyst only; falls back to the run-wide model
        max_turns: Turn limit for this analyst; falls back to the stage default
    """
    analyst_type: str
    analyst_name: str
    prompt: str
    model: Optional[str] = None
    max_turns: Optional[int] = None


def _analyst_type(agent_key: str) -> str:
    return agent_key[:-len("_analyst")] if agent_key.endswith("_analyst") else agent_key


def build_analyst_prompt(fund_id: str, system_message: str) -> str:
    return f"Fund: '{fund_id}'\n\n{system_message}"


def default_analysts(fund_id: str, registry: Optional[PromptRegistry] = None) -> List[AnalystSpec]:
    """The standard five analysts with registry prompts for `fund_id`."""
    registry = registry or get_registry()
    specs = []
    for key in DEFAULT_ANALYST_KEYS:
        prompt = registry.require(key)
        specs.append(AnalystSpec(
            analyst_type=_analyst_type(key),
            analyst_name=prompt.agent_name,
            prompt=build_analyst_prompt(fund_id, prompt.system_message),
        ))
    return specs


def build_analyst_tasks(
    analysts: Sequence[AnalystSpec],
    config: DebatePipelineConfig,
    model: Optional[str] = None
) -> List[AgentTask]:
    return [
        AgentTask(
            id=spec.analyst_type,
            role_label=spec.analyst_name,
            prompt=spec.prompt,
            model_override=spec.model or model,
            max_turns=spec.max_turns or ANALYST_LIMITS.max_turns,
            timeout=config.timeout_seconds(config.analyst_timeout_minutes),
            budget_cap=ANALYST_LIMITS.budget_usd,
        )
        for spec in analysts
    ]


def parse_analyst_report(result: AgentTaskResult) -> AnalystReport:
    fields = extract_fields(result.output_text, ANALYST_REPORT_GRAMMAR)
    return AnalystReport(
        analyst_type=result.id,
        analyst_name=result.role_label,
        signal=Signal(fields["signal"]),
        confidence=fields["confidence"],
        summary=fields["summary"],
        key_findings=fields["key_findings"],
        raw_output=result.output_text,
    )


def parse_analyst_reports(results: Sequence[AgentTaskResult]) -> List[AnalystReport]:
    """Reports for the successful results only, preserving order."""
    return [parse_analyst_report(r) for r in results if r.succeeded]


def format_analyst_reports_for_prompt(reports: Sequence[AnalystReport]) -> str:
    """
    Render analyst reports as the shared context block for debate prompts.

    Each report becomes a section with its signal, confidence, summary and
    findings, followed by a one-line-per-analyst signal summary.
    """
    if not reports:
        return NO_REPORTS_TEXT

    sections = []
    for report in reports:
        lines = [
            f"### {report.analyst_name}",
            f"Signal: {report.signal} (confidence: {report.confidence:.2f})",
            "",
            report.summary,
        ]
        if report.key_findings:
            lines.append("")
            lines.append("Key findings:")
            lines.extend(f"- {finding}" for finding in report.key_findings)
        sections.append("\n".join(lines))

    summary = ["### Signal Summary"]
    summary.extend(
        f"- {r.analyst_name}: {r.signal} ({r.confidence:.0%})" for r in reports
    )
    sections.append("\n".join(summary))
    return "\n\n".join(sections)


def format_trade_memory_for_prompt(
    trade_memory: Optional[str],
    config: DebatePipelineConfig
) -> str:
    """Historical trade lessons section, or "" when disabled or empty."""
    if not config.include_trade_memory or not trade_memory or not trade_memory.strip():
        return ""
    return f"## Historical Trade Lessons\n{trade_memory.strip()}"


class AnalystStage:
    """Stage 1: parallel, failure-isolated analyst fan-out."""

    def __init__(self, runner: TaskRunner, config: DebatePipelineConfig):
        self.runner = runner
        self.config = config

    async def run_tasks(
        self,
        analysts: Sequence[AnalystSpec],
        model: Optional[str] = None
    ) -> List[AgentTaskResult]:
        tasks = build_analyst_tasks(analysts, self.config, model)
        logger.info("analyst_stage_started", analysts=[t.id for t in tasks])
        return await self.runner.run_tasks(tasks)

    async def run(
        self,
        analysts: Sequence[AnalystSpec],
        model: Optional[str] = None
    ) -> List[AnalystReport]:
        results = await self.run_tasks(analysts, model)
        return self.parse_reports(results)

    def parse_reports(self, results: Sequence[AgentTaskResult]) -> List[AnalystReport]:
        reports = parse_analyst_reports(results)
        logger.info(
            "analyst_stage_completed",
            submitted=len(results),
            reports=len(reports),
            signals={r.analyst_type: str(r.signal) for r in reports},
        )
        return reports
