"""
Debate Pipeline - multi-agent trade vetting.

Turns market and portfolio context into a vetted trade recommendation in five
stages: a parallel analyst team, a bull/bear investment debate, a trader, a
three-way risk debate and a fund manager.

Main entry points:
    - run_pipeline: Run all five stages for a fund
    - run_analyst_stage_only: Run the analyst team alone
    - PipelineOrchestrator: The stage graph, reusable across runs
    - PipelineReporter / FilesystemReportSink: Render and persist results

Usage:
    from debate_pipeline import run_pipeline, PipelineReporter

    result = await run_pipeline("growth-fund")
    print(PipelineReporter().generate_report(result))
"""

from debate_pipeline.analysts import AnalystSpec, AnalystStage, default_analysts
from debate_pipeline.config import DebatePipelineConfig
from debate_pipeline.exceptions import (
    AgentExecutionError,
    ConfigurationError,
    DebatePipelineError,
    PipelineAbortedError,
    ReportStorageError,
)
from debate_pipeline.executor import (
    AgentExecutor,
    AgentRequest,
    AgentRunResult,
    ExecutionStatus,
    LangChainAgentExecutor,
)
from debate_pipeline.fund_manager import FundManagerStage
from debate_pipeline.investment_debate import InvestmentDebateEngine
from debate_pipeline.models import (
    AgentTask,
    AgentTaskResult,
    AnalystReport,
    DebateArgument,
    DebatePipelineResult,
    FundManagerDecision,
    InvestmentDebateResult,
    PipelineOverrides,
    RiskDebateResult,
    RiskPerspective,
    Signal,
    TaskStatus,
    TradeAction,
    TraderDecision,
)
from debate_pipeline.pipeline import PipelineOrchestrator, run_analyst_stage_only, run_pipeline
from debate_pipeline.report_generator import PipelineReporter, render_task_summary
from debate_pipeline.risk_debate import RiskDebateEngine
from debate_pipeline.storage import FilesystemReportSink, ReportSink
from debate_pipeline.task_runner import TaskRunner
from debate_pipeline.trader import TraderStage

__all__ = [
    # Entry points
    "run_pipeline",
    "run_analyst_stage_only",
    "PipelineOrchestrator",
    # Stages
    "AnalystSpec",
    "AnalystStage",
    "default_analysts",
    "InvestmentDebateEngine",
    "TraderStage",
    "RiskDebateEngine",
    "FundManagerStage",
    "TaskRunner",
    # Executor
    "AgentExecutor",
    "AgentRequest",
    "AgentRunResult",
    "ExecutionStatus",
    "LangChainAgentExecutor",
    # Data model
    "AgentTask",
    "AgentTaskResult",
    "AnalystReport",
    "DebateArgument",
    "DebatePipelineConfig",
    "DebatePipelineResult",
    "FundManagerDecision",
    "InvestmentDebateResult",
    "PipelineOverrides",
    "RiskDebateResult",
    "RiskPerspective",
    "Signal",
    "TaskStatus",
    "TradeAction",
    "TraderDecision",
    # Reporting
    "PipelineReporter",
    "render_task_summary",
    "ReportSink",
    "FilesystemReportSink",
    # Errors
    "DebatePipelineError",
    "ConfigurationError",
    "AgentExecutionError",
    "PipelineAbortedError",
    "ReportStorageError",
]
