"""Shared fixtures: a scripted executor and canned agent outputs."""

from datetime import datetime, timedelta
from typing import Callable, List, Union

import pytest

from debate_pipeline.executor import AgentRequest, AgentRunResult, ExecutionStatus
from debate_pipeline.models import AgentTaskResult, TaskStatus
from debate_pipeline.prompts import PromptRegistry

# Persona markers that identify which role a prompt belongs to
MACRO = "You are the MACRO ANALYST"
TECHNICAL = "You are the TECHNICAL ANALYST"
SENTIMENT = "You are the SENTIMENT ANALYST"
NEWS = "You are the NEWS ANALYST"
RISK_ANALYST = "You are the RISK MANAGER"
BULL = "You are the BULL RESEARCHER"
BEAR = "You are the BEAR RESEARCHER"
JUDGE = "You are the INVESTMENT DEBATE FACILITATOR"
TRADER = "You are the TRADER"
AGGRESSIVE = "You are the AGGRESSIVE RISK ANALYST"
CONSERVATIVE = "You are the CONSERVATIVE RISK ANALYST"
NEUTRAL = "You are the NEUTRAL RISK ANALYST"
RISK_JUDGE = "You are the RISK MANAGEMENT JUDGE"
MANAGER = "You are the FUND MANAGER"

COST_PER_CALL = 0.01


def analyst_output(label: str, signal: str, confidence: float = 0.7) -> str:
    return (
        "Conditions reviewed in detail.\n\n"
        f"SUMMARY: {label.split('_')[0].title()} picture looks {signal}.\n"
        "KEY_FINDINGS:\n"
        "- First finding\n"
        "- Second finding\n"
        f"CONFIDENCE: {confidence}\n"
        f"{label}: {signal}\n"
    )


BULL_OUTPUT = (
    "Earnings growth is accelerating across the holdings.\n\n"
    "KEY_POINTS:\n"
    "- Earnings momentum\n"
    "- Strong breadth\n"
    "COUNTERPOINTS:\n"
    "- Valuation worries are overstated\n"
)

BEAR_OUTPUT = (
    "Valuations are stretched and breadth is narrowing.\n\n"
    "KEY_POINTS:\n"
    "- Stretched valuation\n"
    "COUNTERPOINTS:\n"
    "- Momentum is already priced in\n"
)

JUDGE_OUTPUT = (
    "PREVAILING_PERSPECTIVE: bullish\n"
    "CONFIDENCE: 1.7\n"
    "RATIONALE: The bull case was better supported by the reports.\n"
    "KEY_BULL_ARGUMENTS:\n"
    "- Earnings momentum\n"
    "KEY_BEAR_ARGUMENTS:\n"
    "- Stretched valuation\n"
)

TRADER_OUTPUT = (
    "FINAL_ACTION: BUY\n"
    "SYMBOLS: aapl, MSFT, AAPL\n"
    "CONVICTION: 0.8\n"
    "POSITION_SIZE_PCT: 10\n"
    "REASONING: Momentum and a bullish verdict.\n"
)


def risk_output(recommendation: str) -> str:
    return (
        f"My view on the proposal is to {recommendation}.\n\n"
        f"RISK_RECOMMENDATION: {recommendation}\n"
        "KEY_POINTS:\n"
        "- Position sizing matters\n"
        "COUNTERPOINTS:\n"
        "- The other views miss the drawdown limit\n"
    )


RISK_JUDGE_OUTPUT = (
    "APPROVED: true\n"
    "ADJUSTED_ACTION: BUY\n"
    "RISK_ADJUSTMENTS:\n"
    "- Cut position to 5%\n"
    "RATIONALE: Approved with a smaller size.\n"
    "AGGRESSIVE_SUMMARY: Go big.\n"
    "CONSERVATIVE_SUMMARY: Trim size.\n"
    "NEUTRAL_SUMMARY: Moderate size.\n"
)

MANAGER_OUTPUT = (
    "FINAL_APPROVED: true\n"
    "FINAL_ACTION: BUY\n"
    "FINAL_SYMBOLS: AAPL\n"
    "FINAL_POSITION_SIZE_PCT: 5\n"
    "RISK_ADJUSTMENTS_APPLIED:\n"
    "- Position cut to 5%\n"
    "RATIONALE: Execute the reduced buy.\n"
)

Response = Union[str, AgentRunResult, Exception, Callable[[AgentRequest], AgentRunResult]]


class StubExecutor:
    """
    Deterministic AgentExecutor.

    Rules are (predicate, response) pairs checked in order; a predicate is a
    substring of the prompt or a callable on the prompt. A response may be
    canned text, a full AgentRunResult, or an exception to raise.
    """

    def __init__(self, default: str = ""):
        self.default = default
        self.rules = []
        self.requests: List[AgentRequest] = []

    def on(self, predicate, response: Response) -> "StubExecutor":
        self.rules.append((predicate, response))
        return self

    def prompts_containing(self, marker: str) -> List[str]:
        return [r.prompt for r in self.requests if marker in r.prompt]

    def _matches(self, predicate, prompt: str) -> bool:
        if callable(predicate):
            return predicate(prompt)
        return predicate in prompt

    async def execute(self, request: AgentRequest) -> AgentRunResult:
        self.requests.append(request)
        response: Response = self.default
        for predicate, candidate in self.rules:
            if self._matches(predicate, request.prompt):
                response = candidate
                break

        if isinstance(response, Exception):
            raise response
        if isinstance(response, AgentRunResult):
            return response
        if callable(response):
            return response(request)
        return AgentRunResult(
            status=ExecutionStatus.SUCCESS,
            output_text=response,
            cost_usd=COST_PER_CALL,
            num_turns=1,
            session_id="stub",
        )


def timeout_result() -> AgentRunResult:
    return AgentRunResult(status=ExecutionStatus.TIMEOUT, error_message="Query timed out")


def full_pipeline_executor() -> StubExecutor:
    """Executor that answers every role of a full run with well-formed output."""
    return (
        StubExecutor()
        .on(MACRO, analyst_output("MACRO_SIGNAL", "bullish"))
        .on(TECHNICAL, analyst_output("TECHNICAL_SIGNAL", "bullish", 0.6))
        .on(SENTIMENT, analyst_output("SENTIMENT_SIGNAL", "neutral", 0.5))
        .on(NEWS, analyst_output("NEWS_SIGNAL", "bearish", 0.4))
        .on(RISK_ANALYST, analyst_output("RISK_LEVEL", "moderate", 0.8))
        .on(BULL, BULL_OUTPUT)
        .on(BEAR, BEAR_OUTPUT)
        .on(JUDGE, JUDGE_OUTPUT)
        .on(AGGRESSIVE, risk_output("approve"))
        .on(CONSERVATIVE, risk_output("adjust"))
        .on(NEUTRAL, risk_output("adjust"))
        .on(RISK_JUDGE, RISK_JUDGE_OUTPUT)
        .on(MANAGER, MANAGER_OUTPUT)
        .on(TRADER, TRADER_OUTPUT)
    )


def make_task_result(
    task_id: str,
    role_label: str,
    output_text: str = "",
    status: TaskStatus = TaskStatus.SUCCESS,
    error_message=None,
    seconds: float = 12.0
) -> AgentTaskResult:
    started = datetime(2026, 3, 2, 9, 30, 0)
    return AgentTaskResult(
        id=task_id,
        role_label=role_label,
        started_at=started,
        ended_at=started + timedelta(seconds=seconds),
        status=status,
        output_text=output_text,
        error_message=error_message,
    )


@pytest.fixture
def registry(tmp_path, monkeypatch):
    """Registry with built-in prompts only (no JSON dir, no env overrides)."""
    for key in list(PromptRegistry(prompts_dir=str(tmp_path / "none")).list_keys()):
        monkeypatch.delenv(f"PROMPT_{key.upper()}", raising=False)
    return PromptRegistry(prompts_dir=str(tmp_path / "none"))


@pytest.fixture
def stub_executor():
    return full_pipeline_executor()
