"""Tests for risk_debate.py - three-way risk rounds and the risk judge."""

import pytest

from debate_pipeline.config import DebatePipelineConfig
from debate_pipeline.models import AnalystReport, Signal, TradeAction, TraderDecision
from debate_pipeline.risk_debate import NO_OTHER_PERSPECTIVES, RiskDebateEngine
from debate_pipeline.task_runner import TaskRunner
from debate_pipeline.turns import EMPTY_ARGUMENT_PLACEHOLDER

from conftest import (
    AGGRESSIVE, CONSERVATIVE, COST_PER_CALL, NEUTRAL, RISK_JUDGE, full_pipeline_executor, risk_output,
)

REPORTS = [AnalystReport("macro", "Macro Analyst", Signal.BULLISH, 0.7, "Supportive backdrop.")]

DECISION = TraderDecision(
    action=TradeAction.BUY,
    symbols=("AAPL", "MSFT"),
    reasoning="Momentum and a bullish verdict.",
    conviction=0.8,
    position_size_pct=10.0,
)


def _engine(executor, registry, rounds=2):
    config = DebatePipelineConfig(max_risk_debate_rounds=rounds)
    return RiskDebateEngine(TaskRunner(executor), config, registry)


def _perspective_order(executor):
    order = []
    for request in executor.requests:
        for marker, name in ((AGGRESSIVE, "aggressive"), (CONSERVATIVE, "conservative"), (NEUTRAL, "neutral")):
            if marker in request.prompt:
                order.append(name)
    return order


class TestRiskRounds:
    """Test speaking order, context and histories."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rounds", [1, 2, 3])
    async def test_three_arguments_per_round(self, registry, rounds):
        executor = full_pipeline_executor()
        result = await _engine(executor, registry, rounds).run("fund-a", DECISION, REPORTS)

        assert result.rounds_completed == rounds
        for perspective in ("aggressive", "conservative", "neutral"):
            assert len(result.histories[perspective]) == rounds
        assert len(executor.requests) == 3 * rounds + 1

    @pytest.mark.asyncio
    async def test_fixed_speaking_order(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry, 2).run("fund-a", DECISION, REPORTS)
        assert _perspective_order(executor) == ["aggressive", "conservative", "neutral"] * 2

    @pytest.mark.asyncio
    async def test_each_turn_sees_latest_of_the_others(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (lambda p: AGGRESSIVE in p and "round 2 of" in p, "AGGRO-TWO"))
        executor.rules.insert(0, (lambda p: NEUTRAL in p and "round 1 of" in p, "NEUTRAL-ONE"))
        await _engine(executor, registry, 2).run("fund-a", DECISION, REPORTS)

        aggressive_prompts = executor.prompts_containing(AGGRESSIVE)
        conservative_prompts = executor.prompts_containing(CONSERVATIVE)
        assert NO_OTHER_PERSPECTIVES in aggressive_prompts[0]
        # Round 2 conservative: aggressive from this round, neutral from the last
        assert "AGGRO-TWO" in conservative_prompts[1]
        assert "NEUTRAL-ONE" in conservative_prompts[1]

    @pytest.mark.asyncio
    async def test_failed_turn_is_recorded_empty(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (lambda p: CONSERVATIVE in p and "round 1 of" in p, RuntimeError("down")))
        result = await _engine(executor, registry, 2).run("fund-a", DECISION, REPORTS)

        assert result.histories["conservative"][0].is_empty
        assert result.rounds_completed == 2
        neutral_round_one = executor.prompts_containing(NEUTRAL)[0]
        assert EMPTY_ARGUMENT_PLACEHOLDER in neutral_round_one

    @pytest.mark.asyncio
    async def test_recommendations_are_extracted(self, registry):
        result = await _engine(full_pipeline_executor(), registry, 1).run("fund-a", DECISION, REPORTS)
        assert result.histories["aggressive"][0].recommendation == "approve"
        assert result.histories["conservative"][0].recommendation == "adjust"

    @pytest.mark.asyncio
    async def test_proposal_is_in_every_prompt(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry, 1).run("fund-a", DECISION, REPORTS)
        for request in executor.requests:
            assert "Symbols: AAPL, MSFT" in request.prompt


class TestRiskJudge:
    """Test the risk verdict."""

    @pytest.mark.asyncio
    async def test_verdict_fields(self, registry):
        result = await _engine(full_pipeline_executor(), registry).run("fund-a", DECISION, REPORTS)
        assert result.approved is True
        assert result.adjusted_action is TradeAction.BUY
        assert result.risk_adjustments == ("Cut position to 5%",)
        assert result.rationale == "Approved with a smaller size."
        assert result.aggressive_summary == "Go big."
        assert result.conservative_summary == "Trim size."
        assert result.neutral_summary == "Moderate size."

    @pytest.mark.asyncio
    async def test_missing_adjusted_action_keeps_trader_action(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (RISK_JUDGE, "APPROVED: false\nRATIONALE: Too risky."))
        sell = TraderDecision(TradeAction.SELL, ("TSLA",), "Exit.", 0.6)
        result = await _engine(executor, registry).run("fund-a", sell, REPORTS)
        assert result.approved is False
        assert result.adjusted_action is TradeAction.SELL
        assert result.aggressive_summary == ""

    @pytest.mark.asyncio
    async def test_transcript_in_judge_prompt(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (AGGRESSIVE, risk_output("reject")))
        await _engine(executor, registry, 1).run("fund-a", DECISION, REPORTS)
        prompt = executor.prompts_containing(RISK_JUDGE)[0]
        assert "**Aggressive Risk Analyst:**" in prompt
        assert "RISK_RECOMMENDATION: reject" in prompt

    @pytest.mark.asyncio
    async def test_judge_exception_propagates(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (RISK_JUDGE, RuntimeError("judge down")))
        with pytest.raises(RuntimeError):
            await _engine(executor, registry).run("fund-a", DECISION, REPORTS)

    @pytest.mark.asyncio
    async def test_cost(self, registry):
        result = await _engine(full_pipeline_executor(), registry, 1).run("fund-a", DECISION, REPORTS)
        assert result.cost_usd == pytest.approx(4 * COST_PER_CALL)
