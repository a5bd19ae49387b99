"""Tests for investment_debate.py - bull/bear rounds and the judge."""

import pytest

from debate_pipeline.config import DebatePipelineConfig, config as app_config
from debate_pipeline.investment_debate import (
    DECISIVENESS_INSTRUCTION,
    OPENING_CASE,
    BULL as BULL_ROLE,
    InvestmentDebateEngine,
)
from debate_pipeline.models import AnalystReport, Signal
from debate_pipeline.task_runner import TaskRunner
from debate_pipeline.turns import EMPTY_ARGUMENT_PLACEHOLDER

from conftest import (
    BEAR, BEAR_OUTPUT, BULL, BULL_OUTPUT, COST_PER_CALL, JUDGE, full_pipeline_executor,
)

REPORTS = [
    AnalystReport("macro", "Macro Analyst", Signal.BULLISH, 0.7, "Supportive backdrop."),
    AnalystReport("news", "News Analyst", Signal.BEARISH, 0.4, "Regulatory headwinds."),
]


def _bear_in_round(round_number):
    return lambda prompt: BEAR in prompt and f"This is round {round_number} of" in prompt


def _engine(executor, registry, **config_kwargs):
    config = DebatePipelineConfig(**config_kwargs)
    return InvestmentDebateEngine(TaskRunner(executor), config, registry)


class TestDebateRounds:
    """Test round structure and histories."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rounds", [1, 2, 3])
    async def test_history_lengths_match_rounds(self, registry, rounds):
        executor = full_pipeline_executor()
        result = await _engine(executor, registry, max_debate_rounds=rounds).run("fund-a", REPORTS)

        assert result.rounds_completed == rounds
        assert len(result.bull_history) == rounds
        assert len(result.bear_history) == rounds
        assert [a.round for a in result.bull_history] == list(range(1, rounds + 1))
        assert len(executor.requests) == 2 * rounds + 1

    @pytest.mark.asyncio
    async def test_bull_opens_and_bear_answers_same_round(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry, max_debate_rounds=2).run("fund-a", REPORTS)

        bull_prompts = executor.prompts_containing(BULL)
        bear_prompts = executor.prompts_containing(BEAR)
        assert OPENING_CASE[BULL_ROLE] in bull_prompts[0]
        assert BULL_OUTPUT.strip() in bear_prompts[0]
        assert BEAR_OUTPUT.strip() in bull_prompts[1]
        assert "Supportive backdrop." in bull_prompts[0]

    @pytest.mark.asyncio
    async def test_arguments_are_extracted(self, registry):
        result = await _engine(full_pipeline_executor(), registry).run("fund-a", REPORTS)
        assert result.bull_history[0].key_points == ("Earnings momentum", "Strong breadth")
        assert result.bear_history[0].counterpoints == ("Momentum is already priced in",)

    @pytest.mark.asyncio
    async def test_failed_bear_turn_is_empty_and_used_as_next_context(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (_bear_in_round(2), RuntimeError("bear crashed")))

        result = await _engine(executor, registry, max_debate_rounds=3).run("fund-a", REPORTS)

        assert result.rounds_completed == 3
        assert result.bear_history[1].is_empty
        assert result.bear_history[1].round == 2
        assert result.bear_history[1].key_points == ()
        round_three_bull = executor.prompts_containing(BULL)[2]
        assert EMPTY_ARGUMENT_PLACEHOLDER in round_three_bull
        assert OPENING_CASE[BULL_ROLE] not in round_three_bull

    @pytest.mark.asyncio
    async def test_trade_memory_injected_when_enabled(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry).run("fund-a", REPORTS, trade_memory="Never chase gaps.")
        assert all("Never chase gaps." in p for p in executor.prompts_containing(BULL))
        assert all("Never chase gaps." in p for p in executor.prompts_containing(BEAR))
        assert "Never chase gaps." not in executor.prompts_containing(JUDGE)[0]

    @pytest.mark.asyncio
    async def test_trade_memory_skipped_when_disabled(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry, include_trade_memory=False).run(
            "fund-a", REPORTS, trade_memory="Never chase gaps."
        )
        assert not any("Never chase gaps." in r.prompt for r in executor.requests)


class TestJudge:
    """Test the judge task and its verdict."""

    @pytest.mark.asyncio
    async def test_confidence_is_clamped(self, registry):
        result = await _engine(full_pipeline_executor(), registry).run("fund-a", REPORTS)
        assert result.prevailing_perspective is Signal.BULLISH
        assert result.confidence == 1.0
        assert result.key_bull_arguments == ("Earnings momentum",)
        assert result.key_bear_arguments == ("Stretched valuation",)

    @pytest.mark.asyncio
    async def test_judge_prompt_is_decisive_and_interleaved(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry, max_debate_rounds=2).run("fund-a", REPORTS)
        prompt = executor.prompts_containing(JUDGE)[0]

        assert DECISIVENESS_INSTRUCTION in prompt
        assert "leaning neutral is only appropriate if evidence is truly balanced" in prompt
        first_round = prompt.index("### Round 1")
        second_round = prompt.index("### Round 2")
        assert first_round < prompt.index("**Bull Researcher:**") < prompt.index("**Bear Researcher:**") < second_round

    @pytest.mark.asyncio
    async def test_neutral_verdict_is_accepted(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (JUDGE, "PREVAILING_PERSPECTIVE: neutral\nCONFIDENCE: 0.55\nRATIONALE: Balanced."))
        result = await _engine(executor, registry).run("fund-a", REPORTS)
        assert result.prevailing_perspective is Signal.NEUTRAL
        assert result.confidence == pytest.approx(0.55)
        assert result.rationale == "Balanced."

    @pytest.mark.asyncio
    async def test_judge_exception_propagates(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (JUDGE, RuntimeError("judge unavailable")))
        with pytest.raises(RuntimeError, match="judge unavailable"):
            await _engine(executor, registry).run("fund-a", REPORTS)

    @pytest.mark.asyncio
    async def test_judge_runs_on_deep_model_unless_overridden(self, registry):
        executor = full_pipeline_executor()
        await _engine(executor, registry).run("fund-a", REPORTS)
        judge_request = [r for r in executor.requests if JUDGE in r.prompt][0]
        assert judge_request.model == app_config.deep_think_llm

        executor = full_pipeline_executor()
        await _engine(executor, registry).run("fund-a", REPORTS, model="gemini-2.5-flash")
        assert {r.model for r in executor.requests} == {"gemini-2.5-flash"}

    @pytest.mark.asyncio
    async def test_cost_sums_turns_and_judge(self, registry):
        result = await _engine(full_pipeline_executor(), registry, max_debate_rounds=2).run("fund-a", REPORTS)
        assert result.cost_usd == pytest.approx(5 * COST_PER_CALL)
