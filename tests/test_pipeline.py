"""Tests for pipeline.py - the five-stage graph end to end."""

import pytest

from debate_pipeline.analysts import AnalystSpec
from debate_pipeline.config import DebatePipelineConfig
from debate_pipeline.exceptions import PipelineAbortedError
from debate_pipeline.models import PipelineOverrides, Signal, TaskStatus, TradeAction
from debate_pipeline.pipeline import (
    ANALYST_NODE, DEBATE_NODE, MANAGER_NODE, RISK_NODE, TRADER_NODE,
    PipelineOrchestrator, run_analyst_stage_only, run_pipeline,
)

from conftest import (
    BEAR, BULL, COST_PER_CALL, JUDGE, MANAGER, NEWS, RISK_JUDGE, TECHNICAL, TRADER,
    StubExecutor, analyst_output, full_pipeline_executor, timeout_result,
)


def _orchestrator(executor, registry, **config_kwargs):
    return PipelineOrchestrator(executor, DebatePipelineConfig(**config_kwargs), registry)


class TestFullRun:
    """Test a complete, healthy run."""

    @pytest.mark.asyncio
    async def test_result_is_assembled(self, registry):
        executor = full_pipeline_executor()
        result = await _orchestrator(executor, registry).run("growth-fund")

        assert result.fund_id == "growth-fund"
        assert result.started_at <= result.ended_at
        assert len(result.analyst_reports) == 5
        assert len(result.analyst_results) == 5
        assert result.investment_debate.prevailing_perspective is Signal.BULLISH
        assert result.investment_debate.rounds_completed == 2
        assert result.trader_decision.action is TradeAction.BUY
        assert result.risk_debate.rounds_completed == 2
        assert result.fund_manager_decision.final_action is TradeAction.BUY
        assert result.pipeline_config == DebatePipelineConfig()

    @pytest.mark.asyncio
    async def test_total_cost_sums_every_call(self, registry):
        executor = full_pipeline_executor()
        result = await _orchestrator(executor, registry).run("growth-fund")
        # 5 analysts + 2x2 debaters + judge + trader + 2x3 risk + risk judge + manager
        assert len(executor.requests) == 19
        assert result.total_cost_usd == pytest.approx(19 * COST_PER_CALL)

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self, registry):
        executor = full_pipeline_executor()
        await _orchestrator(executor, registry, max_debate_rounds=1, max_risk_debate_rounds=1).run("f")

        def first_index(marker):
            return next(i for i, r in enumerate(executor.requests) if marker in r.prompt)

        assert first_index(TECHNICAL) < first_index(BULL) < first_index(BEAR) < first_index(JUDGE)
        assert first_index(JUDGE) < first_index(TRADER) < first_index(RISK_JUDGE) < first_index(MANAGER)

    @pytest.mark.asyncio
    async def test_overrides_reach_prompts_and_requests(self, registry):
        executor = full_pipeline_executor()
        overrides = PipelineOverrides(model="gemini-2.5-flash", trade_memory_text="Avoid earnings week.")
        await _orchestrator(executor, registry).run("growth-fund", overrides)

        assert {r.model for r in executor.requests} == {"gemini-2.5-flash"}
        memory_prompts = [r.prompt for r in executor.requests if "Avoid earnings week." in r.prompt]
        # 2 bull + 2 bear + trader
        assert len(memory_prompts) == 5

    @pytest.mark.asyncio
    async def test_two_analyst_timeouts_still_reach_a_decision(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (TECHNICAL, timeout_result()))
        executor.rules.insert(0, (NEWS, timeout_result()))
        result = await _orchestrator(executor, registry).run("growth-fund")

        assert [r.analyst_type for r in result.analyst_reports] == ["macro", "sentiment", "risk"]
        statuses = {r.id: r.status for r in result.analyst_results}
        assert statuses["technical"] is TaskStatus.TIMEOUT
        assert statuses["news"] is TaskStatus.TIMEOUT
        assert result.fund_manager_decision is not None
        assert result.fund_manager_decision.approved is True
        assert result.fund_manager_decision.final_action is TradeAction.BUY
        assert result.fund_manager_decision.final_symbols == ("AAPL",)

    @pytest.mark.asyncio
    async def test_failed_analyst_is_isolated(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (NEWS, RuntimeError("feed down")))
        result = await _orchestrator(executor, registry).run("growth-fund")

        assert len(result.analyst_reports) == 4
        statuses = {r.id: r.status for r in result.analyst_results}
        assert statuses["news"] is TaskStatus.ERROR
        assert result.fund_manager_decision.final_action is TradeAction.BUY

    @pytest.mark.asyncio
    async def test_zero_reports_is_valid(self, registry):
        executor = full_pipeline_executor()
        for marker in ("MACRO", "TECHNICAL", "SENTIMENT", "NEWS", "RISK MANAGER"):
            executor.rules.insert(0, (f"You are the {marker} ", timeout_result()))
        result = await _orchestrator(executor, registry).run("growth-fund")
        assert result.analyst_reports == ()
        assert result.fund_manager_decision.approved is True

    @pytest.mark.asyncio
    async def test_to_dict_is_json_ready(self, registry):
        import json

        result = await _orchestrator(full_pipeline_executor(), registry).run("growth-fund")
        record = result.to_dict()
        assert record["trader_decision"]["action"] == "BUY"
        assert record["pipeline_config"]["max_debate_rounds"] == 2
        assert record["risk_debate"]["histories"]["aggressive"][0]["round"] == 1
        json.dumps(record)


class TestAbort:
    """Test that fatal stage failures abort the run with the stage name."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("marker,stage", [
        (JUDGE, DEBATE_NODE),
        (TRADER, TRADER_NODE),
        (RISK_JUDGE, RISK_NODE),
        (MANAGER, MANAGER_NODE),
    ])
    async def test_single_task_failure_aborts(self, registry, marker, stage):
        executor = full_pipeline_executor()
        cause = RuntimeError(f"{stage} failed")
        executor.rules.insert(0, (marker, cause))

        with pytest.raises(PipelineAbortedError) as exc_info:
            await _orchestrator(executor, registry).run("growth-fund")

        assert exc_info.value.stage == stage
        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_debate_turn_failure_does_not_abort(self, registry):
        executor = full_pipeline_executor()
        executor.rules.insert(0, (BULL, RuntimeError("bull down")))
        result = await _orchestrator(executor, registry).run("growth-fund")
        assert all(a.is_empty for a in result.investment_debate.bull_history)


class TestEntryPoints:
    """Test run_pipeline and run_analyst_stage_only."""

    @pytest.mark.asyncio
    async def test_run_pipeline_with_custom_analysts(self):
        executor = full_pipeline_executor()
        executor.rules.insert(0, ("Study credit spreads.", analyst_output("MACRO_SIGNAL", "bearish")))
        analysts = [AnalystSpec("credit", "Credit Analyst", "Study credit spreads.")]

        result = await run_pipeline(
            "growth-fund",
            DebatePipelineConfig(max_debate_rounds=1, max_risk_debate_rounds=1),
            executor=executor,
            analysts=analysts,
        )
        assert [r.analyst_type for r in result.analyst_reports] == ["credit"]
        assert result.analyst_reports[0].signal is Signal.BEARISH

    @pytest.mark.asyncio
    async def test_run_analyst_stage_only(self):
        executor = StubExecutor(default=analyst_output("MACRO_SIGNAL", "bullish"))
        analysts = [
            AnalystSpec("a", "Analyst A", "prompt a"),
            AnalystSpec("b", "Analyst B", "prompt b"),
        ]
        reports = await run_analyst_stage_only("growth-fund", executor=executor, analysts=analysts)
        assert [r.analyst_type for r in reports] == ["a", "b"]
        assert len(executor.requests) == 2

    def test_graph_nodes(self, registry):
        graph = _orchestrator(StubExecutor(), registry).graph.get_graph()
        node_ids = set(graph.nodes)
        for stage in (ANALYST_NODE, DEBATE_NODE, TRADER_NODE, RISK_NODE, MANAGER_NODE):
            assert stage in node_ids
