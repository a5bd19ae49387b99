"""
Debate pipeline graph and entry points.

The five stages run strictly one after another as nodes of a LangGraph
StateGraph:

    Analyst Team -> Investment Debate -> Trader -> Risk Debate -> Fund Manager -> END

Only the analyst stage fans out. A stage that raises aborts the whole run
with PipelineAbortedError naming the stage; no partial result is returned.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple, TypedDict

import structlog
from langgraph.graph import StateGraph, END

from debate_pipeline.analysts import AnalystSpec, AnalystStage, default_analysts
from debate_pipeline.config import DebatePipelineConfig, validate_environment_variables
from debate_pipeline.exceptions import DebatePipelineError, PipelineAbortedError
from debate_pipeline.executor import AgentExecutor, LangChainAgentExecutor
from debate_pipeline.fund_manager import FundManagerStage
from debate_pipeline.investment_debate import InvestmentDebateEngine
from debate_pipeline.llms import get_chat_model
from debate_pipeline.models import (
    AgentTaskResult, AnalystReport, DebatePipelineResult, FundManagerDecision,
    InvestmentDebateResult, PipelineOverrides, RiskDebateResult, TraderDecision, total_cost
)
from debate_pipeline.prompts import PromptRegistry, get_registry
from debate_pipeline.risk_debate import RiskDebateEngine
from debate_pipeline.task_runner import TaskRunner
from debate_pipeline.trader import TraderStage

logger = structlog.get_logger(__name__)

ANALYST_NODE = "Analyst Team"
DEBATE_NODE = "Investment Debate"
TRADER_NODE = "Trader"
RISK_NODE = "Risk Debate"
MANAGER_NODE = "Fund Manager"
STAGE_ORDER = (ANALYST_NODE, DEBATE_NODE, TRADER_NODE, RISK_NODE, MANAGER_NODE)


class PipelineState(TypedDict, total=False):
    """State carried between stage nodes. Each node fills in its own keys."""
    fund_id: str
    analysts: List[AnalystSpec]
    model: Optional[str]
    trade_memory: Optional[str]
    analyst_results: List[AgentTaskResult]
    analyst_reports: List[AnalystReport]
    investment_debate: InvestmentDebateResult
    trader_decision: TraderDecision
    risk_debate: RiskDebateResult
    fund_manager_decision: FundManagerDecision


def default_executor() -> AgentExecutor:
    """Gemini executor; fails fast with ConfigurationError when GOOGLE_API_KEY is unset."""
    validate_environment_variables()
    return LangChainAgentExecutor(get_chat_model)


class PipelineOrchestrator:
    """
    Runs the five stages in order and assembles the DebatePipelineResult.

    Stage objects are built once per orchestrator; the orchestrator holds no
    per-run state, so one instance may serve several runs.
    """

    def __init__(
        self,
        executor: AgentExecutor,
        config: Optional[DebatePipelineConfig] = None,
        registry: Optional[PromptRegistry] = None
    ):
        self.config = config or DebatePipelineConfig()
        self.registry = registry or get_registry()
        runner = TaskRunner(executor)
        self.analyst_stage = AnalystStage(runner, self.config)
        self.investment_debate = InvestmentDebateEngine(runner, self.config, self.registry)
        self.trader = TraderStage(runner, self.config, self.registry)
        self.risk_debate = RiskDebateEngine(runner, self.config, self.registry)
        self.fund_manager = FundManagerStage(runner, self.config, self.registry)
        self.graph = self._build_graph()

    def _stage_node(self, stage: str, step):
        """Wrap a stage coroutine so any failure aborts the run under the stage's name."""
        async def node(state: PipelineState) -> PipelineState:
            logger.info("pipeline_stage_started", stage=stage, fund_id=state["fund_id"])
            try:
                return await step(state)
            except PipelineAbortedError:
                raise
            except Exception as e:
                logger.error(
                    "pipeline_stage_failed",
                    stage=stage,
                    fund_id=state["fund_id"],
                    error_type=type(e).__name__,
                    error=str(e)
                )
                raise PipelineAbortedError(
                    f"Pipeline aborted in stage '{stage}'",
                    stage=stage,
                    fund_id=state["fund_id"],
                    cause=e
                ) from e
        return node

    async def _run_analysts(self, state: PipelineState) -> PipelineState:
        results = await self.analyst_stage.run_tasks(state["analysts"], state.get("model"))
        reports = self.analyst_stage.parse_reports(results)
        return {"analyst_results": results, "analyst_reports": reports}

    async def _run_investment_debate(self, state: PipelineState) -> PipelineState:
        debate = await self.investment_debate.run(
            state["fund_id"],
            state["analyst_reports"],
            model=state.get("model"),
            trade_memory=state.get("trade_memory"),
        )
        return {"investment_debate": debate}

    async def _run_trader(self, state: PipelineState) -> PipelineState:
        decision = await self.trader.run(
            state["fund_id"],
            state["analyst_reports"],
            state["investment_debate"],
            model=state.get("model"),
            trade_memory=state.get("trade_memory"),
        )
        return {"trader_decision": decision}

    async def _run_risk_debate(self, state: PipelineState) -> PipelineState:
        risk = await self.risk_debate.run(
            state["fund_id"],
            state["trader_decision"],
            state["analyst_reports"],
            model=state.get("model"),
        )
        return {"risk_debate": risk}

    async def _run_fund_manager(self, state: PipelineState) -> PipelineState:
        final = await self.fund_manager.run(
            state["fund_id"],
            state["trader_decision"],
            state["risk_debate"],
            state["investment_debate"],
            model=state.get("model"),
        )
        return {"fund_manager_decision": final}

    def _build_graph(self):
        workflow = StateGraph(PipelineState)

        steps = {
            ANALYST_NODE: self._run_analysts,
            DEBATE_NODE: self._run_investment_debate,
            TRADER_NODE: self._run_trader,
            RISK_NODE: self._run_risk_debate,
            MANAGER_NODE: self._run_fund_manager,
        }
        for stage in STAGE_ORDER:
            workflow.add_node(stage, self._stage_node(stage, steps[stage]))

        workflow.set_entry_point(ANALYST_NODE)
        for current, following in zip(STAGE_ORDER, STAGE_ORDER[1:]):
            workflow.add_edge(current, following)
        workflow.add_edge(MANAGER_NODE, END)

        return workflow.compile()

    async def run(
        self,
        fund_id: str,
        overrides: Optional[PipelineOverrides] = None,
        analysts: Optional[Sequence[AnalystSpec]] = None
    ) -> DebatePipelineResult:
        """
        Run all five stages for one fund.

        Raises:
            PipelineAbortedError: If any stage fails fatally
        """
        overrides = overrides or PipelineOverrides()
        analyst_specs = list(analysts) if analysts is not None else default_analysts(fund_id, self.registry)
        started_at = datetime.now()

        logger.info(
            "pipeline_started",
            fund_id=fund_id,
            analysts=len(analyst_specs),
            model=overrides.model,
            **self.config.to_dict()
        )

        state = await self.graph.ainvoke({
            "fund_id": fund_id,
            "analysts": analyst_specs,
            "model": overrides.model,
            "trade_memory": overrides.trade_memory_text,
        })

        analyst_results = tuple(state["analyst_results"])
        debate = state["investment_debate"]
        decision = state["trader_decision"]
        risk = state["risk_debate"]
        final = state["fund_manager_decision"]

        total_cost_usd = (
            total_cost(list(analyst_results))
            + debate.cost_usd
            + decision.cost_usd
            + risk.cost_usd
            + final.cost_usd
        )

        result = DebatePipelineResult(
            fund_id=fund_id,
            started_at=started_at,
            ended_at=datetime.now(),
            analyst_reports=tuple(state["analyst_reports"]),
            investment_debate=debate,
            trader_decision=decision,
            risk_debate=risk,
            fund_manager_decision=final,
            total_cost_usd=total_cost_usd,
            pipeline_config=self.config,
            analyst_results=analyst_results,
        )
        logger.info(
            "pipeline_completed",
            fund_id=fund_id,
            final_action=str(final.final_action),
            approved=final.approved,
            total_cost_usd=round(total_cost_usd, 4),
            duration_s=round((result.ended_at - started_at).total_seconds(), 1)
        )
        return result


def _resolve(
    config: Optional[DebatePipelineConfig],
    overrides: Optional[PipelineOverrides],
    executor: Optional[AgentExecutor]
) -> Tuple[DebatePipelineConfig, PipelineOverrides, AgentExecutor]:
    return (
        config or DebatePipelineConfig(),
        overrides or PipelineOverrides(),
        executor or default_executor(),
    )


async def run_pipeline(
    fund_id: str,
    config: Optional[DebatePipelineConfig] = None,
    overrides: Optional[PipelineOverrides] = None,
    *,
    executor: Optional[AgentExecutor] = None,
    analysts: Optional[Sequence[AnalystSpec]] = None
) -> DebatePipelineResult:
    """
    Run the full five-stage debate pipeline for a fund.

    Args:
        fund_id: Fund identifier, used in every prompt
        config: Rounds, timeouts and trade-memory switch (defaults if None)
        overrides: Per-run model and trade memory text
        executor: AgentExecutor to use (Gemini via LangChain if None)
        analysts: Analyst set to run (the five default analysts if None)

    Returns:
        The assembled DebatePipelineResult

    Raises:
        PipelineAbortedError: If a stage fails fatally
    """
    config, overrides, executor = _resolve(config, overrides, executor)
    orchestrator = PipelineOrchestrator(executor, config)
    return await orchestrator.run(fund_id, overrides, analysts)


async def run_analyst_stage_only(
    fund_id: str,
    config: Optional[DebatePipelineConfig] = None,
    overrides: Optional[PipelineOverrides] = None,
    *,
    executor: Optional[AgentExecutor] = None,
    analysts: Optional[Sequence[AnalystSpec]] = None
) -> List[AnalystReport]:
    """Run only the analyst team and return its reports."""
    config, overrides, executor = _resolve(config, overrides, executor)
    analyst_specs = list(analysts) if analysts is not None else default_analysts(fund_id)
    stage = AnalystStage(TaskRunner(executor), config)
    try:
        return await stage.run(analyst_specs, overrides.model)
    except DebatePipelineError:
        raise
    except Exception as e:
        raise PipelineAbortedError(
            f"Pipeline aborted in stage '{ANALYST_NODE}'",
            stage=ANALYST_NODE,
            fund_id=fund_id,
            cause=e
        ) from e
