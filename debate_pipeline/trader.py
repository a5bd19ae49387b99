"""Trader stage: turns the analyst reports and debate verdict into a trade proposal."""

from typing import Optional, Sequence

import structlog

from debate_pipeline.analysts import format_analyst_reports_for_prompt, format_trade_memory_for_prompt
from debate_pipeline.config import TRADER_LIMITS, DebatePipelineConfig
from debate_pipeline.extraction import TRADER_GRAMMAR, extract_fields
from debate_pipeline.models import (
    AgentTask, AnalystReport, InvestmentDebateResult, TradeAction, TraderDecision
)
from debate_pipeline.prompts import PromptRegistry, get_registry
from debate_pipeline.task_runner import TaskRunner

logger = structlog.get_logger(__name__)

TRADER_OUTPUT_FORMAT = """## Required Output Format (strict, follow exactly)
FINAL_ACTION: BUY | SELL | HOLD
SYMBOLS: AAPL, MSFT (comma-separated, or "none" for HOLD)
CONVICTION: 0.0 to 1.0
POSITION_SIZE_PCT: 0 to 100 (percentage of available capital)
REASONING: detailed explanation"""


def format_debate_result_for_prompt(debate: InvestmentDebateResult) -> str:
    lines = [
        "## Investment Debate Result",
        f"Prevailing Perspective: **{debate.prevailing_perspective}** "
        f"(confidence: {debate.confidence:.0%})",
        f"Rationale: {debate.rationale}",
        "",
        "Strongest bull arguments:",
    ]
    lines.extend(f"- {a}" for a in debate.key_bull_arguments)
    lines.append("")
    lines.append("Strongest bear arguments:")
    lines.extend(f"- {a}" for a in debate.key_bear_arguments)
    return "\n".join(lines)


def parse_trader_decision(output_text: str, cost_usd: float = 0.0) -> TraderDecision:
    """
    Extract a TraderDecision and normalize it.

    HOLD never carries symbols. A BUY/SELL without symbols is kept as an
    abstain for the downstream stages to see.
    """
    fields = extract_fields(output_text, TRADER_GRAMMAR)
    action = TradeAction(fields["action"])
    symbols = () if action is TradeAction.HOLD else fields["symbols"]
    return TraderDecision(
        action=action,
        symbols=symbols,
        reasoning=fields["reasoning"],
        conviction=fields["conviction"],
        position_size_pct=fields["position_size_pct"],
        raw_output=output_text,
        cost_usd=cost_usd,
    )


class TraderStage:
    """Stage 3: single synthesis task. Executor exceptions propagate."""

    def __init__(
        self,
        runner: TaskRunner,
        config: DebatePipelineConfig,
        registry: Optional[PromptRegistry] = None
    ):
        self.runner = runner
        self.config = config
        self.registry = registry or get_registry()

    def build_prompt(
        self,
        fund_id: str,
        reports: Sequence[AnalystReport],
        debate: InvestmentDebateResult,
        trade_memory: Optional[str] = None
    ) -> str:
        persona = self.registry.require("trader").system_message
        sections = [
            f"Fund: '{fund_id}'",
            persona,
            f"## Analyst Reports\n{format_analyst_reports_for_prompt(reports)}",
            format_debate_result_for_prompt(debate),
            format_trade_memory_for_prompt(trade_memory, self.config),
            TRADER_OUTPUT_FORMAT,
        ]
        return "\n\n".join(s for s in sections if s)

    async def run(
        self,
        fund_id: str,
        reports: Sequence[AnalystReport],
        debate: InvestmentDebateResult,
        model: Optional[str] = None,
        trade_memory: Optional[str] = None
    ) -> TraderDecision:
        task = AgentTask(
            id="trader",
            role_label="Trader",
            prompt=self.build_prompt(fund_id, reports, debate, trade_memory),
            model_override=model,
            max_turns=TRADER_LIMITS.max_turns,
            timeout=self.config.timeout_seconds(self.config.trader_timeout_minutes),
            budget_cap=TRADER_LIMITS.budget_usd,
        )
        result = await self.runner.run_required(task)
        decision = parse_trader_decision(result.output_text, result.cost_usd)

        if decision.is_abstain:
            logger.warning(
                "trader_abstained",
                fund_id=fund_id,
                action=str(decision.action),
                reason="no symbols given"
            )
        logger.info(
            "trader_decision",
            fund_id=fund_id,
            action=str(decision.action),
            symbols=list(decision.symbols),
            conviction=decision.conviction,
            position_size_pct=decision.position_size_pct
        )
        return decision
