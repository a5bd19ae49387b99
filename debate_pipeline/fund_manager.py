"""Fund manager stage: the final, execution-ready decision."""

from typing import Optional

import structlog

from debate_pipeline.config import MANAGER_LIMITS, DebatePipelineConfig
from debate_pipeline.config import config as app_config
from debate_pipeline.extraction import FUND_MANAGER_GRAMMAR, extract_fields
from debate_pipeline.models import (
    AgentTask, FundManagerDecision, InvestmentDebateResult, RiskDebateResult, TradeAction,
    TraderDecision
)
from debate_pipeline.prompts import PromptRegistry, get_registry
from debate_pipeline.risk_debate import format_trader_proposal
from debate_pipeline.task_runner import TaskRunner

logger = structlog.get_logger(__name__)

FUND_MANAGER_OUTPUT_FORMAT = """## Required Output Format
FINAL_APPROVED: true | false
FINAL_ACTION: BUY | SELL | HOLD
FINAL_SYMBOLS: AAPL, MSFT (comma-separated or "none")
FINAL_POSITION_SIZE_PCT: 0 to 100
RISK_ADJUSTMENTS_APPLIED:
- adjustment 1
- adjustment 2
RATIONALE: detailed explanation"""


def format_risk_result_for_prompt(risk: RiskDebateResult) -> str:
    lines = [
        f"Approved: {'true' if risk.approved else 'false'}",
        f"Adjusted Action: {risk.adjusted_action}",
        "Risk Adjustments:",
    ]
    lines.extend(f"- {a}" for a in risk.risk_adjustments)
    lines.append(f"Rationale: {risk.rationale}")
    return "\n".join(lines)


def parse_fund_manager_decision(output_text: str, cost_usd: float = 0.0) -> FundManagerDecision:
    fields = extract_fields(output_text, FUND_MANAGER_GRAMMAR)
    return FundManagerDecision(
        approved=fields["approved"],
        final_action=TradeAction(fields["final_action"]),
        final_symbols=fields["final_symbols"],
        position_size_pct=fields["position_size_pct"],
        risk_adjustments_applied=fields["risk_adjustments_applied"],
        rationale=fields["rationale"],
        raw_output=output_text,
        cost_usd=cost_usd,
    )


class FundManagerStage:
    """
    Stage 5: final arbitration over the trader proposal and the risk verdict.

    The extracted decision is returned as-is; nothing here second-guesses the
    manager's output.
    """

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
        decision: TraderDecision,
        risk: RiskDebateResult,
        debate: InvestmentDebateResult
    ) -> str:
        persona = self.registry.require("fund_manager").system_message
        return "\n\n".join([
            f"Fund: '{fund_id}'",
            persona,
            "## Investment Debate Result\n"
            f"Prevailing Perspective: {debate.prevailing_perspective} ({debate.confidence:.0%})\n"
            f"Rationale: {debate.rationale}",
            f"## Trader's Proposed Decision\n{format_trader_proposal(decision)}",
            f"## Risk Management Team Result\n{format_risk_result_for_prompt(risk)}",
            FUND_MANAGER_OUTPUT_FORMAT,
        ])

    async def run(
        self,
        fund_id: str,
        decision: TraderDecision,
        risk: RiskDebateResult,
        debate: InvestmentDebateResult,
        model: Optional[str] = None
    ) -> FundManagerDecision:
        task = AgentTask(
            id="fund_manager",
            role_label="Fund Manager",
            prompt=self.build_prompt(fund_id, decision, risk, debate),
            model_override=model or app_config.deep_think_llm,
            max_turns=MANAGER_LIMITS.max_turns,
            timeout=self.config.timeout_seconds(self.config.manager_timeout_minutes),
            budget_cap=MANAGER_LIMITS.budget_usd,
        )
        result = await self.runner.run_required(task)
        final = parse_fund_manager_decision(result.output_text, result.cost_usd)
        logger.info(
            "fund_manager_decision",
            fund_id=fund_id,
            approved=final.approved,
            action=str(final.final_action),
            symbols=list(final.final_symbols),
            position_size_pct=final.position_size_pct
        )
        return final
