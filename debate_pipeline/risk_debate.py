"""
Risk management debate over the trader's proposal.

Three perspectives speak in a fixed order every round: aggressive,
conservative, neutral. Each sees the latest argument of the other two, then a
risk judge reads the three-way transcript.
"""

from typing import Optional, Sequence

import structlog

from debate_pipeline.analysts import format_analyst_reports_for_prompt
from debate_pipeline.config import JUDGE_LIMITS, RISK_DEBATER_LIMITS, DebatePipelineConfig
from debate_pipeline.config import config as app_config
from debate_pipeline.extraction import RISK_ARGUMENT_GRAMMAR, RISK_JUDGE_GRAMMAR, extract_fields
from debate_pipeline.models import (
    AgentTask, AnalystReport, RiskDebateResult, RiskPerspective, TradeAction, TraderDecision
)
from debate_pipeline.prompts import PromptRegistry, get_registry
from debate_pipeline.task_runner import TaskRunner
from debate_pipeline.turns import DebateTranscript, argument_from_result, render_argument, schedule

logger = structlog.get_logger(__name__)

PERSPECTIVES = tuple(p.value for p in RiskPerspective)

PERSPECTIVE_PROMPT_KEYS = {
    RiskPerspective.AGGRESSIVE.value: "aggressive_analyst",
    RiskPerspective.CONSERVATIVE.value: "conservative_analyst",
    RiskPerspective.NEUTRAL.value: "neutral_analyst",
}
PERSPECTIVE_LABELS = {
    RiskPerspective.AGGRESSIVE.value: "Aggressive Risk Analyst",
    RiskPerspective.CONSERVATIVE.value: "Conservative Risk Analyst",
    RiskPerspective.NEUTRAL.value: "Neutral Risk Analyst",
}

NO_OTHER_PERSPECTIVES = (
    "No responses from other perspectives yet. You are presenting your opening position."
)

RISK_DEBATER_OUTPUT_FORMAT = """## Required Output Format
Provide your argument, then end with:
RISK_RECOMMENDATION: approve | adjust | reject
KEY_POINTS:
- point 1
- point 2
COUNTERPOINTS:
- response to another perspective 1
- response to another perspective 2"""

RISK_JUDGE_OUTPUT_FORMAT = """## Required Output Format (strict)
APPROVED: true | false
ADJUSTED_ACTION: BUY | SELL | HOLD
RISK_ADJUSTMENTS:
- adjustment 1
- adjustment 2
RATIONALE: explanation
AGGRESSIVE_SUMMARY: one-line summary
CONSERVATIVE_SUMMARY: one-line summary
NEUTRAL_SUMMARY: one-line summary"""


def format_trader_proposal(decision: TraderDecision, include_reasoning: bool = True) -> str:
    position = "unspecified" if decision.position_size_pct is None else f"{decision.position_size_pct:g}%"
    lines = [
        f"Action: {decision.action}",
        f"Symbols: {', '.join(decision.symbols) or 'none'}",
        f"Conviction: {decision.conviction:.0%}",
        f"Position Size: {position}",
    ]
    if include_reasoning:
        lines.append(f"Reasoning: {decision.reasoning}")
    return "\n".join(lines)


class RiskDebateEngine:
    """Stage 4: three-way risk debate and the risk judge."""

    def __init__(
        self,
        runner: TaskRunner,
        config: DebatePipelineConfig,
        registry: Optional[PromptRegistry] = None
    ):
        self.runner = runner
        self.config = config
        self.registry = registry or get_registry()

    def build_debater_prompt(
        self,
        perspective: str,
        round_number: int,
        fund_id: str,
        proposal: str,
        analysis_context: str,
        transcript: DebateTranscript
    ) -> str:
        others = [
            f"**{PERSPECTIVE_LABELS[other]}:** {render_argument(argument)}"
            for other, argument in transcript.others_latest(perspective).items()
            if argument is not None
        ]
        other_text = "\n\n".join(others) if others else NO_OTHER_PERSPECTIVES
        persona = self.registry.require(PERSPECTIVE_PROMPT_KEYS[perspective]).system_message

        return "\n\n".join([
            f"Fund: '{fund_id}'\n"
            f"This is round {round_number} of {self.config.max_risk_debate_rounds} "
            f"in a risk management debate.",
            persona,
            f"## Trader's Proposed Decision\n{proposal}",
            f"## Analyst Context\n{analysis_context}",
            f"## Other Perspectives' Arguments\n{other_text}",
            RISK_DEBATER_OUTPUT_FORMAT,
        ])

    def build_judge_prompt(
        self,
        fund_id: str,
        decision: TraderDecision,
        transcript: DebateTranscript
    ) -> str:
        persona = self.registry.require("risk_judge").system_message
        return "\n\n".join([
            f"Fund: '{fund_id}'",
            persona,
            f"## Trader's Proposal\n{format_trader_proposal(decision, include_reasoning=False)}",
            f"## Risk Debate Transcript\n{transcript.render(PERSPECTIVE_LABELS)}",
            RISK_JUDGE_OUTPUT_FORMAT,
        ])

    async def run(
        self,
        fund_id: str,
        decision: TraderDecision,
        reports: Sequence[AnalystReport],
        model: Optional[str] = None
    ) -> RiskDebateResult:
        """
        Run all risk rounds sequentially, then the risk judge.

        Raises:
            Whatever the executor raises for the judge task.
        """
        proposal = format_trader_proposal(decision)
        analysis_context = format_analyst_reports_for_prompt(reports)
        transcript = DebateTranscript(PERSPECTIVES)
        turn_timeout = self.config.timeout_seconds(self.config.risk_timeout_minutes)
        cost = 0.0

        logger.info(
            "risk_debate_started",
            fund_id=fund_id,
            rounds=self.config.max_risk_debate_rounds,
            action=str(decision.action)
        )

        for round_number, perspective in schedule(PERSPECTIVES, self.config.max_risk_debate_rounds):
            task = AgentTask(
                id=f"risk_{perspective}_round_{round_number}",
                role_label=PERSPECTIVE_LABELS[perspective],
                prompt=self.build_debater_prompt(
                    perspective, round_number, fund_id, proposal, analysis_context, transcript
                ),
                model_override=model,
                max_turns=RISK_DEBATER_LIMITS.max_turns,
                timeout=turn_timeout,
                budget_cap=RISK_DEBATER_LIMITS.budget_usd,
            )
            result = await self.runner.run_task(task)
            cost += result.cost_usd
            argument = argument_from_result(perspective, round_number, result, RISK_ARGUMENT_GRAMMAR)
            transcript.record(argument)
            logger.info(
                "debate_turn_recorded",
                debate="risk",
                round=round_number,
                role=perspective,
                empty=argument.is_empty,
                recommendation=argument.recommendation
            )

        judge_task = AgentTask(
            id="risk_judge",
            role_label="Risk Management Judge",
            prompt=self.build_judge_prompt(fund_id, decision, transcript),
            model_override=model or app_config.deep_think_llm,
            max_turns=JUDGE_LIMITS.max_turns,
            timeout=self.config.timeout_seconds(self.config.judge_timeout_minutes),
            budget_cap=JUDGE_LIMITS.budget_usd,
        )
        judge = await self.runner.run_required(judge_task)
        cost += judge.cost_usd
        fields = extract_fields(judge.output_text, RISK_JUDGE_GRAMMAR)

        # A judge that names no action keeps the trader's proposal
        adjusted_action = fields["adjusted_action"]
        adjusted = TradeAction(adjusted_action) if adjusted_action else decision.action

        result = RiskDebateResult(
            approved=fields["approved"],
            adjusted_action=adjusted,
            risk_adjustments=fields["risk_adjustments"],
            rationale=fields["rationale"],
            aggressive_summary=fields["aggressive_summary"],
            conservative_summary=fields["conservative_summary"],
            neutral_summary=fields["neutral_summary"],
            rounds_completed=transcript.rounds_recorded,
            histories=transcript.histories(),
            cost_usd=cost,
        )
        logger.info(
            "risk_debate_completed",
            fund_id=fund_id,
            approved=result.approved,
            adjusted_action=str(result.adjusted_action),
            adjustments=len(result.risk_adjustments),
            cost_usd=round(cost, 4)
        )
        return result
