"""
Investment debate: bull vs bear researchers for N rounds, then a judge.

Each round the bull speaks first and sees the bear's latest argument (from the
previous round, or an opening-case note in round 1); the bear answers the
bull argument of the same round. Debate turns are failure-isolated; the
judge is not.
"""

from typing import Optional, Sequence

import structlog

from debate_pipeline.analysts import format_analyst_reports_for_prompt, format_trade_memory_for_prompt
from debate_pipeline.config import DEBATER_LIMITS, JUDGE_LIMITS, DebatePipelineConfig
from debate_pipeline.config import config as app_config
from debate_pipeline.extraction import DEBATE_ARGUMENT_GRAMMAR, INVESTMENT_JUDGE_GRAMMAR, extract_fields
from debate_pipeline.models import AgentTask, AnalystReport, InvestmentDebateResult, Signal
from debate_pipeline.prompts import PromptRegistry, get_registry
from debate_pipeline.task_runner import TaskRunner
from debate_pipeline.turns import DebateTranscript, argument_from_result, render_argument, schedule

logger = structlog.get_logger(__name__)

BULL = "bull"
BEAR = "bear"
ROLES = (BULL, BEAR)

ROLE_PROMPT_KEYS = {BULL: "bull_researcher", BEAR: "bear_researcher"}
ROLE_LABELS = {BULL: "Bull Researcher", BEAR: "Bear Researcher"}

OPENING_CASE = {
    BULL: "No bear arguments yet. You are presenting the opening bullish case.",
    BEAR: "No bull arguments yet. You are presenting the opening bearish case.",
}

DEBATER_OUTPUT_FORMAT = """## Required Output Format
Provide your argument, then end with:
KEY_POINTS:
- point 1
- point 2
COUNTERPOINTS:
- counter to the opposing argument 1
- counter to the opposing argument 2"""

DECISIVENESS_INSTRUCTION = (
    "You MUST be decisive — leaning neutral is only appropriate if evidence is truly balanced"
)

JUDGE_OUTPUT_FORMAT = """## Required Output Format (strict, follow exactly)
PREVAILING_PERSPECTIVE: bullish | bearish | neutral
CONFIDENCE: 0.0 to 1.0
RATIONALE: your reasoning
KEY_BULL_ARGUMENTS:
- strongest bull point 1
- strongest bull point 2
KEY_BEAR_ARGUMENTS:
- strongest bear point 1
- strongest bear point 2"""


def _join_sections(*sections: str) -> str:
    return "\n\n".join(s for s in sections if s)


class InvestmentDebateEngine:
    """Stage 2: the bull/bear research debate and its judge."""

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
        role: str,
        round_number: int,
        fund_id: str,
        analysis_context: str,
        transcript: DebateTranscript,
        trade_memory: str = ""
    ) -> str:
        opponent = BEAR if role == BULL else BULL
        latest = transcript.latest(opponent)
        previous = OPENING_CASE[role] if latest is None else render_argument(latest)
        persona = self.registry.require(ROLE_PROMPT_KEYS[role]).system_message

        return _join_sections(
            f"Fund: '{fund_id}'\n"
            f"This is round {round_number} of {self.config.max_debate_rounds} in an investment debate.",
            persona,
            f"## Analyst Reports\n{analysis_context}",
            f"## {ROLE_LABELS[opponent]}'s Previous Argument\n{previous}",
            trade_memory,
            DEBATER_OUTPUT_FORMAT,
        )

    def build_judge_prompt(self, fund_id: str, transcript: DebateTranscript) -> str:
        persona = self.registry.require("investment_judge").system_message
        return _join_sections(
            f"Fund: '{fund_id}'",
            persona,
            f"## Debate Transcript\n{transcript.render(ROLE_LABELS)}",
            f"## Final Instruction\n{DECISIVENESS_INSTRUCTION}",
            JUDGE_OUTPUT_FORMAT,
        )

    async def run(
        self,
        fund_id: str,
        reports: Sequence[AnalystReport],
        model: Optional[str] = None,
        trade_memory: Optional[str] = None
    ) -> InvestmentDebateResult:
        """
        Run all debate rounds and the judge.

        Raises:
            Whatever the executor raises for the judge task.
        """
        analysis_context = format_analyst_reports_for_prompt(reports)
        memory_section = format_trade_memory_for_prompt(trade_memory, self.config)
        transcript = DebateTranscript(ROLES)
        turn_timeout = self.config.timeout_seconds(self.config.debate_timeout_minutes)
        cost = 0.0

        logger.info("investment_debate_started", fund_id=fund_id, rounds=self.config.max_debate_rounds)

        for round_number, role in schedule(ROLES, self.config.max_debate_rounds):
            task = AgentTask(
                id=f"{role}_round_{round_number}",
                role_label=ROLE_LABELS[role],
                prompt=self.build_debater_prompt(
                    role, round_number, fund_id, analysis_context, transcript, memory_section
                ),
                model_override=model,
                max_turns=DEBATER_LIMITS.max_turns,
                timeout=turn_timeout,
                budget_cap=DEBATER_LIMITS.budget_usd,
            )
            result = await self.runner.run_task(task)
            cost += result.cost_usd
            argument = argument_from_result(role, round_number, result, DEBATE_ARGUMENT_GRAMMAR)
            transcript.record(argument)
            logger.info(
                "debate_turn_recorded",
                debate="investment",
                round=round_number,
                role=role,
                empty=argument.is_empty,
                key_points=len(argument.key_points)
            )

        judge_task = AgentTask(
            id="investment_judge",
            role_label="Investment Debate Facilitator",
            prompt=self.build_judge_prompt(fund_id, transcript),
            model_override=model or app_config.deep_think_llm,
            max_turns=JUDGE_LIMITS.max_turns,
            timeout=self.config.timeout_seconds(self.config.judge_timeout_minutes),
            budget_cap=JUDGE_LIMITS.budget_usd,
        )
        judge = await self.runner.run_required(judge_task)
        cost += judge.cost_usd
        fields = extract_fields(judge.output_text, INVESTMENT_JUDGE_GRAMMAR)

        result = InvestmentDebateResult(
            prevailing_perspective=Signal(fields["prevailing_perspective"]),
            confidence=fields["confidence"],
            rationale=fields["rationale"],
            key_bull_arguments=fields["key_bull_arguments"],
            key_bear_arguments=fields["key_bear_arguments"],
            bull_history=transcript.history(BULL),
            bear_history=transcript.history(BEAR),
            rounds_completed=transcript.rounds_recorded,
            cost_usd=cost,
        )
        logger.info(
            "investment_debate_completed",
            fund_id=fund_id,
            perspective=str(result.prevailing_perspective),
            confidence=result.confidence,
            rounds=result.rounds_completed,
            cost_usd=round(cost, 4)
        )
        return result
