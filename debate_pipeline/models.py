"""
Data model for the debate pipeline.

Each stage owns and produces exactly one of these records. Debate histories are
stored as tuples so nothing downstream (judge, report renderer) can append to
an engine's transcript after it has been handed over.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from debate_pipeline.config import DebatePipelineConfig


class TaskStatus(Enum):
    """Outcome of one submitted agent task."""
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class Signal(Enum):
    """Directional opinion extracted from analyst or debate output."""
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"

    def __str__(self) -> str:
        return self.value


class TradeAction(Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    def __str__(self) -> str:
        return self.value


class RiskPerspective(Enum):
    """Fixed risk postures, in the order they speak within a round."""
    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"
    NEUTRAL = "neutral"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AgentTask:
    """
    One bounded text-generation task. Immutable once submitted.

    Attributes:
        id: Stable identifier used to map the result back to the task
        role_label: Human-readable role (e.g. "Macro Analyst", "Bull Researcher")
        prompt: Full prompt text
        model_override: Model name for this task only (None = executor default)
        max_turns: Maximum model turns the executor may spend
        timeout: Hard wall-clock limit in seconds
        budget_cap: Maximum spend in USD
    """
    id: str
    role_label: str
    prompt: str
    model_override: Optional[str] = None
    max_turns: int = 10
    timeout: float = 300.0
    budget_cap: float = 1.0


@dataclass(frozen=True)
class AgentTaskResult:
    """Result of one AgentTask. Exactly one exists per submitted task."""
    id: str
    role_label: str
    started_at: datetime
    ended_at: datetime
    status: TaskStatus
    output_text: str = ""
    error_message: Optional[str] = None
    cost_usd: float = 0.0
    num_turns: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is TaskStatus.SUCCESS

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()


@dataclass(frozen=True)
class AnalystReport:
    analyst_type: str
    analyst_name: str
    signal: Signal
    confidence: float
    summary: str
    key_findings: Tuple[str, ...] = ()
    raw_output: str = ""


@dataclass(frozen=True)
class DebateArgument:
    """
    One participant's contribution to one debate round.

    A failed turn is recorded as an argument with empty text and empty point
    lists; see `is_empty`.
    """
    role: str
    round: int
    argument_text: str = ""
    key_points: Tuple[str, ...] = ()
    counterpoints: Tuple[str, ...] = ()
    recommendation: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.argument_text.strip()


@dataclass(frozen=True)
class InvestmentDebateResult:
    prevailing_perspective: Signal
    confidence: float
    rationale: str
    key_bull_arguments: Tuple[str, ...]
    key_bear_arguments: Tuple[str, ...]
    bull_history: Tuple[DebateArgument, ...]
    bear_history: Tuple[DebateArgument, ...]
    rounds_completed: int
    cost_usd: float = 0.0


@dataclass(frozen=True)
class TraderDecision:
    """
    Candidate trade from the trader stage.

    `symbols` is empty whenever `action` is HOLD. A BUY/SELL with no symbols is
    an abstain that downstream stages treat as "nothing to execute".
    """
    action: TradeAction
    symbols: Tuple[str, ...]
    reasoning: str
    conviction: float
    position_size_pct: Optional[float] = None
    raw_output: str = ""
    cost_usd: float = 0.0

    @property
    def is_abstain(self) -> bool:
        return self.action is not TradeAction.HOLD and not self.symbols


@dataclass(frozen=True)
class RiskDebateResult:
    approved: bool
    adjusted_action: TradeAction
    risk_adjustments: Tuple[str, ...]
    rationale: str
    aggressive_summary: str
    conservative_summary: str
    neutral_summary: str
    rounds_completed: int
    histories: Dict[str, Tuple[DebateArgument, ...]] = field(default_factory=dict)
    cost_usd: float = 0.0


@dataclass(frozen=True)
class FundManagerDecision:
    """Terminal, execution-ready decision of the pipeline."""
    approved: bool
    final_action: TradeAction
    final_symbols: Tuple[str, ...]
    position_size_pct: Optional[float]
    risk_adjustments_applied: Tuple[str, ...]
    rationale: str
    raw_output: str = ""
    cost_usd: float = 0.0


@dataclass(frozen=True)
class PipelineOverrides:
    """Per-run overrides supplied by the caller."""
    model: Optional[str] = None
    trade_memory_text: Optional[str] = None


@dataclass(frozen=True)
class DebatePipelineResult:
    """Aggregate of one pipeline run. Assembled once by the orchestrator."""
    fund_id: str
    started_at: datetime
    ended_at: datetime
    analyst_reports: Tuple[AnalystReport, ...]
    investment_debate: InvestmentDebateResult
    trader_decision: TraderDecision
    risk_debate: RiskDebateResult
    fund_manager_decision: FundManagerDecision
    total_cost_usd: float
    pipeline_config: DebatePipelineConfig
    analyst_results: Tuple[AgentTaskResult, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready structured record of the run."""
        return _to_jsonable(asdict(self))


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def total_cost(results: List[AgentTaskResult]) -> float:
    return sum(r.cost_usd for r in results)
