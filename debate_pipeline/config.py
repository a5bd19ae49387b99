from dataclasses import dataclass, asdict
from pathlib import Path
import os
from dotenv import load_dotenv
import logging
import sys
from typing import Any, Dict, Optional
import structlog

from debate_pipeline.exceptions import ConfigurationError

# Load environment variables early
load_dotenv()

# Step 1: Configure stdlib logging to use stderr
logging.basicConfig(
    format='%(asctime)s [%(levelname)-8s] %(message)s',
    stream=sys.stderr,
    level=logging.INFO,
    force=True
)

# Step 2: Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.KeyValueRenderer(key_order=['timestamp', 'level', 'event']),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = logging.getLogger(__name__)

MIN_DEBATE_ROUNDS = 1
MAX_DEBATE_ROUNDS = 10


def _get_env_var(var: str, required: bool = True, default: Optional[str] = None) -> str:
    """Get environment variable with validation."""
    value = os.environ.get(var, default)
    if required and not value:
        logger.error(f"Missing required environment variable: {var}")
        return ""
    return value or ""


def _env_number(var: str, default: str, cast=float):
    """Read a numeric environment variable, failing loudly on garbage."""
    raw = os.environ.get(var, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Environment variable {var} is not a valid number: {raw!r}",
            config_key=var,
            cause=e
        ) from e


def _env_flag(var: str, default: str) -> bool:
    return os.environ.get(var, default).strip().lower() in ("1", "true", "yes", "on")


def validate_environment_variables() -> None:
    """Validate environment variables needed by the default Gemini executor."""
    if not _get_env_var("GOOGLE_API_KEY", required=True):
        raise ConfigurationError(
            "Missing required environment variable: GOOGLE_API_KEY",
            config_key="GOOGLE_API_KEY"
        )
    logger.info("Environment variables validated")


@dataclass(frozen=True)
class StageLimits:
    """Per-task execution limits applied to every task a stage submits."""
    max_turns: int
    budget_usd: float


# Turn and budget caps per task, by stage
ANALYST_LIMITS = StageLimits(max_turns=15, budget_usd=2.0)
DEBATER_LIMITS = StageLimits(max_turns=10, budget_usd=1.5)
JUDGE_LIMITS = StageLimits(max_turns=5, budget_usd=1.0)
TRADER_LIMITS = StageLimits(max_turns=15, budget_usd=2.0)
RISK_DEBATER_LIMITS = StageLimits(max_turns=10, budget_usd=1.0)
MANAGER_LIMITS = StageLimits(max_turns=30, budget_usd=3.0)


@dataclass(frozen=True)
class DebatePipelineConfig:
    """
    Knobs for one pipeline run.

    Timeouts are per task, in minutes. Every debate turn of a stage gets the
    stage's timeout; judges share `judge_timeout_minutes`.
    """
    max_debate_rounds: int = 2
    max_risk_debate_rounds: int = 2
    include_trade_memory: bool = True
    analyst_timeout_minutes: float = 8
    debate_timeout_minutes: float = 5
    judge_timeout_minutes: float = 3
    trader_timeout_minutes: float = 5
    risk_timeout_minutes: float = 5
    manager_timeout_minutes: float = 3

    def __post_init__(self):
        for key in ("max_debate_rounds", "max_risk_debate_rounds"):
            rounds = getattr(self, key)
            if not isinstance(rounds, int) or not MIN_DEBATE_ROUNDS <= rounds <= MAX_DEBATE_ROUNDS:
                raise ConfigurationError(
                    f"{key} must be an integer between {MIN_DEBATE_ROUNDS} and {MAX_DEBATE_ROUNDS}",
                    config_key=key,
                    details={"value": rounds}
                )
        for key in (
            "analyst_timeout_minutes", "debate_timeout_minutes", "judge_timeout_minutes",
            "trader_timeout_minutes", "risk_timeout_minutes", "manager_timeout_minutes",
        ):
            if getattr(self, key) <= 0:
                raise ConfigurationError(
                    f"{key} must be positive",
                    config_key=key,
                    details={"value": getattr(self, key)}
                )

    @staticmethod
    def timeout_seconds(minutes: float) -> float:
        return float(minutes) * 60.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_env(cls) -> "DebatePipelineConfig":
        """Build a config from MAX_DEBATE_ROUNDS, *_TIMEOUT_MINUTES, etc."""
        return cls(
            max_debate_rounds=_env_number("MAX_DEBATE_ROUNDS", "2", int),
            max_risk_debate_rounds=_env_number("MAX_RISK_DEBATE_ROUNDS", "2", int),
            include_trade_memory=_env_flag("INCLUDE_TRADE_MEMORY", "true"),
            analyst_timeout_minutes=_env_number("ANALYST_TIMEOUT_MINUTES", "8"),
            debate_timeout_minutes=_env_number("DEBATE_TIMEOUT_MINUTES", "5"),
            judge_timeout_minutes=_env_number("JUDGE_TIMEOUT_MINUTES", "3"),
            trader_timeout_minutes=_env_number("TRADER_TIMEOUT_MINUTES", "5"),
            risk_timeout_minutes=_env_number("RISK_TIMEOUT_MINUTES", "5"),
            manager_timeout_minutes=_env_number("MANAGER_TIMEOUT_MINUTES", "3"),
        )


@dataclass
class Config:
    """Process-wide settings for the debate pipeline."""

    results_dir: Path = Path(os.environ.get("RESULTS_DIR", "./results"))
    prompts_dir: Path = Path(os.environ.get("PROMPTS_DIR", "./prompts"))

    deep_think_llm: str = os.environ.get("DEEP_MODEL", "gemini-2.5-pro")
    quick_think_llm: str = os.environ.get("QUICK_MODEL", "gemini-2.5-flash")

    # Calls per minute allowed by the Gemini API tier (15 = free tier)
    gemini_rpm_limit: int = int(os.environ.get("GEMINI_RPM_LIMIT", "15"))

    log_level: str = os.environ.get("LOG_LEVEL", "INFO")

    api_timeout: int = int(os.environ.get("API_TIMEOUT", "300"))
    api_retry_attempts: int = int(os.environ.get("API_RETRY_ATTEMPTS", "3"))

    def __post_init__(self):
        log_level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.getLogger().setLevel(log_level)


config = Config()
