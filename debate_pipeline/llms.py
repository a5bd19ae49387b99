"""
Gemini chat models for the default executor.

All models share one rate limiter sized from GEMINI_RPM_LIMIT, so the parallel
analyst fan-out and the sequential debate turns draw from the same budget of
requests. `estimate_cost` prices a response from its usage metadata.
"""

from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.language_models import BaseChatModel
from langchain_core.rate_limiters import InMemoryRateLimiter
from langchain_google_genai import ChatGoogleGenerativeAI, HarmBlockThreshold, HarmCategory

from debate_pipeline.config import config

logger = structlog.get_logger(__name__)

# Debate and risk prompts discuss losses, leverage and drawdowns; keep the filters from tripping on them
SAFETY_SETTINGS = {
    category: HarmBlockThreshold.BLOCK_ONLY_HIGH
    for category in (
        HarmCategory.HARM_CATEGORY_HARASSMENT,
        HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
}

# Arbiters (judges, fund manager) run cooler than analysts and debaters
DEEP_TEMPERATURE = 0.1
QUICK_TEMPERATURE = 0.3

# Per response; longer answers are continued turn by turn by the executor
MAX_OUTPUT_TOKENS = 32768

# USD per 1M tokens as (input, output)
MODEL_PRICING: Dict[str, Tuple[float, float]] = {
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-flash-lite": (0.10, 0.40),
    "gemini-2.5-pro": (1.25, 10.00),
    "gemini-3-pro-preview": (2.00, 12.00),
}
# Used for models missing from the table; priced like the most expensive entry
DEFAULT_PRICING: Tuple[float, float] = (2.00, 12.00)


def estimate_cost(model_name: Optional[str], usage: Optional[Mapping[str, Any]]) -> float:
    """
    Estimate the USD cost of one model call from its usage metadata.

    Args:
        model_name: Model the call was made against
        usage: LangChain `usage_metadata` (input_tokens / output_tokens), may be None

    Returns:
        Cost in USD, 0.0 when no usage was reported
    """
    if not usage:
        return 0.0
    input_price, output_price = MODEL_PRICING.get(model_name or "", DEFAULT_PRICING)
    input_tokens = usage.get("input_tokens") or 0
    output_tokens = usage.get("output_tokens") or 0
    return (input_tokens * input_price + output_tokens * output_price) / 1_000_000


def rate_limiter_for_rpm(rpm: int) -> InMemoryRateLimiter:
    """
    Token-bucket limiter for a Gemini tier (15 RPM free, 360 or 1000 paid).

    Runs at 80% of the tier's rate. The bucket holds 10% of a minute's
    requests (at least 5) so the five analysts can start together.
    """
    rps = rpm / 60.0 * 0.8
    max_bucket = max(5, int(rpm * 0.1))
    logger.info("rate_limiter_configured", rpm=rpm, rps=round(rps, 2), bucket_size=max_bucket)
    return InMemoryRateLimiter(
        requests_per_second=rps,
        check_every_n_seconds=0.1,
        max_bucket_size=max_bucket
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> InMemoryRateLimiter:
    return rate_limiter_for_rpm(config.gemini_rpm_limit)


def build_chat_model(
    model_name: str,
    temperature: float,
    callbacks: Optional[List[BaseCallbackHandler]] = None
) -> BaseChatModel:
    logger.info(
        "chat_model_initialized",
        model=model_name,
        temperature=temperature,
        timeout=config.api_timeout,
        retries=config.api_retry_attempts
    )
    return ChatGoogleGenerativeAI(
        model=model_name,
        temperature=temperature,
        timeout=config.api_timeout,
        max_retries=config.api_retry_attempts,
        safety_settings=SAFETY_SETTINGS,
        rate_limiter=get_rate_limiter(),
        max_output_tokens=MAX_OUTPUT_TOKENS,
        callbacks=callbacks or []
    )


@lru_cache(maxsize=None)
def get_chat_model(model_name: Optional[str] = None) -> BaseChatModel:
    """
    Model factory used by the default executor, cached per name.

    `None` resolves to the quick model. The deep model gets the arbiter
    temperature.
    """
    name = model_name or config.quick_think_llm
    temperature = DEEP_TEMPERATURE if name == config.deep_think_llm else QUICK_TEMPERATURE
    return build_chat_model(name, temperature)
