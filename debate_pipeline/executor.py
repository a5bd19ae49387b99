"""
AgentExecutor interface and the default LangChain-backed implementation.

The pipeline only ever asks for one capability: run a bounded, abortable
text-generation task and get back text plus cost metadata. Anything that
implements `AgentExecutor.execute` can stand in, which is how the tests drive
the whole pipeline with canned text.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage

from debate_pipeline.exceptions import AgentExecutionError
from debate_pipeline.llms import estimate_cost

logger = structlog.get_logger(__name__)

CONTINUE_PROMPT = "Continue exactly where you left off. Do not repeat earlier text."
TRUNCATED_FINISH_REASONS = {"MAX_TOKENS", "length"}


class ExecutionStatus(Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    BUDGET_EXCEEDED = "budget_exceeded"
    MAX_TURNS_EXCEEDED = "max_turns_exceeded"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class AgentRequest:
    prompt: str
    model: Optional[str] = None
    max_turns: int = 10
    timeout: float = 300.0
    max_budget_usd: Optional[float] = None
    resume_session_id: Optional[str] = None


@dataclass(frozen=True)
class AgentRunResult:
    status: ExecutionStatus
    output_text: str = ""
    cost_usd: float = 0.0
    num_turns: int = 0
    session_id: str = ""
    error_message: Optional[str] = None


class AgentExecutor(Protocol):
    """
    Runs one bounded generation task.

    Implementations must support independent concurrent calls, honor the
    request's hard timeout, and keep no mutable state shared across calls.
    Failures the caller can act on (timeout, budget, max turns) are reported
    via `AgentRunResult.status`; anything else may be raised.

    `resume_session_id` is a correlation id only: it is echoed back as the
    result's `session_id` and no earlier conversation is replayed. Each call
    starts from the request prompt alone.
    """

    async def execute(self, request: AgentRequest) -> AgentRunResult:
        ...


@dataclass
class _Conversation:
    """Progress of a single execute() call, readable after a timeout."""
    parts: List[str] = field(default_factory=list)
    turns: int = 0
    cost_usd: float = 0.0


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Newer Gemini models return a list of content parts
    chunks = []
    for part in content or []:
        if isinstance(part, str):
            chunks.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            chunks.append(str(part.get("text", "")))
    return "".join(chunks)


def _was_truncated(message: BaseMessage) -> bool:
    metadata = getattr(message, "response_metadata", None) or {}
    reason = metadata.get("finish_reason")
    return str(reason) in TRUNCATED_FINISH_REASONS if reason is not None else False


class LangChainAgentExecutor:
    """
    AgentExecutor over a LangChain chat model.

    One model call is one turn. A response cut off by the output token limit is
    continued in a follow-up turn until it completes or `max_turns` is spent.
    Cost is accumulated from each response's usage metadata and checked against
    the request's budget after every turn.

    Example:
        >>> from debate_pipeline.llms import get_chat_model
        >>> executor = LangChainAgentExecutor(get_chat_model)
        >>> result = await executor.execute(AgentRequest(prompt="...", timeout=60))
    """

    def __init__(
        self,
        model_factory: Callable[[Optional[str]], BaseChatModel],
        cost_estimator: Callable[[Optional[str], Any], float] = estimate_cost,
        default_model: Optional[str] = None,
    ):
        self._model_factory = model_factory
        self._cost_estimator = cost_estimator
        self._default_model = default_model

    async def execute(self, request: AgentRequest) -> AgentRunResult:
        model_name = request.model or self._default_model
        session_id = request.resume_session_id or uuid.uuid4().hex
        conversation = _Conversation()

        try:
            status = await asyncio.wait_for(
                self._converse(request, model_name, conversation),
                timeout=request.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "agent_query_timeout",
                model=model_name,
                timeout=request.timeout,
                turns=conversation.turns
            )
            return AgentRunResult(
                status=ExecutionStatus.TIMEOUT,
                cost_usd=conversation.cost_usd,
                num_turns=conversation.turns,
                session_id=session_id,
                error_message="Query timed out",
            )

        if status is not ExecutionStatus.SUCCESS:
            logger.warning(
                "agent_query_stopped",
                model=model_name,
                status=str(status),
                turns=conversation.turns,
                cost_usd=round(conversation.cost_usd, 4)
            )
            return AgentRunResult(
                status=status,
                cost_usd=conversation.cost_usd,
                num_turns=conversation.turns,
                session_id=session_id,
                error_message=status.value,
            )

        return AgentRunResult(
            status=ExecutionStatus.SUCCESS,
            output_text="".join(conversation.parts),
            cost_usd=conversation.cost_usd,
            num_turns=conversation.turns,
            session_id=session_id,
        )

    async def _converse(
        self,
        request: AgentRequest,
        model_name: Optional[str],
        conversation: _Conversation,
    ) -> ExecutionStatus:
        if request.max_turns < 1:
            return ExecutionStatus.MAX_TURNS_EXCEEDED

        llm = self._model_factory(model_name)
        messages: List[BaseMessage] = [HumanMessage(content=request.prompt)]

        while True:
            try:
                response = await llm.ainvoke(messages)
            except Exception as e:
                raise AgentExecutionError(
                    "Model call failed",
                    model=model_name,
                    details={"turn": conversation.turns + 1},
                    cause=e
                ) from e

            conversation.turns += 1
            conversation.parts.append(_message_text(response))
            conversation.cost_usd += self._cost_estimator(
                model_name, getattr(response, "usage_metadata", None)
            )

            if request.max_budget_usd is not None and conversation.cost_usd > request.max_budget_usd:
                return ExecutionStatus.BUDGET_EXCEEDED
            if not _was_truncated(response):
                return ExecutionStatus.SUCCESS
            if conversation.turns >= request.max_turns:
                return ExecutionStatus.MAX_TURNS_EXCEEDED

            messages.extend([response, HumanMessage(content=CONTINUE_PROMPT)])
