"""
Custom exception hierarchy for the debate pipeline.

Per-task failures (timeouts, budget breaches, provider errors inside the
analyst fan-out or a debate turn) never surface as exceptions: they are turned
into degraded results. The classes below cover what does propagate.

Exception Hierarchy:
    DebatePipelineError (base)
    ├── ConfigurationError
    ├── AgentExecutionError
    ├── PipelineAbortedError
    └── ReportStorageError
"""

from typing import Any, Dict, Optional


def _with_context(kwargs: Dict[str, Any], **context: Any) -> Dict[str, Any]:
    """Merge non-empty context values into the `details` kwarg."""
    details = dict(kwargs.pop("details", None) or {})
    details.update({key: value for key, value in context.items() if value})
    return details


class DebatePipelineError(Exception):
    """
    Base exception for all debate pipeline errors.

    Attributes:
        message: Human-readable error description
        details: Context such as fund, stage, task id or file path
        cause: Original exception if this wraps another error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append("[" + ", ".join(f"{k}={v}" for k, v in self.details.items()) + "]")
        if self.cause is not None:
            parts.append(f"(caused by: {type(self.cause).__name__}: {self.cause})")
        return " ".join(parts)


class ConfigurationError(DebatePipelineError):
    """
    Raised when pipeline configuration is invalid.

    Examples:
        - Debate rounds outside the supported range
        - Non-positive stage timeout
        - Unparseable numeric environment variable
        - No prompt registered for a role
    """

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, details=_with_context(kwargs, config_key=config_key), **kwargs)


class AgentExecutionError(DebatePipelineError):
    """
    Raised by an AgentExecutor when a generation call fails outright.

    Timeouts, budget breaches and max-turn breaches are reported through the
    executor's result status instead; this covers provider errors, transport
    failures and similar.
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        session_id: Optional[str] = None,
        **kwargs
    ):
        details = _with_context(kwargs, model=model, session_id=session_id)
        super().__init__(message, details=details, **kwargs)


class PipelineAbortedError(DebatePipelineError):
    """
    A stage failed fatally and the run was abandoned.

    Only single-task stages (investment judge, trader, risk judge, fund
    manager) can abort a run. Callers should report this distinctly from a
    run that completed with degraded inputs.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        fund_id: Optional[str] = None,
        **kwargs
    ):
        self.stage = stage
        self.fund_id = fund_id
        details = _with_context(kwargs, stage=stage, fund_id=fund_id)
        super().__init__(message, details=details, **kwargs)


class ReportStorageError(DebatePipelineError):
    """Raised when a rendered report or JSON record cannot be written."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, details=_with_context(kwargs, path=path), **kwargs)
