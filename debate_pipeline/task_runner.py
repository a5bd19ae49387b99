"""
Failure-isolated execution of agent tasks.

`TaskRunner.run_tasks` is the resilience guarantee of the analyst stage: every
submitted task yields exactly one AgentTaskResult, whatever happens to its
siblings.
"""

import asyncio
from datetime import datetime
from typing import List, Sequence

import structlog

from debate_pipeline.executor import AgentExecutor, AgentRequest, AgentRunResult, ExecutionStatus
from debate_pipeline.models import AgentTask, AgentTaskResult, TaskStatus

logger = structlog.get_logger(__name__)


def to_request(task: AgentTask) -> AgentRequest:
    return AgentRequest(
        prompt=task.prompt,
        model=task.model_override,
        max_turns=task.max_turns,
        timeout=task.timeout,
        max_budget_usd=task.budget_cap,
    )


def _task_status(run: AgentRunResult) -> TaskStatus:
    if run.status is ExecutionStatus.SUCCESS:
        return TaskStatus.SUCCESS
    if run.status is ExecutionStatus.TIMEOUT:
        return TaskStatus.TIMEOUT
    return TaskStatus.ERROR


def build_task_result(task: AgentTask, run: AgentRunResult, started_at: datetime) -> AgentTaskResult:
    """Map an executor result onto the task that produced it."""
    status = _task_status(run)
    error_message = None
    if status is not TaskStatus.SUCCESS:
        error_message = run.error_message or run.status.value
    return AgentTaskResult(
        id=task.id,
        role_label=task.role_label,
        started_at=started_at,
        ended_at=datetime.now(),
        status=status,
        output_text=run.output_text if status is TaskStatus.SUCCESS else "",
        error_message=error_message,
        cost_usd=run.cost_usd,
        num_turns=run.num_turns,
    )


class TaskRunner:
    """
    Runs AgentTasks against an executor, converting every failure into a result.

    No fan-out limit is applied; each task's own timeout and budget bound the
    executor instead.
    """

    def __init__(self, executor: AgentExecutor):
        self.executor = executor

    async def run_task(self, task: AgentTask) -> AgentTaskResult:
        """
        Run one task in isolation.

        Returns:
            The task's result. Executor exceptions become status=error,
            executor-reported timeouts become status=timeout.
        """
        started_at = datetime.now()
        try:
            run = await self.executor.execute(to_request(task))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "agent_task_failed",
                task_id=task.id,
                role=task.role_label,
                error_type=type(e).__name__,
                error=str(e)
            )
            return AgentTaskResult(
                id=task.id,
                role_label=task.role_label,
                started_at=started_at,
                ended_at=datetime.now(),
                status=TaskStatus.ERROR,
                error_message=str(e) or type(e).__name__,
            )

        result = build_task_result(task, run, started_at)
        log = logger.info if result.succeeded else logger.warning
        log(
            "agent_task_finished",
            task_id=task.id,
            role=task.role_label,
            status=str(result.status),
            turns=result.num_turns,
            cost_usd=round(result.cost_usd, 4),
            duration_s=round(result.duration_seconds, 1)
        )
        return result

    async def run_required(self, task: AgentTask) -> AgentTaskResult:
        """
        Run a task whose stage cannot continue without it (judges, trader, manager).

        Executor exceptions propagate to the caller. A timeout or budget
        breach still produces a result, whose empty output parses to defaults.
        """
        started_at = datetime.now()
        run = await self.executor.execute(to_request(task))
        result = build_task_result(task, run, started_at)
        if not result.succeeded:
            logger.warning(
                "required_task_degraded",
                task_id=task.id,
                role=task.role_label,
                status=str(result.status),
                error=result.error_message
            )
        else:
            logger.info(
                "agent_task_finished",
                task_id=task.id,
                role=task.role_label,
                status=str(result.status),
                turns=result.num_turns,
                cost_usd=round(result.cost_usd, 4),
                duration_s=round(result.duration_seconds, 1)
            )
        return result

    async def run_tasks(self, tasks: Sequence[AgentTask]) -> List[AgentTaskResult]:
        """
        Run all tasks concurrently.

        Args:
            tasks: Tasks to submit; ids should be unique

        Returns:
            One result per task, in the same order as `tasks`
        """
        if not tasks:
            return []

        logger.info("running_agent_tasks", task_count=len(tasks))
        results = await asyncio.gather(*(self.run_task(t) for t in tasks))

        succeeded = sum(1 for r in results if r.succeeded)
        logger.info(
            "agent_tasks_completed",
            total=len(tasks),
            success=succeeded,
            failed=len(tasks) - succeeded,
        )
        return list(results)
