"""In-memory store of task runs for the host.

Runs execute as background asyncio tasks.  The host allows one active run
at a time; a second submission while one is running is rejected.  Only the
``max_finished`` most recent finished runs are kept; older ones are evicted
together with their workspaces and screenshots.
"""

from __future__ import annotations

import asyncio

from autopilot.core.task.models import Task
from autopilot.core.task.runner import RunHandle, TaskRunner
from autopilot.utils.exceptions import TaskConflictError, TaskNotFoundError
from autopilot.utils.logging import get_logger

logger = get_logger("task.store")


class TaskStore:
    """Tracks submitted tasks and their :class:`RunHandle`."""

    def __init__(self, runner: TaskRunner, max_active: int = 1, max_finished: int = 50):
        self.runner = runner
        self.max_active = max_active
        self.max_finished = max(0, max_finished)
        # Insertion order doubles as submission order for eviction.
        self._handles: dict[str, RunHandle] = {}
        self._jobs: dict[str, asyncio.Task] = {}

    def active(self) -> list[RunHandle]:
        return [h for h in self._handles.values() if not h.done]

    def submit(self, task: Task) -> RunHandle:
        """Start *task* in the background.

        Raises :class:`TaskConflictError` when the active-run limit is reached.
        """
        active = self.active()
        if len(active) >= self.max_active:
            raise TaskConflictError(
                f"Task {active[0].task.id} is still running; cancel it or wait for it to finish."
            )
        handle = RunHandle(task)
        self._handles[task.id] = handle
        self._jobs[task.id] = asyncio.create_task(self._run(handle), name=f"task-{task.id}")
        logger.info("task_submitted", task_id=task.id)
        return handle

    async def _run(self, handle: RunHandle) -> None:
        try:
            await self.runner.run(handle.task, handle)
        except Exception as exc:
            handle.error = str(exc)
            logger.exception("task_crashed", task_id=handle.task.id)
        finally:
            self._jobs.pop(handle.task.id, None)
            self._evict_finished()

    def _evict_finished(self) -> None:
        finished = [task_id for task_id, h in self._handles.items() if h.done]
        excess = len(finished) - self.max_finished
        for task_id in finished[:max(0, excess)]:
            del self._handles[task_id]
            logger.info("task_evicted", task_id=task_id)

    def get(self, task_id: str) -> RunHandle:
        handle = self._handles.get(task_id)
        if handle is None:
            raise TaskNotFoundError(task_id)
        return handle

    def cancel(self, task_id: str) -> RunHandle:
        handle = self.get(task_id)
        handle.cancel()
        logger.info("task_cancel_requested", task_id=task_id, done=handle.done)
        return handle

    async def wait(self, task_id: str) -> RunHandle:
        """Wait for the background job of *task_id* to finish."""
        handle = self.get(task_id)
        job = self._jobs.get(task_id)
        if job is not None:
            await job
        return handle

    async def shutdown(self) -> None:
        """Cancel every active run and wait for the jobs to settle."""
        for handle in self.active():
            handle.cancel()
        jobs = [job for job in self._jobs.values() if not job.done()]
        if jobs:
            await asyncio.gather(*jobs, return_exceptions=True)
