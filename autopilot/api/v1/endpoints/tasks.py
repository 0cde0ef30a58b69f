"""Task submission, status and cancellation endpoints.

Tasks run in the background; clients poll ``GET /tasks/{task_id}`` and may
stop a run with ``POST /tasks/{task_id}/cancel``.  Only one task may be
active at a time.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from autopilot.api.v1.schemas.common import ErrorResponse
from autopilot.api.v1.schemas.task import (
    ActionInfo,
    EvaluationInfo,
    TaskStatusResponse,
    TaskSubmitRequest,
    TaskSubmitResponse,
)
from autopilot.core.task.models import Task
from autopilot.core.task.runner import RunHandle
from autopilot.core.task.store import TaskStore
from autopilot.dependencies import get_task_store

router = APIRouter()


def _status_response(handle: RunHandle) -> TaskStatusResponse:
    task = handle.task
    outcome = handle.outcome
    response = TaskStatusResponse(task_id=task.id, text=task.text, status="matching")

    if handle.error is not None:
        response.status = "error"
        response.last_error = handle.error

    if outcome is not None:
        response.mode = outcome.mode.value
        response.summary = outcome.summary
        if outcome.skill_result is not None:
            response.status = outcome.skill_result.status
            response.deep_link = outcome.skill_result.deep_link

    ws = handle.workspace
    if ws is not None:
        if handle.error is None:
            response.status = ws.state.value
        response.step_index = ws.step_index
        response.plan = list(ws.plan)
        response.completed_subgoals = list(ws.completed_subgoals)
        response.notes = list(ws.notes)
        response.failure_reason = ws.failure_reason.value if ws.failure_reason else None
        response.last_error = ws.last_error or response.last_error
        response.summary = ws.summary or response.summary
        response.actions = [
            ActionInfo(
                step=record.step,
                kind=record.action.kind.value,
                target=record.target,
                parameters=record.parameters,
                description=record.action.description,
                timestamp=record.timestamp,
            )
            for record in ws.action_history
        ]
        response.evaluations = [
            EvaluationInfo(step=e.step, verdict=e.verdict.value, rationale=e.rationale)
            for e in ws.evaluation_history
        ]
    return response


@router.post(
    "/tasks",
    response_model=TaskSubmitResponse,
    status_code=202,
    responses={409: {"model": ErrorResponse, "description": "Another task is running"}},
    summary="Submit a task",
    description="Start a task in the background.  Only one task may run at a time.",
)
async def submit_task(
    request: TaskSubmitRequest,
    store: TaskStore = Depends(get_task_store),
) -> TaskSubmitResponse:
    task = Task(
        text=request.text,
        preferred_apps=tuple(request.preferred_apps),
        context=request.context,
    )
    handle = store.submit(task)
    return TaskSubmitResponse(task_id=handle.task.id, status="submitted")


@router.get(
    "/tasks/{task_id}",
    response_model=TaskStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get task status",
    description="Current state, plan, notes and the action/evaluation history of a task.",
)
async def get_task_status(
    task_id: str,
    store: TaskStore = Depends(get_task_store),
) -> TaskStatusResponse:
    return _status_response(store.get(task_id))


@router.post(
    "/tasks/{task_id}/cancel",
    response_model=TaskStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Cancel a task",
    description=(
        "Ask a running task to stop.  The run stops at its next check point; "
        "an action already sent to the device is not undone."
    ),
)
async def cancel_task(
    task_id: str,
    store: TaskStore = Depends(get_task_store),
) -> TaskStatusResponse:
    return _status_response(store.cancel(task_id))
