"""
Asynchronous API routes for batch analysis.

These endpoints use Celery for task queue management and are suitable
for batch workloads that should not hold an HTTP connection open.
"""

from uuid import uuid4

import structlog
from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, status

from sentiment_service.api.dependencies import get_settings
from sentiment_service.api.models import (
    AnalyzeResponse,
    BatchSubmitRequest,
    BatchSubmitResponse,
    ErrorResponse,
    TaskStatusResponse,
)
from sentiment_service.config import Settings
from sentiment_service.exceptions import InvalidInput
from sentiment_service.tasks.analysis_tasks import analyze_text_task
from sentiment_service.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/batch",
    response_model=BatchSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit batch analysis requests (asynchronous)",
    description="""
    Submit up to 100 texts for asynchronous analysis.

    Returns task IDs that can be used to check status and retrieve results.
    Every text is validated before any task is queued.
    """,
    responses={
        202: {"description": "Batch submitted successfully"},
        400: {"model": ErrorResponse, "description": "A text is empty or too long"},
        422: {"model": ErrorResponse, "description": "Invalid request format or batch too large"},
    },
)
async def submit_batch(
    batch_request: BatchSubmitRequest,
    settings: Settings = Depends(get_settings),
) -> BatchSubmitResponse:
    for index, item in enumerate(batch_request.requests):
        if not item.text.strip():
            raise InvalidInput(
                f"Text at index {index} must not be empty",
                details={"index": index},
            )
        if len(item.text) > settings.MAX_TEXT_LENGTH:
            raise InvalidInput(
                f"Text at index {index} exceeds maximum length of {settings.MAX_TEXT_LENGTH} characters",
                details={"index": index, "length": len(item.text)},
            )

    task_ids = []
    for item in batch_request.requests:
        result = analyze_text_task.delay(item.text, item.request_id)  # type: ignore[attr-defined]
        task_ids.append(result.id)

    batch_id = str(uuid4())
    logger.info("Batch submitted", batch_id=batch_id, task_count=len(task_ids))

    return BatchSubmitResponse(
        batch_id=batch_id,
        task_count=len(task_ids),
        task_ids=task_ids,
    )


@router.get(
    "/task/{task_id}",
    response_model=TaskStatusResponse,
    summary="Check task status",
    description="""
    Check the status of an async analysis task.

    Possible states:
    - PENDING: Task is waiting in queue (or unknown)
    - STARTED: Task is being processed
    - SUCCESS: Task completed (result available)
    - FAILURE: Task failed (error available)
    - RETRY: Task is waiting to be retried
    """,
    responses={
        200: {"description": "Task status retrieved"},
        404: {"description": "Task not found"},
    },
)
async def get_task_status(task_id: str) -> TaskStatusResponse:
    async_result = AsyncResult(task_id, app=celery_app)
    state = async_result.state

    # PENDING is also Celery's answer for ids it has never seen
    if state == "PENDING" and not async_result.info:
        logger.warning("Task not found", task_id=task_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )

    if state == "SUCCESS":
        return TaskStatusResponse(
            task_id=task_id,
            status=state,
            result=AnalyzeResponse.model_validate(async_result.result),
        )

    if state == "FAILURE":
        error_info = str(async_result.info) if async_result.info else "Unknown error"
        logger.warning("Task failed", task_id=task_id, error=error_info)
        return TaskStatusResponse(task_id=task_id, status=state, error=error_info)

    return TaskStatusResponse(task_id=task_id, status=state)
