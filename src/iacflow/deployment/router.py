"""
Deployment webhook router.

Receives completion callbacks from the remote execution service and
exposes the current result of a task for polling.
"""

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from iacflow.deployment.manager import DeployService
from iacflow.deployment.models import CallbackOutcome, DeployOperation, DeployResult

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Deployment - Callbacks"])


def get_deploy_service(request: Request) -> DeployService:
    """Engine instance attached to the application at start-up."""
    return request.app.state.deploy_service


def _apply(
    service: DeployService, task_id: str, outcome: CallbackOutcome, operation: DeployOperation
) -> dict[str, Any]:
    result = service.correlator.apply_callback(task_id, outcome, operation)
    # duplicates and unknown tasks are acknowledged so the sender stops retrying
    return {
        "task_id": task_id,
        "operation": operation.value,
        "applied": result is not None,
        "status": result.status.value if result and result.status else None,
    }


@router.post("/webhook/deploy/{task_id}", status_code=status.HTTP_200_OK)
async def deploy_callback(
    task_id: str,
    outcome: CallbackOutcome,
    service: Annotated[DeployService, Depends(get_deploy_service)],
) -> dict[str, Any]:
    """Completion of an asynchronous deploy."""
    logger.info("webhook.deploy.received", task_id=task_id, success=outcome.command_successful)
    return _apply(service, task_id, outcome, DeployOperation.DEPLOY)


@router.post("/webhook/destroy/{task_id}", status_code=status.HTTP_200_OK)
async def destroy_callback(
    task_id: str,
    outcome: CallbackOutcome,
    service: Annotated[DeployService, Depends(get_deploy_service)],
) -> dict[str, Any]:
    """Completion of an asynchronous destroy."""
    logger.info("webhook.destroy.received", task_id=task_id, success=outcome.command_successful)
    return _apply(service, task_id, outcome, DeployOperation.DESTROY)


@router.get("/tasks/{task_id}", response_model=DeployResult)
async def get_task_result(
    task_id: str,
    service: Annotated[DeployService, Depends(get_deploy_service)],
    operation: DeployOperation | None = None,
) -> DeployResult:
    """Current result of the latest (or the given) operation of a task."""
    result = service.get_result(task_id, operation)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No operation registered for task {task_id}",
        )
    return result
