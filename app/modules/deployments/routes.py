from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.deployments.schemas import DeploymentResponse, DeploymentLogsResponse
from app.modules.deployments.service import DeploymentService
from app.modules.deployments.state_machine import is_terminal
from app.core.dependencies import get_current_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/deployments", tags=["deployments"])


def get_deployment_service(supabase: Client = Depends(get_supabase)) -> DeploymentService:
    return DeploymentService(supabase)


@router.get("/{deployment_id}", response_model=DeploymentResponse)
async def get_deployment(
    deployment_id: str,
    user_data: Dict = Depends(get_current_user),
    service: DeploymentService = Depends(get_deployment_service),
):
    """Get deployment by ID"""
    return service.get_deployment_by_id(deployment_id)


@router.get("/{deployment_id}/logs", response_model=DeploymentLogsResponse)
async def get_deployment_logs(
    deployment_id: str,
    user_data: Dict = Depends(get_current_user),
    service: DeploymentService = Depends(get_deployment_service),
):
    """
    Poll for deployment logs.
    Returns the current log text and status; in_progress stays true until the
    deployment reaches success or failed.
    """
    deployment = service.get_deployment_by_id(deployment_id)
    return DeploymentLogsResponse(
        deployment_id=deployment.id,
        logs=deployment.logs or "",
        status=deployment.status,
        in_progress=not is_terminal(deployment.status),
    )
