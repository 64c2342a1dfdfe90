from fastapi import APIRouter, Depends, Request
from app.database.supabase_client import get_supabase
from app.modules.builds.service import BuildService
from app.modules.deployments.orchestrator import DeploymentOrchestrator
from app.modules.deployments.schemas import DeploymentResponse
from app.modules.deployments.service import DeploymentService
from app.modules.projects.schemas import ProjectResponse, ProjectConfigUpdate, ProjectBuildResponse
from app.modules.projects.service import ProjectService
from app.modules.templates.service import TemplateService
from app.core.dependencies import get_current_user
from supabase import Client
from pathlib import Path
from typing import List, Dict

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(supabase: Client = Depends(get_supabase)) -> ProjectService:
    return ProjectService(supabase)


def get_build_service(supabase: Client = Depends(get_supabase)) -> BuildService:
    return BuildService(supabase)


def get_deployment_orchestrator(
    request: Request,
    build_service: BuildService = Depends(get_build_service),
    supabase: Client = Depends(get_supabase),
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(supabase, request.app.state.deploy_adapters, build_service=build_service)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
):
    """Get project by ID"""
    return service.get_project(project_id)


@router.put("/{project_id}/config", response_model=ProjectResponse)
async def update_project_config(
    project_id: str,
    config_data: ProjectConfigUpdate,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase),
):
    """Replace the project's configuration overrides; rejected if they do not fit the template schema"""
    return service.update_config(project_id, config_data.config, TemplateService(supabase))


# Build and deploy do blocking file and network I/O, so they run in the threadpool
@router.post("/{project_id}/build", response_model=ProjectBuildResponse)
def build_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    service: BuildService = Depends(get_build_service),
):
    """Rebuild the project's site from its template and configuration"""
    build_dir = service.build_project(project_id)
    return ProjectBuildResponse(
        project_id=project_id,
        build_dir=build_dir,
        file_count=sum(1 for p in Path(build_dir).rglob("*") if p.is_file()),
    )


@router.post("/{project_id}/deploy", response_model=DeploymentResponse, status_code=201)
def deploy_project(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    orchestrator: DeploymentOrchestrator = Depends(get_deployment_orchestrator),
):
    """
    Build the project and publish it to its deploy target.
    Returns the finished deployment record; a failed attempt is still recorded
    and the error is returned to the caller.
    """
    return orchestrator.trigger_deploy(project_id, user_data["id"])


@router.get("/{project_id}/deployments", response_model=List[DeploymentResponse])
async def list_project_deployments(
    project_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
    supabase: Client = Depends(get_supabase),
):
    """List all deployments for a project, newest first"""
    service.get_project(project_id)
    return DeploymentService(supabase).list_deployments_by_project(project_id)
