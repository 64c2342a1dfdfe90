from supabase import Client
from app.core.exceptions import InvalidStateError
from app.modules.activity_logs.service import ActivityLogService
from app.modules.builds import project_locks
from app.modules.builds.service import BuildService
from app.modules.deployments.adapters import DeployAdapter
from app.modules.deployments.schemas import DeploymentResponse, DeploymentStatus
from app.modules.deployments.service import DeploymentService
from app.modules.projects.schemas import DeployTarget
from app.modules.projects.service import ProjectService
from app.modules.templates.service import TemplateService
from typing import Mapping, Optional
import time
import logging

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class DeploymentOrchestrator:
    """
    Runs one deploy attempt end to end: record it, build the project, hand the
    build to the provider adapter for the project's target, and record the outcome.

    The deployment record always ends in exactly one terminal state. The project
    row is only touched after the provider reports success.
    """

    def __init__(
        self,
        supabase: Client,
        adapters: Mapping[DeployTarget, DeployAdapter],
        build_service: Optional[BuildService] = None,
    ):
        self.adapters = adapters
        self.build_service = build_service or BuildService(supabase)
        self.project_service = ProjectService(supabase)
        self.template_service = TemplateService(supabase, storage=self.build_service.storage)
        self.deployment_service = DeploymentService(supabase)
        self.activity = ActivityLogService(supabase)

    def trigger_deploy(self, project_id: str, user_id: Optional[str]) -> DeploymentResponse:
        project = self.project_service.get_project(project_id)
        if not project.deploy_target:
            raise InvalidStateError("Project has no deploy target configured")
        self.template_service.get_template(project.template_id)
        target = project.deploy_target

        with project_locks.hold(project_id):
            deployment = self.deployment_service.create_deployment(project_id, target, user_id)
            started = time.monotonic()

            try:
                self.deployment_service.transition(deployment.id, DeploymentStatus.BUILDING)
                build_dir = self.build_service.build_project(project_id)
                adapter = self.adapters.get(target)
                if adapter is None:
                    raise InvalidStateError(f"Deploy target '{target.value}' is not supported")
                result = adapter.deploy(build_dir, project.slug)

                build_time = _elapsed_ms(started)
                deployment = self.deployment_service.transition(
                    deployment.id,
                    DeploymentStatus.SUCCESS,
                    deploy_url=result.url,
                    build_time=build_time,
                    metadata={"remote_deployment_id": result.remote_deployment_id, **result.metadata},
                    logs=f"Build completed in {build_time}ms. Deployed to {result.url}",
                )
            except Exception as e:
                build_time = _elapsed_ms(started)
                logger.error(f"Deployment {deployment.id} of project {project_id} failed: {e}")
                try:
                    self.deployment_service.transition(
                        deployment.id,
                        DeploymentStatus.FAILED,
                        build_time=build_time,
                        logs=f"Deployment failed after {build_time}ms: {e}",
                    )
                except Exception as status_err:
                    logger.error(f"Failed to set deployment {deployment.id} status to failed: {status_err}")
                raise

            # The deployment is already terminal here
            try:
                self.project_service.mark_deployed(project_id, result.url)
            except Exception as e:
                logger.error(f"Failed to record deploy URL on project {project_id}: {e}")

        self.activity.log(
            user_id,
            "project.deployed",
            entity_type="project",
            entity_id=project_id,
            project_id=project_id,
            details=f"Deployed to {target.value}: {result.url}",
        )
        logger.info(f"Deployment {deployment.id} of project {project_id} succeeded in {build_time}ms")
        return deployment
