from supabase import Client
from app.core.exceptions import NotFoundError, StorageError
from app.database.supabase_client import first_row
from app.modules.deployments.schemas import DeploymentResponse, DeploymentStatus
from app.modules.deployments.state_machine import TransitionNotAllowed, check_transition, is_terminal
from app.modules.projects.schemas import DeployTarget
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import threading
import time
import logging

logger = logging.getLogger(__name__)

_version_lock = threading.Lock()
_last_version_ms = 0


def next_version_label() -> str:
    """v{epoch_ms}, strictly increasing within the process even for same-millisecond calls."""
    global _last_version_ms
    with _version_lock:
        now_ms = int(time.time() * 1000)
        _last_version_ms = max(now_ms, _last_version_ms + 1)
        return f"v{_last_version_ms}"


class DeploymentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_deployment(
        self,
        project_id: str,
        deploy_target: DeployTarget,
        user_id: Optional[str],
    ) -> DeploymentResponse:
        """Create a new deployment record in the pending state"""
        result = self.supabase.table("deployments").insert({
            "project_id": project_id,
            "version": next_version_label(),
            "status": DeploymentStatus.PENDING.value,
            "deploy_target": deploy_target.value,
            "deployed_by": user_id,
        }).execute()

        if not result.data:
            raise StorageError("Failed to create deployment")
        return DeploymentResponse(**result.data[0])

    def get_deployment_by_id(self, deployment_id: str) -> DeploymentResponse:
        """Get deployment by ID"""
        result = self.supabase.table("deployments")\
            .select("*")\
            .eq("id", deployment_id)\
            .maybe_single()\
            .execute()
        row = first_row(result)
        if not row:
            raise NotFoundError("Deployment", deployment_id)
        return DeploymentResponse(**row)

    def transition(
        self,
        deployment_id: str,
        status: DeploymentStatus,
        deploy_url: Optional[str] = None,
        build_time: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        logs: Optional[str] = None,
    ) -> DeploymentResponse:
        """
        Move a deployment to `status`, writing the accompanying fields.
        The update is conditional on the status read beforehand, so two writers
        can never both move the same record out of a non-terminal state.
        """
        current = self.get_deployment_by_id(deployment_id)
        check_transition(current.status, status)

        now = datetime.now(timezone.utc).isoformat()
        update_data: Dict[str, Any] = {"status": status.value, "updated_at": now}
        if deploy_url is not None:
            update_data["deploy_url"] = deploy_url
        if build_time is not None:
            update_data["build_time"] = build_time
        if metadata is not None:
            update_data["metadata"] = metadata
        if logs is not None:
            update_data["logs"] = logs
        if is_terminal(status):
            update_data["completed_at"] = now

        result = self.supabase.table("deployments")\
            .update(update_data)\
            .eq("id", deployment_id)\
            .eq("status", current.status.value)\
            .execute()

        if result.data:
            updated = DeploymentResponse(**result.data[0])
        else:
            # Empty response: either the row moved underneath us or PostgREST returned no representation
            updated = self.get_deployment_by_id(deployment_id)
            if updated.status != status:
                raise TransitionNotAllowed(updated.status, status)
        logger.info(f"Deployment {deployment_id}: {current.status.value} -> {status.value}")
        return updated

    def list_deployments_by_project(self, project_id: str) -> List[DeploymentResponse]:
        """List all deployments for a project, newest first"""
        result = self.supabase.table("deployments")\
            .select("*")\
            .eq("project_id", project_id)\
            .order("created_at", desc=True)\
            .execute()
        return [DeploymentResponse(**d) for d in result.data or []]
