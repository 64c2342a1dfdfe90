from supabase import Client
from app.core.exceptions import NotFoundError, ValidationError
from app.database.supabase_client import first_row
from app.modules.projects.schemas import ProjectResponse, ProjectStatus
from app.modules.templates.config_resolver import validate_overrides
from app.modules.templates.service import TemplateService
from datetime import datetime, timezone
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_project(self, project_id: str) -> ProjectResponse:
        """Get project by ID"""
        result = self.supabase.table("projects")\
            .select("*")\
            .eq("id", project_id)\
            .maybe_single()\
            .execute()
        row = first_row(result)
        if not row:
            raise NotFoundError("Project", project_id)
        return ProjectResponse(**row)

    def update_config(
        self,
        project_id: str,
        overrides: Dict[str, Any],
        template_service: TemplateService,
    ) -> ProjectResponse:
        """Replace the project's config overrides after checking them against the template schema"""
        project = self.get_project(project_id)
        template = template_service.get_template(project.template_id)
        issues = validate_overrides(template.config_schema, overrides)
        if issues:
            raise ValidationError("Invalid project configuration", issues)

        result = self.supabase.table("projects")\
            .update({"config": overrides, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", project_id)\
            .execute()
        if result.data:
            return ProjectResponse(**result.data[0])
        return self.get_project(project_id)

    def mark_deployed(self, project_id: str, deploy_url: str) -> None:
        """Record the URL of a successful deployment on the project"""
        self.supabase.table("projects")\
            .update({
                "deploy_url": deploy_url,
                "status": ProjectStatus.DEPLOYED.value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })\
            .eq("id", project_id)\
            .execute()
        logger.info(f"Project {project_id} now served at {deploy_url}")
