from supabase import Client
from app.core.exceptions import InvalidStateError
from app.modules.builds import project_locks
from app.modules.projects.service import ProjectService
from app.modules.templates.config_resolver import resolve
from app.modules.templates.local_storage import ROOT_DOCUMENT, TemplateStorage, get_template_storage
from app.modules.templates.renderer import TemplateRenderer, template_renderer
from app.modules.templates.service import TemplateService
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class BuildService:
    """
    Materializes a project's deployable site: the template's current files with
    index.html rendered against the project's resolved configuration.

    Reads projects and templates only; writes nothing but builds/{project_id}.
    """

    def __init__(
        self,
        supabase: Client,
        storage: Optional[TemplateStorage] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.storage = storage or get_template_storage()
        self.renderer = renderer or template_renderer
        self.project_service = ProjectService(supabase)
        self.template_service = TemplateService(supabase, storage=self.storage, renderer=self.renderer)

    def build_project(self, project_id: str) -> str:
        """Build the project from scratch and return the absolute build directory."""
        project = self.project_service.get_project(project_id)
        template = self.template_service.get_template(project.template_id)
        if not template.file_path:
            raise InvalidStateError("Template has no uploaded files")

        source_dir = self.storage.get_absolute_path(template.file_path)
        with project_locks.hold(project_id):
            build_dir = self.storage.reset_build_dir(project_id, source_dir)

            config = resolve(template.config_schema, project.config)

            # Asset paths stay relative so the deployed bundle is self-contained
            if (build_dir / ROOT_DOCUMENT).is_file():
                html = self.renderer.render(build_dir, config)
                self.storage.write_build_file(project_id, ROOT_DOCUMENT, html)

        logger.info(f"Built project {project_id} from template {template.id} v{template.version}")
        return str(build_dir)
