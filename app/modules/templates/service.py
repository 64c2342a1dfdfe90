from supabase import Client
from botocore.exceptions import ClientError
from app.core.exceptions import (
    ConflictError, InvalidStateError, NotFoundError, StorageError, ValidationError,
)
from app.database.supabase_client import first_row
from app.modules.activity_logs.service import ActivityLogService
from app.modules.templates.bundle_validator import BundleValidator
from app.modules.templates.config_resolver import resolve
from app.modules.templates.local_storage import TemplateStorage, get_template_storage
from app.modules.templates.renderer import TemplateRenderer, template_renderer
from app.modules.templates.s3_storage import S3BundleArchive, get_bundle_archive
from app.modules.templates.schema_parser import parse_config_schema
from app.modules.templates.schemas import (
    TemplateCreate, TemplateCloneRequest, TemplateResponse, TemplateStatus,
    TemplateVersionResponse, TemplateUploadResponse, TemplateFilesResponse,
)
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

ASSET_ROUTE = "/api/v1/templates/{template_id}/assets"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TemplateService:
    def __init__(
        self,
        supabase: Client,
        storage: Optional[TemplateStorage] = None,
        archive: Optional[S3BundleArchive] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.supabase = supabase
        self.storage = storage or get_template_storage()
        self.archive = archive
        self.renderer = renderer or template_renderer
        self.validator = BundleValidator()
        self.activity = ActivityLogService(supabase)

    def get_template(self, template_id: str) -> TemplateResponse:
        """Get template by ID."""
        result = self.supabase.table("templates").select("*").eq("id", template_id).maybe_single().execute()
        row = first_row(result)
        if not row:
            raise NotFoundError("Template", template_id)
        return TemplateResponse(**row)

    def list_templates(self, limit: int = 10, offset: int = 0) -> List[TemplateResponse]:
        result = self.supabase.table("templates")\
            .select("*")\
            .order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [TemplateResponse(**t) for t in result.data or []]

    def create_template(self, template_data: TemplateCreate) -> TemplateResponse:
        """Create a template record; files are attached later with upload_bundle."""
        self._ensure_slug_available(template_data.slug)
        result = self.supabase.table("templates").insert({
            "id": str(uuid.uuid4()),
            "name": template_data.name,
            "slug": template_data.slug,
            "category": template_data.category,
            "description": template_data.description,
            "config_schema": template_data.config_schema.model_dump(mode="json") if template_data.config_schema else None,
            "status": template_data.status.value,
            "version": 0,
        }).execute()
        if not result.data:
            raise StorageError("Failed to create template")
        return TemplateResponse(**result.data[0])

    def upload_bundle(
        self,
        template_id: str,
        filename: str,
        zip_content: bytes,
        user_id: Optional[str] = None,
    ) -> TemplateUploadResponse:
        """
        Store a new version of a template's files.
        Validates the ZIP, extracts it to templates/{id}/v{n}, picks up
        config.schema.json if the bundle ships one, archives the raw ZIP to S3
        when configured, and records an immutable template_versions row.
        """
        if not filename or not filename.lower().endswith(".zip"):
            raise ValidationError("Only ZIP files are accepted")

        template = self.get_template(template_id)
        is_valid, issues = self.validator.validate(zip_content)
        if not is_valid:
            raise ValidationError("Invalid template bundle", issues)

        new_version = template.version + 1
        file_path = self.storage.save(template_id, new_version, zip_content)
        archive_path = None
        try:
            files = self.storage.list_files(template_id, new_version)
            schema = parse_config_schema(self.storage.get_absolute_path(file_path)) or template.config_schema

            if self.archive:
                try:
                    archive_path = self.archive.put_bundle(template_id, new_version, zip_content)
                except ClientError as e:
                    raise StorageError(f"Failed to archive bundle to S3: {e}") from e

            self.supabase.table("template_versions").insert({
                "template_id": template_id,
                "version": new_version,
                "file_path": file_path,
                "file_count": len(files),
                "file_size": len(zip_content),
                "archive_path": archive_path,
                "uploaded_by": user_id,
            }).execute()

            self.supabase.table("templates").update({
                "version": new_version,
                "file_path": file_path,
                "config_schema": schema.model_dump(mode="json") if schema else None,
                "updated_at": _now(),
            }).eq("id", template_id).execute()
        except Exception:
            logger.error(f"Upload of template {template_id} v{new_version} failed, removing extracted files")
            self.storage.delete_version(template_id, new_version)
            if archive_path:
                self.archive.delete_uri(archive_path)
            try:
                self.supabase.table("template_versions").delete()\
                    .eq("template_id", template_id)\
                    .eq("version", new_version)\
                    .execute()
            except Exception as cleanup_err:
                logger.warning(f"Failed to remove version row {template_id} v{new_version}: {cleanup_err}")
            raise

        self.activity.log(
            user_id,
            "template.uploaded",
            entity_type="template",
            entity_id=template_id,
            details=f"Uploaded version {new_version} ({len(files)} files)",
        )
        return TemplateUploadResponse(
            template_id=template_id,
            version=new_version,
            file_path=file_path,
            file_count=len(files),
            config_schema=schema,
            validation_issues=issues,
            message="Template bundle uploaded successfully",
        )

    def list_versions(self, template_id: str) -> List[TemplateVersionResponse]:
        self.get_template(template_id)
        result = self.supabase.table("template_versions")\
            .select("*")\
            .eq("template_id", template_id)\
            .order("version", desc=True)\
            .execute()
        return [TemplateVersionResponse(**v) for v in result.data or []]

    def list_files(self, template_id: str) -> TemplateFilesResponse:
        template = self.get_template(template_id)
        files = self.storage.list_files(template_id, template.version) if template.version else []
        return TemplateFilesResponse(template_id=template_id, version=template.version, files=files)

    def clone_template(
        self,
        source_id: str,
        clone_data: TemplateCloneRequest,
        user_id: Optional[str] = None,
    ) -> TemplateResponse:
        """
        Duplicate a template's metadata and current files as v1 of a new template.
        Files are copied before any row is written; if a row write fails the
        copied files and any partial rows are removed again.
        """
        source = self.get_template(source_id)
        self._ensure_slug_available(clone_data.slug)

        new_id = str(uuid.uuid4())
        file_path = None
        files: List[str] = []
        if source.file_path and source.version > 0:
            file_path = self.storage.copy_version(source.file_path, new_id, 1)
            files = self.storage.list_files(new_id, 1)

        try:
            self.supabase.table("templates").insert({
                "id": new_id,
                "name": clone_data.name,
                "slug": clone_data.slug,
                "category": source.category,
                "description": source.description,
                "config_schema": source.config_schema.model_dump(mode="json") if source.config_schema else None,
                "status": TemplateStatus.DRAFT.value,
                "version": 1 if file_path else 0,
                "file_path": file_path,
            }).execute()
            if file_path:
                self.supabase.table("template_versions").insert({
                    "template_id": new_id,
                    "version": 1,
                    "file_path": file_path,
                    "file_count": len(files),
                    "file_size": self.storage.directory_size(self.storage.get_absolute_path(file_path)),
                    "uploaded_by": user_id,
                }).execute()
        except Exception:
            logger.error(f"Clone of template {source_id} failed, rolling back {new_id}")
            self.storage.delete(new_id)
            try:
                self.supabase.table("template_versions").delete().eq("template_id", new_id).execute()
                self.supabase.table("templates").delete().eq("id", new_id).execute()
            except Exception as cleanup_err:
                logger.warning(f"Failed to remove partial clone rows for {new_id}: {cleanup_err}")
            raise

        self.activity.log(
            user_id,
            "template.cloned",
            entity_type="template",
            entity_id=new_id,
            details=f"Cloned from {source.name} to {clone_data.name}",
        )
        return self.get_template(new_id)

    def delete_template(self, template_id: str) -> None:
        """Delete template, its extracted versions and archived bundles."""
        self.get_template(template_id)
        in_use = self.supabase.table("projects").select("id").eq("template_id", template_id).limit(1).execute()
        if in_use.data:
            raise InvalidStateError("Cannot delete template with existing projects")

        if self.archive:
            for version in self.list_versions(template_id):
                if version.archive_path and not self.archive.delete_uri(version.archive_path):
                    logger.warning(f"Archived bundle {version.archive_path} was left in place")

        self.storage.delete(template_id)
        self.supabase.table("template_versions").delete().eq("template_id", template_id).execute()
        self.supabase.table("templates").delete().eq("id", template_id).execute()

    def preview(self, template_id: str) -> str:
        """Render the current version with schema defaults; assets are served through the API."""
        template = self.get_template(template_id)
        if not template.file_path:
            raise InvalidStateError("Template has no uploaded files")
        config = resolve(template.config_schema, {})
        return self.renderer.render(
            self.storage.get_absolute_path(template.file_path),
            config,
            asset_base_url=ASSET_ROUTE.format(template_id=template_id),
        )

    def resolve_asset(self, template_id: str, asset_path: str) -> Path:
        template = self.get_template(template_id)
        if not template.file_path:
            raise NotFoundError("Asset", asset_path)
        template_dir = self.storage.get_absolute_path(template.file_path)
        requested = (template_dir / asset_path).resolve()
        if template_dir not in requested.parents or not requested.is_file():
            raise NotFoundError("Asset", asset_path)
        return requested

    def _ensure_slug_available(self, slug: str) -> None:
        existing = self.supabase.table("templates").select("id").eq("slug", slug).execute()
        if existing.data:
            raise ConflictError("Template slug already exists")


def build_template_service(supabase: Client) -> TemplateService:
    return TemplateService(supabase, archive=get_bundle_archive())
