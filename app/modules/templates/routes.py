from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.responses import FileResponse, HTMLResponse
from app.database.supabase_client import get_supabase
from app.modules.templates.schemas import (
    TemplateCreate, TemplateCloneRequest, TemplateResponse, TemplateVersionResponse,
    TemplateUploadResponse, TemplateFilesResponse,
)
from app.modules.templates.service import TemplateService, build_template_service
from app.core.dependencies import get_current_user
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/templates", tags=["templates"])


def get_template_service(supabase: Client = Depends(get_supabase)) -> TemplateService:
    return build_template_service(supabase)


# Preview and assets are public so the dashboard can embed them in an iframe
@router.get("/{template_id}/preview", response_class=HTMLResponse)
async def preview_template(
    template_id: str,
    service: TemplateService = Depends(get_template_service),
):
    """Render the current version with its default configuration."""
    return HTMLResponse(service.preview(template_id))


@router.get("/{template_id}/assets/{asset_path:path}")
async def get_template_asset(
    template_id: str,
    asset_path: str,
    service: TemplateService = Depends(get_template_service),
):
    """Serve a static file from the template's current version."""
    return FileResponse(service.resolve_asset(template_id, asset_path))


@router.get("", response_model=List[TemplateResponse])
async def list_templates(
    limit: int = 10,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """List templates, newest first."""
    return service.list_templates(limit=limit, offset=offset)


@router.post("", response_model=TemplateResponse, status_code=201)
async def create_template(
    template_data: TemplateCreate,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """Create a new site template (files are uploaded separately)"""
    return service.create_template(template_data)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Get template by ID."""
    return service.get_template(template_id)


@router.post("/{template_id}/upload", response_model=TemplateUploadResponse, status_code=201)
async def upload_template_bundle(
    template_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """
    Upload a new ZIP bundle for a template.
    Each upload creates the next version; index.html must be at the root of
    the archive and an optional config.schema.json declares the config fields.
    """
    content = await file.read()
    return service.upload_bundle(template_id, file.filename, content, user_data["id"])


@router.get("/{template_id}/versions", response_model=List[TemplateVersionResponse])
async def list_template_versions(
    template_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return service.list_versions(template_id)


@router.get("/{template_id}/files", response_model=TemplateFilesResponse)
async def list_template_files(
    template_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return service.list_files(template_id)


@router.post("/{template_id}/clone", response_model=TemplateResponse, status_code=201)
async def clone_template(
    template_id: str,
    clone_data: TemplateCloneRequest,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Clone a template, including its current files as version 1"""
    return service.clone_template(template_id, clone_data, user_data["id"])


@router.delete("/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service)
):
    """Delete template"""
    service.delete_template(template_id)
    return None
