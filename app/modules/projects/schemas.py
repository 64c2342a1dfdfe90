from enum import Enum
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    DEPLOYED = "deployed"
    ARCHIVED = "archived"


class DeployTarget(str, Enum):
    VERCEL = "vercel"
    NETLIFY = "netlify"
    CLOUDFLARE = "cloudflare"
    CUSTOM = "custom"


class ProjectResponse(BaseModel):
    id: str
    name: Optional[str] = None
    slug: str
    client_id: Optional[str] = None
    template_id: str
    config: Optional[Dict[str, Any]] = None
    deploy_target: Optional[DeployTarget] = None
    deploy_url: Optional[str] = None
    status: ProjectStatus = ProjectStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectConfigUpdate(BaseModel):
    config: Dict[str, Any]


class ProjectBuildResponse(BaseModel):
    project_id: str
    build_dir: str
    file_count: int
