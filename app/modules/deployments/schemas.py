from enum import Enum
from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime

from app.modules.projects.schemas import DeployTarget


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    SUCCESS = "success"
    FAILED = "failed"


class DeploymentResponse(BaseModel):
    id: str
    project_id: str
    version: str
    status: DeploymentStatus
    deploy_target: DeployTarget
    deploy_url: Optional[str] = None
    build_time: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    logs: Optional[str] = None
    deployed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeploymentLogsResponse(BaseModel):
    deployment_id: str
    logs: str
    status: DeploymentStatus
    in_progress: bool = False
