from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime


class ConfigFieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    COLOR = "color"
    URL = "url"
    BOOLEAN = "boolean"
    SELECT = "select"


class TemplateStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class ConfigField(BaseModel):
    key: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: ConfigFieldType = ConfigFieldType.TEXT
    default: Optional[Union[bool, str]] = None
    required: bool = False
    options: Optional[List[str]] = None  # Only for type: select


class TemplateConfigSchema(BaseModel):
    fields: List[ConfigField] = Field(default_factory=list)

    def keys(self) -> List[str]:
        return [f.key for f in self.fields]


SLUG_PATTERN = r"^[a-z0-9-]+$"


class TemplateCreate(BaseModel):
    name: str = Field(min_length=2)
    slug: str = Field(min_length=2, pattern=SLUG_PATTERN)
    category: str = Field(min_length=1)
    description: Optional[str] = None
    config_schema: Optional[TemplateConfigSchema] = None
    status: TemplateStatus = TemplateStatus.DRAFT


class TemplateCloneRequest(BaseModel):
    name: str = Field(min_length=2)
    slug: str = Field(min_length=2, pattern=SLUG_PATTERN)


class TemplateResponse(BaseModel):
    id: str
    name: str
    slug: str
    category: str
    description: Optional[str] = None
    config_schema: Optional[TemplateConfigSchema] = None
    version: int = 0
    file_path: Optional[str] = None
    status: TemplateStatus = TemplateStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateVersionResponse(BaseModel):
    id: Optional[str] = None
    template_id: str
    version: int
    file_path: str
    file_count: int
    file_size: int
    archive_path: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateUploadResponse(BaseModel):
    template_id: str
    version: int
    file_path: str
    file_count: int
    config_schema: Optional[TemplateConfigSchema] = None
    validation_issues: List[str] = Field(default_factory=list)
    message: str


class TemplateFilesResponse(BaseModel):
    template_id: str
    version: int
    files: List[str]
