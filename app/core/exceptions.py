"""
Domain exceptions raised by the template and deployment services.

Each carries the HTTP status the API layer answers with; see the handler
registered in app.main.
"""
from typing import Optional


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(AppError):
    status_code = 409


class ValidationError(AppError):
    status_code = 400

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = issues or []


class InvalidStateError(AppError):
    status_code = 400


class StorageError(AppError):
    status_code = 500


class TemplateError(AppError):
    status_code = 422


class DeployError(AppError):
    """Hosting provider failure (auth, quota, network)."""

    status_code = 502

    def __init__(self, provider: str, message: str, upstream_status: Optional[int] = None):
        super().__init__(f"{provider} deploy failed: {message}")
        self.provider = provider
        self.upstream_status = upstream_status
