"""Merge a template's declared config defaults with a project's overrides.

The schema is the authority on which keys exist: overrides for undeclared keys
are dropped, declared keys without an override keep their default.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from app.modules.templates.schemas import ConfigFieldType, TemplateConfigSchema

logger = logging.getLogger(__name__)


def resolve_defaults(schema: TemplateConfigSchema) -> Dict[str, Any]:
    return {field.key: field.default for field in schema.fields}


def merge(defaults: Mapping[str, Any], overrides: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if key in merged:
            merged[key] = value
    return merged


def resolve(
    schema: Optional[TemplateConfigSchema],
    overrides: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Resolved config for a build. Without any declared schema the overrides pass through as-is."""
    if schema is None:
        return dict(overrides or {})
    dropped = set(overrides or {}) - set(schema.keys())
    if dropped:
        logger.debug("Ignoring config keys not declared by the template: %s", sorted(dropped))
    return merge(resolve_defaults(schema), overrides)


def validate_overrides(schema: Optional[TemplateConfigSchema], overrides: Mapping[str, Any]) -> List[str]:
    """Return a list of problems with overrides against the schema; empty when valid."""
    if schema is None:
        return []
    issues = []
    fields = {f.key: f for f in schema.fields}
    for key, value in overrides.items():
        field = fields.get(key)
        if field is None:
            issues.append(f"Unknown config key '{key}'")
            continue
        if field.type == ConfigFieldType.BOOLEAN:
            if not isinstance(value, bool):
                issues.append(f"'{key}' must be a boolean")
        elif not isinstance(value, str):
            issues.append(f"'{key}' must be a string")
        elif field.type == ConfigFieldType.SELECT and field.options and value not in field.options:
            issues.append(f"'{key}' must be one of: {', '.join(field.options)}")
        elif field.required and not value.strip():
            issues.append(f"'{key}' is required")
    return issues
