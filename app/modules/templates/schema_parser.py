import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from app.modules.templates.bundle_validator import SCHEMA_FILENAME
from app.modules.templates.schemas import TemplateConfigSchema

logger = logging.getLogger(__name__)


def parse_config_schema(template_dir: Path) -> Optional[TemplateConfigSchema]:
    """
    Read config.schema.json from an extracted template directory.
    Returns None if the file is missing or invalid; the template then keeps
    whatever schema it already had.
    """
    schema_path = Path(template_dir) / SCHEMA_FILENAME
    if not schema_path.is_file():
        return None
    try:
        raw = json.loads(schema_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not parse {SCHEMA_FILENAME}: {e}")
        return None

    # Accept both {"fields": [...]} and a bare list of fields
    if isinstance(raw, list):
        raw = {"fields": raw}
    try:
        schema = TemplateConfigSchema.model_validate(raw)
    except PydanticValidationError as e:
        logger.warning(f"Invalid {SCHEMA_FILENAME}: {e.error_count()} error(s)")
        return None

    seen = set()
    for field in schema.fields:
        if field.key in seen:
            logger.warning(f"Duplicate config key '{field.key}' in {SCHEMA_FILENAME}")
            return None
        seen.add(field.key)
    return schema
