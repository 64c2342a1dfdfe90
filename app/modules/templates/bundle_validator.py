import zipfile
import io
from pathlib import PurePosixPath
from typing import List, Tuple
import logging

from app.modules.templates.local_storage import ROOT_DOCUMENT

logger = logging.getLogger(__name__)

SCHEMA_FILENAME = "config.schema.json"


class BundleValidator:
    """Validate site template ZIP bundles before they are extracted"""

    @staticmethod
    def validate(zip_content: bytes) -> Tuple[bool, List[str]]:
        """
        Validate a template ZIP file.
        Returns (is_valid, list_of_errors_or_warnings)
        """
        errors = []
        warnings = []

        try:
            with zipfile.ZipFile(io.BytesIO(zip_content), 'r') as zip_ref:
                names = [n for n in zip_ref.namelist() if not n.endswith('/') and not n.startswith('__MACOSX/')]

                if not names:
                    errors.append("The ZIP archive is empty")
                    return False, errors

                # index.html at the root, or one level down inside a single wrapper folder
                has_index = any(
                    n == ROOT_DOCUMENT or (n.endswith('/' + ROOT_DOCUMENT) and n.count('/') == 1)
                    for n in names
                )
                if not has_index:
                    errors.append(f"ZIP must contain an {ROOT_DOCUMENT} file at its root")

                for name in names:
                    path = PurePosixPath(name.replace('\\', '/'))
                    if path.is_absolute() or '..' in path.parts:
                        errors.append(f"Unsafe path in archive: {name}")

                if not any(PurePosixPath(n).name == SCHEMA_FILENAME for n in names):
                    warnings.append(f"No {SCHEMA_FILENAME} found; the template will have no configurable fields")

                bad_member = zip_ref.testzip()
                if bad_member:
                    errors.append(f"Corrupt archive member: {bad_member}")

        except zipfile.BadZipFile:
            errors.append("Invalid ZIP file format")
            return False, errors
        except Exception as e:
            logger.warning(f"Bundle validation failed unexpectedly: {e}")
            errors.append(f"Failed to validate template bundle: {str(e)}")
            return False, errors

        all_issues = errors + warnings
        return len(errors) == 0, all_issues
