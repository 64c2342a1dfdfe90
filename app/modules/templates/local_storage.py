"""Filesystem storage for template bundles and per-project build output.

Layout under ``storage_root``::

    templates/{template_id}/v{version}/   extracted bundle, one dir per version
    builds/{project_id}/                  disposable build output, one per project

Every filesystem mutation in the pipeline goes through TemplateStorage.
"""
import io
import logging
import shutil
import uuid
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional

from app.config import settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

ROOT_DOCUMENT = "index.html"
_IGNORED_PREFIXES = ("__MACOSX/",)


class TemplateStorage:
    def __init__(
        self,
        root: Optional[Path] = None,
        max_bundle_bytes: Optional[int] = None,
        max_extracted_bytes: Optional[int] = None,
    ):
        self.root = Path(root or settings.storage_root).resolve()
        self.templates_dir = self.root / "templates"
        self.builds_dir = self.root / "builds"
        self.max_bundle_bytes = max_bundle_bytes or settings.max_bundle_bytes
        self.max_extracted_bytes = max_extracted_bytes or settings.max_extracted_bytes

    # ------------------------------------------------------------------
    # Template bundles
    # ------------------------------------------------------------------

    def save(self, template_id: str, version: int, bundle: bytes) -> str:
        """Extract a ZIP bundle into templates/{template_id}/v{version} and return that relative path."""
        if len(bundle) > self.max_bundle_bytes:
            raise StorageError(f"Bundle exceeds {self.max_bundle_bytes // (1024 * 1024)}MB limit")

        dest = self._version_dir(template_id, version)
        staging = dest.parent / f".staging-v{version}-{uuid.uuid4().hex[:8]}"
        try:
            staging.mkdir(parents=True)
            self._extract(bundle, staging)
            self._flatten_single_folder(staging)
            if not (staging / ROOT_DOCUMENT).is_file():
                raise StorageError(f"{ROOT_DOCUMENT} must be at the root of the ZIP archive")
            if dest.exists():
                shutil.rmtree(dest)
            staging.rename(dest)
        except StorageError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise StorageError(f"Failed to store bundle: {e}") from e

        logger.info(f"Extracted template {template_id} v{version} to {dest}")
        return self.relative_version_path(template_id, version)

    def copy_version(self, source_relative_path: str, template_id: str, version: int) -> str:
        """Copy an extracted version tree to another template/version slot."""
        source = self.get_absolute_path(source_relative_path)
        if not source.is_dir():
            raise StorageError(f"Template files not found at {source_relative_path}")
        dest = self._version_dir(template_id, version)
        try:
            if dest.exists():
                shutil.rmtree(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source, dest)
        except OSError as e:
            raise StorageError(f"Failed to copy template files: {e}") from e
        return self.relative_version_path(template_id, version)

    def get_absolute_path(self, relative_path: str) -> Path:
        resolved = (self.root / relative_path).resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise StorageError(f"Path escapes storage root: {relative_path}")
        return resolved

    def delete(self, template_id: str) -> None:
        template_dir = self._template_dir(template_id)
        if template_dir.exists():
            shutil.rmtree(template_dir)
            logger.info(f"Deleted template files for {template_id}")

    def delete_version(self, template_id: str, version: int) -> None:
        version_dir = self._version_dir(template_id, version)
        if version_dir.exists():
            shutil.rmtree(version_dir)

    def exists(self, template_id: str, version: int) -> bool:
        return self._version_dir(template_id, version).is_dir()

    def list_files(self, template_id: str, version: int) -> List[str]:
        version_dir = self._version_dir(template_id, version)
        if not version_dir.is_dir():
            return []
        return sorted(
            p.relative_to(version_dir).as_posix() for p in version_dir.rglob("*") if p.is_file()
        )

    @staticmethod
    def directory_size(path: Path) -> int:
        return sum(p.stat().st_size for p in Path(path).rglob("*") if p.is_file())

    @staticmethod
    def relative_version_path(template_id: str, version: int) -> str:
        return f"templates/{template_id}/v{version}"

    # ------------------------------------------------------------------
    # Project builds
    # ------------------------------------------------------------------

    def build_path(self, project_id: str) -> Path:
        return self.builds_dir / self._safe_segment(project_id)

    def reset_build_dir(self, project_id: str, source_dir: Path) -> Path:
        """Replace the project's build directory with a fresh copy of source_dir."""
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise StorageError(f"Template source directory not found: {source_dir}")
        build_dir = self.build_path(project_id)
        try:
            if build_dir.exists():
                shutil.rmtree(build_dir)
                logger.info(f"Removed previous build for project {project_id}")
            self.builds_dir.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source_dir, build_dir)
        except OSError as e:
            raise StorageError(f"Failed to prepare build directory: {e}") from e
        return build_dir

    def write_build_file(self, project_id: str, name: str, content: str) -> Path:
        build_dir = self.build_path(project_id)
        target = (build_dir / name).resolve()
        if build_dir.resolve() not in target.parents:
            raise StorageError(f"Path escapes build directory: {name}")
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write {name}: {e}") from e
        return target

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _safe_segment(value: str) -> str:
        safe = PurePosixPath(str(value)).name
        if not safe or safe != str(value) or safe in (".", ".."):
            raise StorageError(f"Invalid identifier: {value}")
        return safe

    def _template_dir(self, template_id: str) -> Path:
        return self.templates_dir / self._safe_segment(template_id)

    def _version_dir(self, template_id: str, version: int) -> Path:
        return self._template_dir(template_id) / f"v{int(version)}"

    def _extract(self, bundle: bytes, target: Path) -> None:
        try:
            with zipfile.ZipFile(io.BytesIO(bundle), "r") as zip_ref:
                entries = [
                    info for info in zip_ref.infolist()
                    if not info.is_dir() and not info.filename.startswith(_IGNORED_PREFIXES)
                ]
                total = sum(info.file_size for info in entries)
                if total > self.max_extracted_bytes:
                    raise StorageError("Bundle expands beyond the allowed extracted size")
                for info in entries:
                    name = PurePosixPath(info.filename.replace("\\", "/"))
                    if name.is_absolute() or ".." in name.parts:
                        raise StorageError(f"Malicious ZIP entry detected: {info.filename}")
                    dest = (target / name).resolve()
                    if target.resolve() not in dest.parents:
                        raise StorageError(f"Path traversal attempt: {info.filename}")
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    with zip_ref.open(info) as src, open(dest, "wb") as out:
                        shutil.copyfileobj(src, out)
        except zipfile.BadZipFile as e:
            raise StorageError("Invalid ZIP file format") from e

    @staticmethod
    def _flatten_single_folder(target: Path) -> None:
        children = list(target.iterdir())
        if len(children) != 1 or not children[0].is_dir():
            return
        # Rename first so a nested entry sharing the folder's name cannot collide
        single = children[0].rename(target / f".flatten-{uuid.uuid4().hex[:8]}")
        for child in list(single.iterdir()):
            child.rename(target / child.name)
        single.rmdir()


_storage: Optional[TemplateStorage] = None


def get_template_storage() -> TemplateStorage:
    global _storage
    if _storage is None:
        _storage = TemplateStorage()
    return _storage
