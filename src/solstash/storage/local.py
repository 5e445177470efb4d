"""
solstash/storage/local.py

Storage provider backed by a directory on the local filesystem.

Layout under the provider root::

    projects/<project>/ids/<id>.json
    projects/<project>/ids/<id>/original-content/<sanitized path>
    projects/<project>/tags/<tag>.json
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, Union

from solstash.core.fs import atomic_write_bytes, sanitize_relative_path, staged_file
from solstash.core.validation import validate_key, validate_project, validate_tag
from solstash.errors import ArtifactNotFoundError
from solstash.models.artifact import Artifact

logger = logging.getLogger(__name__)

PROJECTS_DIRNAME = "projects"
ORIGINAL_CONTENT_DIRNAME = "original-content"


class LocalStorageProvider:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LocalStorageProvider(path={str(self.path)!r})"

    def project_path(self, project: str) -> Path:
        return self.path / PROJECTS_DIRNAME / validate_project(project)

    def ids_path(self, project: str) -> Path:
        return self.project_path(project) / "ids"

    def tags_path(self, project: str) -> Path:
        return self.project_path(project) / "tags"

    def id_file_path(self, project: str, artifact_id: str) -> Path:
        return self.ids_path(project) / f"{validate_key(artifact_id, 'id')}.json"

    def tag_file_path(self, project: str, tag: str) -> Path:
        return self.tags_path(project) / f"{validate_tag(tag)}.json"

    def original_content_path(
        self, project: str, artifact_id: str, source_path: Union[str, Path]
    ) -> Path:
        return (
            self.ids_path(project)
            / validate_key(artifact_id, "id")
            / ORIGINAL_CONTENT_DIRNAME
            / sanitize_relative_path(source_path)
        )

    def ensure_project_setup(self, project: str) -> None:
        self.ids_path(project).mkdir(parents=True, exist_ok=True)
        self.tags_path(project).mkdir(parents=True, exist_ok=True)

    def _list_keys(self, directory: Path) -> List[str]:
        if not directory.is_dir():
            return []
        return sorted(
            entry.stem
            for entry in directory.iterdir()
            if entry.is_file() and entry.suffix == ".json"
        )

    def list_tags(self, project: str) -> List[str]:
        return self._list_keys(self.tags_path(project))

    def list_ids(self, project: str) -> List[str]:
        return self._list_keys(self.ids_path(project))

    def has_artifact_by_tag(self, project: str, tag: str) -> bool:
        return self.tag_file_path(project, tag).is_file()

    def has_artifact_by_id(self, project: str, artifact_id: str) -> bool:
        return self.id_file_path(project, artifact_id).is_file()

    def upload_artifact(
        self,
        project: str,
        artifact: Artifact,
        tag: Optional[str],
        original_content_paths: Sequence[Path],
    ) -> None:
        self.ensure_project_setup(project)
        payload = artifact.to_json().encode("utf-8")

        id_file = self.id_file_path(project, artifact.id)
        if id_file.is_file() and id_file.read_bytes() == payload:
            logger.debug("Artifact %s already stored with identical content", artifact.id)
        else:
            atomic_write_bytes(id_file, payload)

        if tag is not None:
            atomic_write_bytes(self.tag_file_path(project, tag), payload)

        for source_path in original_content_paths:
            target = self.original_content_path(project, artifact.id, source_path)
            with staged_file(target) as tmp_path:
                shutil.copyfile(source_path, tmp_path)

        logger.info(
            "Stored artifact %s:%s in %s", project, tag or artifact.id, self.path
        )

    def _open(self, path: Path, project: str, key: str) -> BinaryIO:
        if not path.is_file():
            raise ArtifactNotFoundError(
                f'The artifact "{project}:{key}" does not exist in {self}.'
            )
        return path.open("rb")

    def download_artifact_by_id(self, project: str, artifact_id: str) -> BinaryIO:
        return self._open(self.id_file_path(project, artifact_id), project, artifact_id)

    def download_artifact_by_tag(self, project: str, tag: str) -> BinaryIO:
        return self._open(self.tag_file_path(project, tag), project, tag)
