"""
solstash/core/local_cache.py

On-disk mirror of pulled artifacts.

Layout under the cache root::

    <project>/ids/<id>.json
    <project>/tags/<tag>.json

Every read parses and validates the canonical artifact schema, so a corrupted
or hand-edited file is rejected instead of being served. Writes go through a
staged temporary file that is validated before being moved into place.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from pydantic import ValidationError

from solstash.core.fs import staged_file
from solstash.core.validation import validate_key, validate_project, validate_tag
from solstash.errors import ArtifactNotFoundError, InvalidArtifactError
from solstash.models.artifact import Artifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagEntry:
    tag: str
    last_modified_at: datetime


@dataclass(frozen=True)
class IdEntry:
    id: str
    last_modified_at: datetime


@dataclass(frozen=True)
class ResolvedReference:
    """A local ``tag_or_id`` resolved to a file; ``tag`` is None for ids."""

    project: str
    artifact_id: str
    tag: Optional[str]
    path: Path


def _modified_at(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class LocalCache:
    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"LocalCache(root={str(self.root)!r})"

    def project_path(self, project: str) -> Path:
        return self.root / validate_project(project)

    def id_file_path(self, project: str, artifact_id: str) -> Path:
        filename = f"{validate_key(artifact_id, 'id')}.json"
        return self.project_path(project) / "ids" / filename

    def tag_file_path(self, project: str, tag: str) -> Path:
        return self.project_path(project) / "tags" / f"{validate_tag(tag)}.json"

    def ensure_project_setup(self, project: str) -> None:
        (self.project_path(project) / "ids").mkdir(parents=True, exist_ok=True)
        (self.project_path(project) / "tags").mkdir(parents=True, exist_ok=True)

    def list_projects(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def has_id(self, project: str, artifact_id: str) -> bool:
        return self.id_file_path(project, artifact_id).is_file()

    def has_tag(self, project: str, tag: str) -> bool:
        return self.tag_file_path(project, tag).is_file()

    def _json_files(self, directory: Path) -> List[Path]:
        if not directory.is_dir():
            return []
        return sorted(
            entry
            for entry in directory.iterdir()
            if entry.is_file() and entry.suffix == ".json"
        )

    def list_tags(self, project: str) -> List[TagEntry]:
        return [
            TagEntry(tag=path.stem, last_modified_at=_modified_at(path))
            for path in self._json_files(self.project_path(project) / "tags")
        ]

    def list_ids(self, project: str) -> List[IdEntry]:
        return [
            IdEntry(id=path.stem, last_modified_at=_modified_at(path))
            for path in self._json_files(self.project_path(project) / "ids")
        ]

    def _read(self, path: Path, project: str, key: str) -> Artifact:
        if not path.is_file():
            raise ArtifactNotFoundError(
                f'The artifact "{project}:{key}" has not been pulled. Please pull it '
                "first."
            )
        try:
            return Artifact.from_json(path.read_bytes())
        except ValidationError as e:
            logger.debug("Invalid artifact file %s: %s", path, e)
            raise InvalidArtifactError(
                f'The local artifact "{project}:{key}" at "{path}" is not a valid '
                "artifact. It may have been modified by hand, please pull it again "
                "with force."
            ) from e

    def retrieve_artifact_by_id(self, project: str, artifact_id: str) -> Artifact:
        return self._read(self.id_file_path(project, artifact_id), project, artifact_id)

    def retrieve_artifact_by_tag(self, project: str, tag: str) -> Artifact:
        return self._read(self.tag_file_path(project, tag), project, tag)

    def retrieve_artifact_id(self, project: str, tag: str) -> str:
        return self.retrieve_artifact_by_tag(project, tag).id

    def resolve_reference(self, project: str, tag_or_id: str) -> ResolvedReference:
        """Resolve ``tag_or_id`` as a local id first, then as a local tag."""
        id_path = self.id_file_path(project, tag_or_id)
        if id_path.is_file():
            return ResolvedReference(project, tag_or_id, None, id_path)
        tag_path = self.tag_file_path(project, tag_or_id)
        if tag_path.is_file():
            artifact_id = self.retrieve_artifact_id(project, tag_or_id)
            return ResolvedReference(project, artifact_id, tag_or_id, tag_path)
        raise ArtifactNotFoundError(
            f'The artifact "{project}:{tag_or_id}" was not found locally as an id or a '
            "tag. Please pull it first."
        )

    def retrieve_artifact(self, reference: ResolvedReference) -> Artifact:
        key = reference.tag or reference.artifact_id
        return self._read(reference.path, reference.project, key)

    def _create(
        self,
        target: Path,
        stream: BinaryIO,
        project: str,
        key: str,
        expected_id: Optional[str] = None,
    ) -> Artifact:
        with staged_file(target) as tmp_path:
            with tmp_path.open("wb") as fh:
                shutil.copyfileobj(stream, fh)
            try:
                artifact = Artifact.from_json(tmp_path.read_bytes())
            except ValidationError as e:
                logger.debug("Downloaded artifact %s:%s is invalid: %s", project, key, e)
                raise InvalidArtifactError(
                    f'The downloaded artifact "{project}:{key}" is not a valid '
                    "artifact and was not stored."
                ) from e
            if expected_id is not None and artifact.id != expected_id:
                raise InvalidArtifactError(
                    f'The downloaded artifact "{project}:{key}" has id "{artifact.id}" '
                    "and was not stored."
                )
        logger.debug("Stored %s:%s at %s", project, key, target)
        return artifact

    def create_artifact_by_id(
        self, project: str, artifact_id: str, stream: BinaryIO
    ) -> Artifact:
        self.ensure_project_setup(project)
        return self._create(
            self.id_file_path(project, artifact_id),
            stream,
            project,
            artifact_id,
            expected_id=artifact_id,
        )

    def create_artifact_by_tag(
        self, project: str, tag: str, stream: BinaryIO
    ) -> Artifact:
        self.ensure_project_setup(project)
        return self._create(self.tag_file_path(project, tag), stream, project, tag)

    def artifact_file_path(self, project: str, tag_or_id: str) -> Path:
        return self.resolve_reference(project, tag_or_id).path
