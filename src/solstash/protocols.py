from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, List, Optional, Protocol, Sequence, runtime_checkable

from solstash.models.artifact import Artifact


@runtime_checkable
class StorageProvider(Protocol):
    """Remote storage holding pushed artifacts, addressed by id or by tag."""

    def list_tags(self, project: str) -> List[str]: ...

    def list_ids(self, project: str) -> List[str]: ...

    def has_artifact_by_tag(self, project: str, tag: str) -> bool: ...

    def has_artifact_by_id(self, project: str, artifact_id: str) -> bool: ...

    def upload_artifact(
        self,
        project: str,
        artifact: Artifact,
        tag: Optional[str],
        original_content_paths: Sequence[Path],
    ) -> None: ...

    def download_artifact_by_id(self, project: str, artifact_id: str) -> BinaryIO: ...

    def download_artifact_by_tag(self, project: str, tag: str) -> BinaryIO: ...


@runtime_checkable
class SelectionResolver(Protocol):
    """Picks one build-info file when a directory holds several candidates."""

    def select(self, folder: Path, candidates: Sequence[Path]) -> Path: ...
