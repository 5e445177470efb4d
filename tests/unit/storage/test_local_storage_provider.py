# tests/unit/storage/test_local_storage_provider.py

from pathlib import Path

import pytest

from solstash.core.normalize import normalize
from solstash.errors import ArtifactNotFoundError, InvalidKeyError
from solstash.models.artifact import Artifact
from solstash.storage.local import LocalStorageProvider


@pytest.fixture
def normalized(hardhat_v2_file: Path):
    return normalize(hardhat_v2_file)


class TestLocalStorageProvider:
    def test_layout(self, storage_provider: LocalStorageProvider):
        root = storage_provider.path / "projects" / "counter"
        assert storage_provider.id_file_path("counter", "abc") == root / "ids" / "abc.json"
        assert storage_provider.tag_file_path("counter", "v1") == root / "tags" / "v1.json"
        assert storage_provider.original_content_path(
            "counter", "abc", "/abs/out/build-info/x.json"
        ) == root / "ids" / "abc" / "original-content" / "abs/out/build-info/x.json"

    def test_rejects_invalid_project(self, storage_provider: LocalStorageProvider):
        with pytest.raises(InvalidKeyError):
            storage_provider.list_tags("../other")

    def test_upload_without_tag(self, storage_provider: LocalStorageProvider, normalized):
        artifact = normalized.artifact
        storage_provider.upload_artifact(
            "counter", artifact, None, normalized.original_content_paths
        )

        assert storage_provider.has_artifact_by_id("counter", artifact.id)
        assert storage_provider.list_ids("counter") == [artifact.id]
        assert storage_provider.list_tags("counter") == []

    def test_upload_with_tag_archives_original_content(
        self, storage_provider: LocalStorageProvider, normalized
    ):
        artifact = normalized.artifact
        source = normalized.original_content_paths[0]
        storage_provider.upload_artifact("counter", artifact, "v1.0.0", [source])

        archived = storage_provider.original_content_path("counter", artifact.id, source)
        assert archived.read_bytes() == source.read_bytes()
        assert storage_provider.has_artifact_by_tag("counter", "v1.0.0")
        # The archive directory next to the id file is not listed as an id.
        assert storage_provider.list_ids("counter") == [artifact.id]

    def test_download_round_trip(self, storage_provider: LocalStorageProvider, normalized):
        artifact = normalized.artifact
        storage_provider.upload_artifact("counter", artifact, "latest", [])

        with storage_provider.download_artifact_by_tag("counter", "latest") as stream:
            by_tag = Artifact.from_json(stream.read())
        with storage_provider.download_artifact_by_id("counter", artifact.id) as stream:
            by_id = Artifact.from_json(stream.read())

        assert by_tag == artifact
        assert by_id == artifact

    def test_identical_id_entry_is_not_rewritten(
        self, storage_provider: LocalStorageProvider, normalized
    ):
        artifact = normalized.artifact
        storage_provider.upload_artifact("counter", artifact, None, [])
        id_file = storage_provider.id_file_path("counter", artifact.id)
        mtime = id_file.stat().st_mtime_ns

        storage_provider.upload_artifact("counter", artifact, "v2", [])

        assert id_file.stat().st_mtime_ns == mtime

    def test_download_missing(self, storage_provider: LocalStorageProvider):
        with pytest.raises(ArtifactNotFoundError, match="counter:v9"):
            storage_provider.download_artifact_by_tag("counter", "v9")
        assert not storage_provider.has_artifact_by_id("counter", "abc")
