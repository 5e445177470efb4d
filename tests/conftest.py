from pathlib import Path

import pytest

from solstash.core.local_cache import LocalCache
from solstash.storage.local import LocalStorageProvider
from solstash.storage.s3 import S3StorageProvider

from tests.helpers.build_info_fixtures import (
    write_forge_build_info,
    write_forge_default_build,
    write_hardhat_v2_build_info,
    write_hardhat_v3_build_info,
)
from tests.helpers.fake_s3 import FakeS3Client


# --- Environment ---


@pytest.fixture(autouse=True)
def clean_solstash_env(monkeypatch):
    """Keep the developer's environment out of settings-driven code paths."""
    for name in (
        "SOLSTASH_PULLED_ARTIFACTS_PATH",
        "SOLSTASH_PULL_CONCURRENCY",
        "SOLSTASH_SELECTION_TIMEOUT_SECONDS",
        "SOLSTASH_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CI", "true")


# --- Build-info fixtures ---


@pytest.fixture
def hardhat_v2_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "hardhat-v2" / "artifacts" / "build-info"
    write_hardhat_v2_build_info(directory)
    return directory.parent


@pytest.fixture
def hardhat_v2_file(hardhat_v2_dir: Path) -> Path:
    return next((hardhat_v2_dir / "build-info").glob("*.json"))


@pytest.fixture
def hardhat_v3_pieces(tmp_path: Path):
    return write_hardhat_v3_build_info(tmp_path / "hardhat-v3" / "artifacts" / "build-info")


@pytest.fixture
def forge_build_info_file(tmp_path: Path) -> Path:
    return write_forge_build_info(tmp_path / "forge" / "out" / "build-info")


@pytest.fixture
def forge_default_manifest(tmp_path: Path) -> Path:
    return write_forge_default_build(tmp_path / "forge-default" / "out")


# --- Storage ---


@pytest.fixture
def storage_provider(tmp_path: Path) -> LocalStorageProvider:
    return LocalStorageProvider(tmp_path / "storage")


@pytest.fixture
def local_cache(tmp_path: Path) -> LocalCache:
    return LocalCache(tmp_path / "pulled")


@pytest.fixture
def fake_s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def s3_provider(fake_s3_client: FakeS3Client) -> S3StorageProvider:
    return S3StorageProvider("artifacts-bucket", "eu-west-3", client=fake_s3_client)
