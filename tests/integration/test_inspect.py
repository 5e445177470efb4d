# tests/integration/test_inspect.py

from pathlib import Path

import pytest

from solstash.core.inspect import (
    SourceContracts,
    export_contract_abi,
    inspect_artifact,
    list_pulled_artifacts,
)
from solstash.core.local_cache import LocalCache
from solstash.core.pull import pull
from solstash.core.push import push
from solstash.errors import ArtifactNotFoundError, ContractNotFoundError
from solstash.storage.local import LocalStorageProvider

from tests.helpers.build_info_fixtures import (
    COUNTER_ABI,
    COUNTER_NAME,
    COUNTER_SOURCE,
    ORACLE_ABI,
    ORACLE_NAME,
    ORACLE_SOURCE,
    SOLC_LONG_VERSION,
    compiled_contract,
    compiler_input,
    compiler_output,
    counter_and_oracle_output,
    write_hardhat_v2_build_info,
)

LEGACY_SOURCE = "src/legacy/Counter.sol"


def _push_and_pull(
    build: Path,
    project: str,
    tag,
    storage_provider: LocalStorageProvider,
    local_cache: LocalCache,
) -> str:
    artifact_id = push(build, project, tag, storage_provider)
    pull(project, tag or artifact_id, storage_provider, local_cache)
    return artifact_id


@pytest.fixture
def oracle_build(tmp_path: Path) -> Path:
    return write_hardhat_v2_build_info(
        tmp_path / "oracle", output_payload=counter_and_oracle_output()
    )


@pytest.fixture
def duplicated_name_build(tmp_path: Path) -> Path:
    output = compiler_output()
    output["contracts"][LEGACY_SOURCE] = {
        COUNTER_NAME: compiled_contract(bytecode="60aa", source_path=LEGACY_SOURCE)
    }
    return write_hardhat_v2_build_info(tmp_path / "legacy", output_payload=output)


class TestInspect:
    def test_inspect_by_tag(
        self,
        oracle_build: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        artifact_id = _push_and_pull(
            oracle_build, "counter", "v1", storage_provider, local_cache
        )

        result = inspect_artifact("counter", "v1", local_cache)

        assert result.tag == "v1"
        assert result.id == artifact_id
        assert result.file_size == local_cache.tag_file_path("counter", "v1").stat().st_size
        assert result.origin.format == "hh-sol-build-info-1"
        assert result.compiler.solc_long_version == SOLC_LONG_VERSION
        assert result.compiler.evm_version == "cancun"
        assert result.compiler.optimizer_enabled is True
        assert result.compiler.optimizer_runs == 200
        assert result.compiler.remappings == ["forge-std/=lib/forge-std/src/"]
        assert result.source_files == [COUNTER_SOURCE]
        assert result.contracts_by_source == [
            SourceContracts(COUNTER_SOURCE, [COUNTER_NAME]),
            SourceContracts(ORACLE_SOURCE, [ORACLE_NAME]),
        ]

    def test_compiler_defaults(
        self,
        tmp_path: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        bare_input = compiler_input()
        bare_input["settings"] = {}
        build = write_hardhat_v2_build_info(tmp_path / "bare", input_payload=bare_input)
        artifact_id = _push_and_pull(build, "counter", None, storage_provider, local_cache)

        result = inspect_artifact("counter", artifact_id, local_cache)

        assert result.tag is None
        assert result.compiler.evm_version == "default"
        assert result.compiler.optimizer_enabled is False
        assert result.compiler.optimizer_runs == 200
        assert result.compiler.remappings == []

    def test_not_pulled(self, local_cache: LocalCache):
        with pytest.raises(ArtifactNotFoundError):
            inspect_artifact("counter", "v1", local_cache)


class TestExportAbi:
    def test_short_name(
        self,
        oracle_build: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        artifact_id = _push_and_pull(
            oracle_build, "counter", "v1", storage_provider, local_cache
        )

        result = export_contract_abi("counter", "v1", ORACLE_NAME, local_cache)

        assert result.abi == ORACLE_ABI
        assert result.contract_path == ORACLE_SOURCE
        assert result.id == artifact_id
        assert result.tag == "v1"

    def test_fully_qualified_name(
        self,
        duplicated_name_build: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        _push_and_pull(duplicated_name_build, "counter", "v1", storage_provider, local_cache)

        result = export_contract_abi(
            "counter", "v1", f"{LEGACY_SOURCE}:{COUNTER_NAME}", local_cache
        )

        assert result.contract_path == LEGACY_SOURCE
        assert result.contract_name == COUNTER_NAME
        assert result.abi == COUNTER_ABI

    def test_ambiguous_short_name(
        self,
        duplicated_name_build: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        _push_and_pull(duplicated_name_build, "counter", "v1", storage_provider, local_cache)

        with pytest.raises(ContractNotFoundError, match="Multiple contracts") as excinfo:
            export_contract_abi("counter", "v1", COUNTER_NAME, local_cache)

        assert f"{COUNTER_SOURCE}, {LEGACY_SOURCE}" in str(excinfo.value)

    @pytest.mark.parametrize(
        "name, message",
        [
            ("Missing", "No contract found with name Missing"),
            ("src/Other.sol:Counter", "No contracts found for source path src/Other.sol"),
            (f"{COUNTER_SOURCE}:Missing", "No contract found with name Missing in source"),
        ],
    )
    def test_unknown_contract(
        self,
        name,
        message,
        hardhat_v2_file: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        _push_and_pull(hardhat_v2_file, "counter", "v1", storage_provider, local_cache)

        with pytest.raises(ContractNotFoundError, match=message):
            export_contract_abi("counter", "v1", name, local_cache)

    def test_contract_without_abi(
        self,
        tmp_path: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        output = compiler_output()
        del output["contracts"][COUNTER_SOURCE][COUNTER_NAME]["abi"]
        build = write_hardhat_v2_build_info(tmp_path / "no-abi", output_payload=output)
        _push_and_pull(build, "counter", "v1", storage_provider, local_cache)

        with pytest.raises(ContractNotFoundError, match="No ABI found"):
            export_contract_abi("counter", "v1", COUNTER_NAME, local_cache)


class TestListPulledArtifacts:
    def test_tags_then_untagged_ids_per_project(
        self,
        hardhat_v2_file: Path,
        oracle_build: Path,
        storage_provider: LocalStorageProvider,
        local_cache: LocalCache,
    ):
        counter_id = push(hardhat_v2_file, "counter", "v1", storage_provider)
        oracle_id = push(oracle_build, "counter", None, storage_provider)
        push(hardhat_v2_file, "vault", None, storage_provider)
        pull("counter", None, storage_provider, local_cache)
        pull("vault", None, storage_provider, local_cache)

        items = [
            (item.project, item.id, item.tag)
            for item in list_pulled_artifacts(local_cache)
        ]

        assert items == [
            ("counter", counter_id, "v1"),
            ("counter", oracle_id, None),
            ("vault", counter_id, None),
        ]

    def test_empty(self, local_cache: LocalCache):
        assert list_pulled_artifacts(local_cache) == []
