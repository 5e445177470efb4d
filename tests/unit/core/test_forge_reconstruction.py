# tests/unit/core/test_forge_reconstruction.py

"""
Unit tests for rebuilding an artifact from a default Forge ``out`` directory,
where the build-info file is only a manifest and every contract lives in its
own JSON file.
"""

import json
from pathlib import Path

import pytest

from solstash.core.normalize import normalize
from solstash.errors import BuildInfoValidationError, ForgeReconstructionError

from tests.helpers.build_info_fixtures import (
    COUNTER_ABI,
    COUNTER_BYTECODE,
    COUNTER_NAME,
    COUNTER_SOURCE,
    ORACLE_NAME,
    ORACLE_SOURCE,
    SOLC_LONG_VERSION,
    forge_contract_artifact,
    write_forge_contract_file,
    write_forge_default_build,
)


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


class TestReconstruction:
    def test_single_contract(self, forge_default_manifest: Path):
        normalized = normalize(forge_default_manifest)
        artifact = normalized.artifact
        contract = artifact.output.contracts[COUNTER_SOURCE][COUNTER_NAME]

        assert artifact.origin.format == "forge-default"
        assert artifact.origin.id == "9d2a4b4c7e1f0a35"
        assert artifact.solc_long_version == SOLC_LONG_VERSION
        assert artifact.input.language == "Solidity"
        assert contract.abi == COUNTER_ABI
        assert contract.evm.bytecode.object == COUNTER_BYTECODE
        assert contract.evm.method_identifiers["increment()"] == "d09de08a"
        assert contract.metadata is not None
        assert contract.devdoc == {"kind": "dev", "methods": {}, "version": 1}

    def test_settings_and_sources_are_merged(self, out_dir: Path):
        manifest = write_forge_default_build(
            out_dir, sources={"0": COUNTER_SOURCE, "1": ORACLE_SOURCE}
        )

        artifact = normalize(manifest).artifact
        settings = artifact.input.settings

        assert artifact.fully_qualified_names == [
            f"{COUNTER_SOURCE}:{COUNTER_NAME}",
            f"{ORACLE_SOURCE}:{ORACLE_NAME}",
        ]
        assert set(artifact.input.sources) == {COUNTER_SOURCE, ORACLE_SOURCE}
        assert settings.evm_version == "cancun"
        assert settings.optimizer.enabled is True
        assert settings.optimizer.runs == 200
        assert settings.remappings == ["forge-std/=lib/forge-std/src/"]
        assert settings.libraries == {}

    def test_original_content_is_contract_files_then_manifest(self, out_dir: Path):
        manifest = write_forge_default_build(
            out_dir, sources={"0": COUNTER_SOURCE, "1": ORACLE_SOURCE}
        )

        paths = normalize(manifest).original_content_paths

        assert paths == [
            out_dir / "Counter.sol" / "Counter.json",
            out_dir / "IncrementOracle.sol" / "IncrementOracle.json",
            manifest,
        ]

    def test_library_addresses_are_grouped_by_file(self, out_dir: Path):
        manifest = write_forge_default_build(out_dir)
        payload = forge_contract_artifact()
        payload["metadata"]["settings"]["libraries"] = {
            "src/lib/Math.sol:Math": "0x00000000000000000000000000000000000000aa",
            "src/lib/Math.sol:Strings": "0x00000000000000000000000000000000000000bb",
        }
        write_forge_contract_file(out_dir, "Counter.sol/Counter.json", payload)

        libraries = normalize(manifest).artifact.input.settings.libraries

        assert libraries == {
            "src/lib/Math.sol": {
                "Math": "0x00000000000000000000000000000000000000aa",
                "Strings": "0x00000000000000000000000000000000000000bb",
            }
        }

    def test_foreign_and_invalid_files_are_skipped(self, out_dir: Path):
        manifest = write_forge_default_build(out_dir)
        # Same source path, other compilation (different internal id).
        write_forge_contract_file(
            out_dir,
            "Stale.sol/Counter.json",
            forge_contract_artifact(source_id=7, bytecode="deadbeef"),
        )
        # No embedded metadata, hence no compilation target.
        write_forge_contract_file(
            out_dir, "Bare.sol/Bare.json", forge_contract_artifact(with_metadata=False)
        )
        write_forge_contract_file(out_dir, "cache.json", {"paths": {}})
        (out_dir / "broken.json").write_text("{")

        normalized = normalize(manifest)
        contract = normalized.artifact.output.contracts[COUNTER_SOURCE][COUNTER_NAME]

        assert contract.evm.bytecode.object == COUNTER_BYTECODE
        assert normalized.original_content_paths == [
            out_dir / "Counter.sol" / "Counter.json",
            manifest,
        ]

    def test_multiple_compilation_targets_are_skipped(self, out_dir: Path):
        manifest = write_forge_default_build(
            out_dir, sources={"0": COUNTER_SOURCE, "1": ORACLE_SOURCE}
        )
        payload = forge_contract_artifact()
        payload["metadata"]["settings"]["compilationTarget"][ORACLE_SOURCE] = ORACLE_NAME
        write_forge_contract_file(out_dir, "Aaa.sol/Counter.json", payload)

        paths = normalize(manifest).original_content_paths

        assert out_dir / "Aaa.sol" / "Counter.json" not in paths

    def test_first_visited_duplicate_wins(self, out_dir: Path):
        manifest = write_forge_default_build(out_dir)
        # "A-copy.sol" sorts before "Counter.sol" and is visited first.
        write_forge_contract_file(
            out_dir,
            "A-copy.sol/Counter.json",
            forge_contract_artifact(bytecode="00aa00aa"),
        )

        normalized = normalize(manifest)
        contract = normalized.artifact.output.contracts[COUNTER_SOURCE][COUNTER_NAME]

        assert contract.evm.bytecode.object == "00aa00aa"
        assert normalized.original_content_paths == [
            out_dir / "A-copy.sol" / "Counter.json",
            manifest,
        ]

    def test_build_info_directory_is_not_walked(self, out_dir: Path):
        manifest = write_forge_default_build(out_dir)
        write_forge_contract_file(
            out_dir,
            "build-info/Counter.json",
            forge_contract_artifact(bytecode="00bb00bb"),
        )

        contract = normalize(manifest).artifact.output.contracts[COUNTER_SOURCE][
            COUNTER_NAME
        ]

        assert contract.evm.bytecode.object == COUNTER_BYTECODE


class TestIncompleteReconstruction:
    def test_missing_contract_file_is_fatal(self, out_dir: Path):
        manifest = write_forge_default_build(
            out_dir, sources={"0": COUNTER_SOURCE, "1": ORACLE_SOURCE}
        )
        (out_dir / "IncrementOracle.sol" / "IncrementOracle.json").unlink()

        with pytest.raises(ForgeReconstructionError) as excinfo:
            normalize(manifest)

        assert excinfo.value.missing == [(ORACLE_SOURCE, "1")]
        assert f"{ORACLE_SOURCE} (ID: 1)" in str(excinfo.value)
        assert excinfo.value.expected_format == "forge-default"
        assert isinstance(excinfo.value, BuildInfoValidationError)

    def test_empty_manifest_is_invalid(self, out_dir: Path):
        manifest = out_dir / "build-info" / "empty.json"
        manifest.parent.mkdir(parents=True)
        manifest.write_text(json.dumps({"id": "empty", "source_id_to_path": {}}))

        with pytest.raises(BuildInfoValidationError) as excinfo:
            normalize(manifest)
        assert excinfo.value.expected_format == "forge-default"
