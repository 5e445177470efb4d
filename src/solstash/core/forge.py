"""
solstash/core/forge.py

Reconstructs an artifact from a default Forge build.

Without ``--build-info``, Forge writes a build-info file that only maps source
ids to source paths. The compiled output lives in one JSON file per contract,
scattered across the artifacts tree::

    out/
      build-info/<build-info-id>.json    (manifest: source_id_to_path)
      Counter.sol/Counter.json           (one contract)
      IncrementOracle.sol/IncrementOracle.json

Reconstruction walks the tree once, keeps the contract files that belong to the
manifest's compilation, merges their embedded metadata into a compiler input
and collects their output. The manifest must be fully covered: a partial
reconstruction is rejected.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from pydantic import ValidationError

from solstash.core.discovery import walk_json_files
from solstash.core.identity import derive_artifact_id
from solstash.errors import BuildInfoValidationError, ForgeReconstructionError
from solstash.models.artifact import Artifact, CompilerOutput
from solstash.models.build_info import ForgeContractArtifact, ForgeDefaultBuildInfo
from solstash.types import FORGE_DEFAULT_FORMAT

logger = logging.getLogger(__name__)

# Compiler settings taken from the first contract that declares them.
FIRST_WRITE_WINS_SETTINGS = (
    "remappings",
    "optimizer",
    "evmVersion",
    "eofVersion",
    "viaIR",
    "metadata",
)


@dataclass(frozen=True)
class ForgeContractCandidate:
    path: Path
    source_path: str
    contract_name: str
    contract: ForgeContractArtifact


@dataclass
class _Reconstruction:
    solc_long_version: Optional[str] = None
    language: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    sources: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    libraries: Dict[str, Dict[str, str]] = field(default_factory=dict)
    contracts: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)

    def absorb(self, candidate: ForgeContractCandidate) -> None:
        contract = candidate.contract
        metadata = contract.metadata
        assert metadata is not None  # candidates always carry a compilation target

        if self.solc_long_version is None:
            self.solc_long_version = metadata.compiler.version
        if self.language is None:
            self.language = metadata.language

        declared = metadata.settings.model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        for key in FIRST_WRITE_WINS_SETTINGS:
            if key not in self.settings and key in declared:
                self.settings[key] = declared[key]

        for qualified_name, address in metadata.settings.libraries.items():
            file_path, _, library_name = qualified_name.partition(":")
            if not file_path or not library_name:
                continue
            self.libraries.setdefault(file_path, {})[library_name] = address

        for source_path, source in metadata.sources.items():
            self.sources[source_path] = {**self.sources.get(source_path, {}), **source}

        evm: Dict[str, Any] = {
            "bytecode": contract.bytecode.model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
            "deployedBytecode": contract.deployed_bytecode.model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
        }
        if contract.method_identifiers is not None:
            evm["methodIdentifiers"] = contract.method_identifiers

        compiled: Dict[str, Any] = {
            "abi": contract.abi,
            "metadata": contract.raw_metadata,
            "userdoc": metadata.output.userdoc,
            "devdoc": metadata.output.devdoc,
            "evm": evm,
        }
        self.contracts.setdefault(candidate.source_path, {})[candidate.contract_name] = {
            key: value for key, value in compiled.items() if value is not None
        }


def iter_forge_contract_candidates(
    root: Path,
    build_info_dir: Path,
    expected_sources: Mapping[str, str],
) -> Iterator[ForgeContractCandidate]:
    """
    Yield the per-contract files under ``root`` that belong to the manifest.

    Files that are not Forge contract outputs, that have zero or several
    compilation targets, or whose ``(id, source path)`` is not in
    ``expected_sources`` are skipped: they come from another compilation.
    """
    for path in walk_json_files(root, exclude=build_info_dir):
        try:
            contract = ForgeContractArtifact.model_validate(
                json.loads(path.read_text(encoding="utf-8"))
            )
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.debug("Skipping %s, not a Forge contract artifact: %s", path, e)
            continue

        targets = list(contract.compilation_targets.items())
        if len(targets) != 1:
            logger.debug(
                "Skipping %s, expected one compilation target, found %d",
                path,
                len(targets),
            )
            continue
        source_path, contract_name = targets[0]

        if expected_sources.get(str(contract.id)) != source_path:
            logger.debug(
                "Skipping %s, it belongs to another compilation (id %s, %s)",
                path,
                contract.id,
                source_path,
            )
            continue

        yield ForgeContractCandidate(
            path=path,
            source_path=source_path,
            contract_name=contract_name,
            contract=contract,
        )


def reconstruct_forge_default(
    manifest_path: Path, manifest: ForgeDefaultBuildInfo
) -> Tuple[Artifact, List[Path]]:
    """
    Rebuild an ``Artifact`` from a default Forge build.

    Parameters
    ----------
    manifest_path : Path
        Path of the build-info file, inside the ``build-info`` directory.
    manifest : ForgeDefaultBuildInfo
        Its parsed content.

    Returns
    -------
    Tuple[Artifact, List[Path]]
        The artifact and the original files it was built from: every
        contributing contract file, then the manifest.

    Raises
    ------
    ForgeReconstructionError
        If some ``(source path, id)`` pairs of the manifest were never visited.
    """
    expected_sources = dict(manifest.source_id_to_path)
    build_info_dir = manifest_path.parent
    root = build_info_dir.parent

    state = _Reconstruction()
    visited_sources: Dict[str, str] = {}
    seen_contracts: Set[Tuple[str, str, str]] = set()
    contributing_paths: List[Path] = []

    for candidate in iter_forge_contract_candidates(
        root, build_info_dir, expected_sources
    ):
        source_id = str(candidate.contract.id)
        key = (source_id, candidate.source_path, candidate.contract_name)
        if key in seen_contracts:
            # First visited file wins; the walk order is sorted and stable.
            logger.debug(
                "Skipping %s, %s:%s was already provided by an earlier file",
                candidate.path,
                candidate.source_path,
                candidate.contract_name,
            )
            continue
        seen_contracts.add(key)
        visited_sources[source_id] = candidate.source_path
        contributing_paths.append(candidate.path)
        state.absorb(candidate)

    if len(visited_sources) != len(expected_sources):
        missing = [
            (source_path, source_id)
            for source_id, source_path in expected_sources.items()
            if source_id not in visited_sources
        ]
        listing = ",\n".join(f"{path} (ID: {source_id})" for path, source_id in missing)
        raise ForgeReconstructionError(
            f'The provided build info file "{manifest_path}" seems to be in the Foundry '
            "default format but its compiled output could not be fully reconstructed: "
            f"{len(visited_sources)} of {len(expected_sources)} sources were found. "
            f"Missing contract paths:\n{listing}.\nPlease try to build with the "
            '"--build-info" option or file an issue with the error details.',
            missing=missing,
        )

    output = CompilerOutput.model_validate({"contracts": state.contracts})
    document = {
        "id": derive_artifact_id(output),
        "origin": {"id": manifest.id, "format": FORGE_DEFAULT_FORMAT},
        "solcLongVersion": state.solc_long_version,
        "input": {
            "language": state.language or manifest.language or "Solidity",
            "sources": state.sources,
            "settings": {**state.settings, "libraries": state.libraries},
        },
        "output": output.model_dump(mode="json", by_alias=True, exclude_none=True),
    }
    try:
        artifact = Artifact.model_validate(document)
    except ValidationError as e:
        logger.debug("Reconstructed Forge artifact is invalid: %s", e)
        raise BuildInfoValidationError(
            f'The artifact reconstructed from "{manifest_path}" is not valid. Please '
            'try to build with the "--build-info" option or file an issue with the '
            "error details. Run with debug mode for more info.",
            expected_format="forge-default",
        ) from e

    return artifact, contributing_paths + [manifest_path]
