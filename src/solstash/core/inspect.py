"""
solstash/core/inspect.py

Read-only queries over the local cache: inspecting a pulled artifact,
exporting one contract ABI and listing everything that has been pulled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from solstash.core.local_cache import LocalCache
from solstash.core.validation import validate_project
from solstash.errors import ContractNotFoundError
from solstash.models.artifact import Artifact, Origin

logger = logging.getLogger(__name__)

DEFAULT_EVM_VERSION = "default"
DEFAULT_OPTIMIZER_RUNS = 200


@dataclass(frozen=True)
class CompilerSummary:
    solc_long_version: str
    evm_version: str = DEFAULT_EVM_VERSION
    optimizer_enabled: bool = False
    optimizer_runs: int = DEFAULT_OPTIMIZER_RUNS
    remappings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SourceContracts:
    source_path: str
    contracts: List[str]


@dataclass(frozen=True)
class InspectResult:
    project: str
    tag: Optional[str]
    id: str
    file_size: int
    origin: Origin
    compiler: CompilerSummary
    source_files: List[str]
    contracts_by_source: List[SourceContracts]


@dataclass(frozen=True)
class ExportAbiResult:
    project: str
    tag: Optional[str]
    id: str
    contract_path: str
    contract_name: str
    abi: List[Dict[str, Any]]


@dataclass(frozen=True)
class ArtifactItem:
    project: str
    id: str
    tag: Optional[str]
    last_modified_at: datetime


def summarize_compiler(artifact: Artifact) -> CompilerSummary:
    settings = artifact.input.settings
    optimizer = settings.optimizer
    return CompilerSummary(
        solc_long_version=artifact.solc_long_version,
        evm_version=settings.evm_version or DEFAULT_EVM_VERSION,
        optimizer_enabled=bool(optimizer and optimizer.enabled),
        optimizer_runs=(
            optimizer.runs
            if optimizer is not None and optimizer.runs is not None
            else DEFAULT_OPTIMIZER_RUNS
        ),
        remappings=list(settings.remappings or []),
    )


def inspect_artifact(
    project: str, tag_or_id: str, local_cache: LocalCache
) -> InspectResult:
    """Describe a pulled artifact: origin, compiler settings, sources and contracts."""
    validate_project(project)
    reference = local_cache.resolve_reference(project, tag_or_id)
    artifact = local_cache.retrieve_artifact(reference)

    return InspectResult(
        project=project,
        tag=reference.tag,
        id=artifact.id,
        file_size=reference.path.stat().st_size,
        origin=artifact.origin,
        compiler=summarize_compiler(artifact),
        source_files=sorted(artifact.input.sources),
        contracts_by_source=[
            SourceContracts(source_path=path, contracts=sorted(contracts))
            for path, contracts in sorted(artifact.output.contracts.items())
            if contracts
        ],
    )


def export_contract_abi(
    project: str,
    tag_or_id: str,
    contract_name: str,
    local_cache: LocalCache,
) -> ExportAbiResult:
    """
    Return the ABI of one contract of a pulled artifact.

    ``contract_name`` is either a short name, which must be unique across the
    artifact's sources, or a fully qualified ``<sourcePath>:<contractName>``.

    Raises
    ------
    ContractNotFoundError
        If the contract does not exist, the short name is ambiguous, or the
        contract has no ABI.
    """
    validate_project(project)
    reference = local_cache.resolve_reference(project, tag_or_id)
    artifact = local_cache.retrieve_artifact(reference)
    display = f"{project}:{tag_or_id}"
    contracts = artifact.output.contracts

    if ":" in contract_name:
        source_path, _, name = contract_name.rpartition(":")
        if source_path not in contracts:
            raise ContractNotFoundError(
                f"No contracts found for source path {source_path} in artifact "
                f"{display}"
            )
        if name not in contracts[source_path]:
            raise ContractNotFoundError(
                f"No contract found with name {name} in source path {source_path} in "
                f"artifact {display}"
            )
    else:
        name = contract_name
        matching = sorted(path for path, by_name in contracts.items() if name in by_name)
        if not matching:
            raise ContractNotFoundError(
                f"No contract found with name {name} in artifact {display}"
            )
        if len(matching) > 1:
            raise ContractNotFoundError(
                f"Multiple contracts found with name {name} in artifact {display}, "
                "please specify the fully qualified contract name (i.e. "
                f"<sourcePath>:{name}).\nMatching source paths: {', '.join(matching)}"
            )
        source_path = matching[0]

    abi = contracts[source_path][name].abi
    if abi is None:
        raise ContractNotFoundError(
            f"No ABI found for contract {name} in source path {source_path} in "
            f"artifact {display}"
        )
    return ExportAbiResult(
        project=project,
        tag=reference.tag,
        id=artifact.id,
        contract_path=source_path,
        contract_name=name,
        abi=abi,
    )


def list_pulled_artifacts(local_cache: LocalCache) -> List[ArtifactItem]:
    """
    List every pulled artifact, project by project.

    Tags come first, resolved to their id. Ids that no tag of the same
    project points at follow.
    """
    items: List[ArtifactItem] = []
    for project in local_cache.list_projects():
        seen_ids = set()
        for entry in local_cache.list_tags(project):
            artifact_id = local_cache.retrieve_artifact_id(project, entry.tag)
            items.append(
                ArtifactItem(project, artifact_id, entry.tag, entry.last_modified_at)
            )
            seen_ids.add(artifact_id)
        for entry in local_cache.list_ids(project):
            if entry.id in seen_ids:
                continue
            items.append(ArtifactItem(project, entry.id, None, entry.last_modified_at))
            seen_ids.add(entry.id)
    logger.debug("Found %d pulled artifacts in %s", len(items), local_cache)
    return items
