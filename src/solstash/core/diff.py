"""
solstash/core/diff.py

Compares a local build against an artifact already pulled in the local cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from solstash.core.local_cache import LocalCache
from solstash.core.push import locate_and_normalize
from solstash.core.validation import validate_project
from solstash.errors import SolstashError
from solstash.models.artifact import Artifact, CompiledContract
from solstash.protocols import SelectionResolver

logger = logging.getLogger(__name__)


class DifferenceStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


@dataclass(frozen=True)
class Difference:
    path: str
    name: str
    status: DifferenceStatus

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.path}:{self.name}"


def _comparable(contract: CompiledContract, ignore_metadata: bool) -> Dict[str, Any]:
    dumped = contract.model_dump(mode="json", by_alias=True, exclude_none=True)
    if ignore_metadata:
        dumped.pop("metadata", None)
    return dumped


def compare_artifacts(
    candidate: Artifact, reference: Artifact, ignore_metadata: bool = False
) -> List[Difference]:
    """
    Compare the compiled contracts of two artifacts.

    Contracts only in ``candidate`` are ``added``, contracts only in
    ``reference`` are ``removed``, contracts in both whose serialized content
    differs are ``changed``. With ``ignore_metadata`` the raw compiler metadata
    string does not take part in the comparison.
    """
    candidate_contracts: Dict[Tuple[str, str], CompiledContract] = {
        (path, name): contract for path, name, contract in candidate.iter_contracts()
    }
    reference_contracts: Dict[Tuple[str, str], CompiledContract] = {
        (path, name): contract for path, name, contract in reference.iter_contracts()
    }

    differences = []
    for key in candidate_contracts.keys() | reference_contracts.keys():
        if key not in reference_contracts:
            status = DifferenceStatus.ADDED
        elif key not in candidate_contracts:
            status = DifferenceStatus.REMOVED
        elif _comparable(candidate_contracts[key], ignore_metadata) != _comparable(
            reference_contracts[key], ignore_metadata
        ):
            status = DifferenceStatus.CHANGED
        else:
            continue
        differences.append(Difference(path=key[0], name=key[1], status=status))

    return sorted(differences, key=lambda d: (d.path, d.name))


def diff(
    candidate_path: Union[str, Path],
    project: str,
    tag_or_id: str,
    local_cache: LocalCache,
    *,
    debug: bool = False,
    selection_resolver: Optional[SelectionResolver] = None,
    ignore_metadata: bool = False,
) -> List[Difference]:
    """
    Diff the build at ``candidate_path`` against a pulled artifact.

    The build goes through the same locate and normalize steps as a push but
    is not uploaded. ``tag_or_id`` is resolved in the local cache as an id
    first, then as a tag.

    Raises
    ------
    ArtifactNotFoundError
        If ``tag_or_id`` is neither a local id nor a local tag.
    """
    validate_project(project)
    reference_entry = local_cache.resolve_reference(project, tag_or_id)

    try:
        normalized = locate_and_normalize(candidate_path, selection_resolver)
    except SolstashError as e:
        if debug and e.__cause__ is not None:
            logger.debug("Underlying error", exc_info=e.__cause__)
        raise
    reference = local_cache.retrieve_artifact(reference_entry)

    differences = compare_artifacts(
        normalized.artifact, reference, ignore_metadata=ignore_metadata
    )
    logger.info(
        "Diff of %s against %s:%s: %d differences",
        normalized.artifact.id,
        project,
        tag_or_id,
        len(differences),
    )
    return differences
