"""
solstash/core/identity.py

Derives the content identifier of an artifact.
"""

import hashlib
import json
from typing import Any, Mapping, Union

from solstash.models.artifact import CompilerOutput

ARTIFACT_ID_LENGTH = 12


def canonical_json(payload: Any) -> str:
    """
    Serialize ``payload`` to a canonical JSON string.

    Keys are sorted recursively and separators are compact, so two structures
    that are equal as mappings always serialize to the same bytes regardless of
    the insertion order of their keys. ``ensure_ascii=True`` keeps the output
    locale independent.
    """
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def derive_artifact_id(contracts: Union[CompilerOutput, Mapping[str, Any]]) -> str:
    """
    Computes the content id of an artifact from its compiled contracts.

    The id is a pure function of ``output.contracts``: compiler input, settings
    and origin never contribute, so two builds producing the same compiled
    contracts share one id.

    Parameters
    ----------
    contracts : Union[CompilerOutput, Mapping[str, Any]]
        Either a ``CompilerOutput`` or an already serialized
        ``source path -> contract name -> contract`` mapping.

    Returns
    -------
    str
        The first ``ARTIFACT_ID_LENGTH`` hex characters of the SHA256 of the
        canonical JSON of the contracts.
    """
    if isinstance(contracts, CompilerOutput):
        payload = contracts.contracts_payload()
    else:
        payload = contracts
    digest = hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()
    return digest[:ARTIFACT_ID_LENGTH]
