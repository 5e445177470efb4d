"""
Functional entry points of solstash.

These wrap the orchestrators in ``solstash.core`` with defaults taken from
``SolstashSettings.from_env()``: the local cache location, the pull
concurrency, and the selection resolver (interactive prompt, or hard failure
in CI).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from solstash.core import diff as _diff
from solstash.core import inspect as _inspect
from solstash.core import pull as _pull
from solstash.core import push as _push
from solstash.core.discovery import default_selection_resolver
from solstash.core.local_cache import LocalCache
from solstash.core.settings import SolstashSettings
from solstash.protocols import SelectionResolver, StorageProvider
from solstash.storage import create_storage_provider

StorageLike = Union[StorageProvider, Mapping[str, Any]]


def _settings(settings: Optional[SolstashSettings]) -> SolstashSettings:
    return settings if settings is not None else SolstashSettings.from_env()


def _storage(storage: StorageLike) -> StorageProvider:
    if isinstance(storage, Mapping):
        return create_storage_provider(storage)
    return storage


def _resolver(
    resolver: Optional[SelectionResolver], settings: SolstashSettings
) -> SelectionResolver:
    if resolver is not None:
        return resolver
    return default_selection_resolver(settings.is_ci, settings.selection_timeout_seconds)


def default_local_cache(settings: Optional[SolstashSettings] = None) -> LocalCache:
    """The local cache at ``SOLSTASH_PULLED_ARTIFACTS_PATH`` (``.solstash``)."""
    return LocalCache(_settings(settings).pulled_artifacts_path)


def push(
    artifact_path: Union[str, Path],
    project: str,
    tag: Optional[str] = None,
    *,
    storage: StorageLike,
    force: bool = False,
    selection_resolver: Optional[SelectionResolver] = None,
    settings: Optional[SolstashSettings] = None,
) -> str:
    """
    Push a build to ``storage`` and return its content id.

    ``storage`` is a provider instance or a storage config mapping, e.g.
    ``{"type": "local", "path": "./storage"}``.
    """
    settings = _settings(settings)
    return _push.push(
        artifact_path,
        project,
        tag,
        _storage(storage),
        force=force,
        debug=settings.debug,
        selection_resolver=_resolver(selection_resolver, settings),
    )


def pull(
    project: str,
    target: Optional[str] = None,
    *,
    storage: StorageLike,
    local_cache: Optional[LocalCache] = None,
    force: bool = False,
    settings: Optional[SolstashSettings] = None,
) -> _pull.PullResult:
    """Pull ``target`` (or every remote tag and id) of ``project`` locally."""
    settings = _settings(settings)
    return _pull.pull(
        project,
        target,
        _storage(storage),
        local_cache or default_local_cache(settings),
        force=force,
        debug=settings.debug,
        max_concurrency=settings.pull_concurrency,
    )


def diff(
    candidate_path: Union[str, Path],
    project: str,
    tag_or_id: str,
    *,
    local_cache: Optional[LocalCache] = None,
    ignore_metadata: bool = False,
    selection_resolver: Optional[SelectionResolver] = None,
    settings: Optional[SolstashSettings] = None,
) -> List[_diff.Difference]:
    settings = _settings(settings)
    return _diff.diff(
        candidate_path,
        project,
        tag_or_id,
        local_cache or default_local_cache(settings),
        debug=settings.debug,
        selection_resolver=_resolver(selection_resolver, settings),
        ignore_metadata=ignore_metadata,
    )


def inspect(
    project: str,
    tag_or_id: str,
    *,
    local_cache: Optional[LocalCache] = None,
    settings: Optional[SolstashSettings] = None,
) -> _inspect.InspectResult:
    return _inspect.inspect_artifact(
        project, tag_or_id, local_cache or default_local_cache(settings)
    )


def export_abi(
    project: str,
    tag_or_id: str,
    contract_name: str,
    *,
    local_cache: Optional[LocalCache] = None,
    settings: Optional[SolstashSettings] = None,
) -> _inspect.ExportAbiResult:
    return _inspect.export_contract_abi(
        project,
        tag_or_id,
        contract_name,
        local_cache or default_local_cache(settings),
    )


def list_artifacts(
    *,
    local_cache: Optional[LocalCache] = None,
    settings: Optional[SolstashSettings] = None,
) -> List[_inspect.ArtifactItem]:
    return _inspect.list_pulled_artifacts(local_cache or default_local_cache(settings))
