"""
solstash/core/pull.py

Pulls artifacts of a project from a storage provider into the local cache.

Targets are resolved from the remote listing first. Downloads then run
concurrently: each target is downloaded and stored independently in a worker
thread, and a failing target never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import closing
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from solstash.core.local_cache import LocalCache
from solstash.core.validation import validate_key, validate_project
from solstash.errors import (
    ArtifactNotFoundError,
    InvalidKeyError,
    InvalidSettingError,
    call_storage,
)
from solstash.protocols import StorageProvider

logger = logging.getLogger(__name__)


@dataclass
class PullResult:
    remote_tags: List[str] = field(default_factory=list)
    remote_ids: List[str] = field(default_factory=list)
    pulled_tags: List[str] = field(default_factory=list)
    pulled_ids: List[str] = field(default_factory=list)
    failed_tags: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return not (
            self.pulled_tags or self.pulled_ids or self.failed_tags or self.failed_ids
        )


@dataclass(frozen=True)
class _PullJob:
    kind: str  # "tag" or "id"
    key: str
    run: Callable[[], object]


def _resolve_targets(
    target: Optional[str], remote_tags: Sequence[str], remote_ids: Sequence[str]
) -> Tuple[List[str], List[str]]:
    if target is None:
        return list(remote_tags), list(remote_ids)
    if target in remote_tags:
        return [target], []
    if target in remote_ids:
        return [], [target]
    raise ArtifactNotFoundError(
        f'The tag or ID "{target}" does not exist in the storage.'
    )


def _split_valid_keys(keys: Sequence[str], kind: str) -> Tuple[List[str], List[str]]:
    """Partition remote keys into those usable locally and those that are not."""
    valid: List[str] = []
    invalid: List[str] = []
    for key in keys:
        try:
            validate_key(key, kind)
        except InvalidKeyError as e:
            logger.warning('Skipping the remote %s "%s": %s', kind, key, e)
            invalid.append(key)
        else:
            valid.append(key)
    return valid, invalid


async def _run_job(
    job: _PullJob, semaphore: asyncio.Semaphore, debug: bool
) -> None:
    async with semaphore:
        try:
            await asyncio.to_thread(job.run)
        except Exception:
            if debug:
                logger.exception("Error pulling the %s %s", job.kind, job.key)
            raise
    logger.info('Successfully pulled artifact "%s"', job.key)


async def pull_async(
    project: str,
    target: Optional[str],
    storage_provider: StorageProvider,
    local_cache: LocalCache,
    *,
    force: bool = False,
    debug: bool = False,
    max_concurrency: Optional[int] = None,
) -> PullResult:
    """
    Pull ``target`` (a tag or an id) of ``project``, or every remote artifact.

    Parameters
    ----------
    project : str
        Project to pull from.
    target : Optional[str]
        Tag or id to pull. Resolved as a tag first, then as an id. When None,
        every remote tag and id is pulled.
    storage_provider : StorageProvider
        Source storage.
    local_cache : LocalCache
        Destination cache.
    force : bool, default False
        Download targets even if they are already cached.
    debug : bool, default False
        Log per-item failures with their traceback.
    max_concurrency : Optional[int]
        Maximum number of simultaneous downloads. None runs every download at
        once (still bounded by the default thread pool).

    Returns
    -------
    PullResult
        Remote listing plus the pulled and failed tags and ids.

    Raises
    ------
    ArtifactNotFoundError
        If ``target`` is neither a remote tag nor a remote id. Nothing is
        downloaded.
    StorageOperationError
        If the remote listing fails.
    InvalidSettingError
        If ``max_concurrency`` is lower than 1.

    Notes
    -----
    Remote keys that break the local key rules are reported in
    ``failed_tags`` / ``failed_ids`` instead of aborting the pull.
    """
    validate_project(project)
    if max_concurrency is not None and max_concurrency < 1:
        raise InvalidSettingError(
            f"The pull concurrency must be a positive number, got {max_concurrency}. "
            "Use None to download every missing artifact at once."
        )

    remote_tags = await asyncio.to_thread(
        call_storage,
        lambda: storage_provider.list_tags(project),
        "Error listing the remote tags",
        debug,
    )
    remote_ids = await asyncio.to_thread(
        call_storage,
        lambda: storage_provider.list_ids(project),
        "Error listing the remote IDs",
        debug,
    )
    result = PullResult(remote_tags=list(remote_tags), remote_ids=list(remote_ids))

    tags, ids = _resolve_targets(target, remote_tags, remote_ids)
    # Keys another client wrote outside the local key rules fail on their own.
    tags, result.failed_tags = _split_valid_keys(tags, "tag")
    ids, result.failed_ids = _split_valid_keys(ids, "id")
    if not force:
        tags = [tag for tag in tags if not local_cache.has_tag(project, tag)]
        ids = [
            artifact_id
            for artifact_id in ids
            if not local_cache.has_id(project, artifact_id)
        ]

    if not tags and not ids:
        if result.up_to_date:
            logger.info("Project %s is up to date", project)
        return result

    local_cache.ensure_project_setup(project)
    logger.info("Found %d missing artifacts, starting to pull", len(tags) + len(ids))

    def _pull_tag(tag: str) -> Callable[[], object]:
        def run() -> object:
            with closing(
                storage_provider.download_artifact_by_tag(project, tag)
            ) as stream:
                return local_cache.create_artifact_by_tag(project, tag, stream)

        return run

    def _pull_id(artifact_id: str) -> Callable[[], object]:
        def run() -> object:
            with closing(
                storage_provider.download_artifact_by_id(project, artifact_id)
            ) as stream:
                return local_cache.create_artifact_by_id(project, artifact_id, stream)

        return run

    jobs = [_PullJob("tag", tag, _pull_tag(tag)) for tag in tags]
    jobs += [_PullJob("id", artifact_id, _pull_id(artifact_id)) for artifact_id in ids]

    semaphore = asyncio.Semaphore(max_concurrency or len(jobs))
    outcomes = await asyncio.gather(
        *(_run_job(job, semaphore, debug) for job in jobs), return_exceptions=True
    )

    for job, outcome in zip(jobs, outcomes):
        if isinstance(outcome, Exception):
            logger.warning('Error pulling the %s "%s": %s', job.kind, job.key, outcome)
            (result.failed_tags if job.kind == "tag" else result.failed_ids).append(
                job.key
            )
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            (result.pulled_tags if job.kind == "tag" else result.pulled_ids).append(
                job.key
            )
    return result


def pull(
    project: str,
    target: Optional[str],
    storage_provider: StorageProvider,
    local_cache: LocalCache,
    *,
    force: bool = False,
    debug: bool = False,
    max_concurrency: Optional[int] = None,
) -> PullResult:
    """Blocking wrapper around ``pull_async``."""
    return asyncio.run(
        pull_async(
            project,
            target,
            storage_provider,
            local_cache,
            force=force,
            debug=debug,
            max_concurrency=max_concurrency,
        )
    )
