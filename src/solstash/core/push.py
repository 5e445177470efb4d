"""
solstash/core/push.py

Pushes a compiled build to a storage provider.

A push runs four ordered steps, each of which aborts the push on failure:

1. Locate the build-info file at the provided path.
2. Normalize it into a canonical artifact (this derives the id).
3. If a tag is given, check whether it already exists on the storage.
4. Upload the artifact and its original files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from solstash.core.discovery import look_for_build_info_file
from solstash.core.formats import detect_format
from solstash.core.normalize import NormalizedBuildInfo, normalize
from solstash.core.validation import validate_project, validate_tag
from solstash.errors import TagAlreadyExistsError, call_storage
from solstash.protocols import SelectionResolver, StorageProvider

logger = logging.getLogger(__name__)


def locate_and_normalize(
    artifact_path: Union[str, Path],
    selection_resolver: Optional[SelectionResolver] = None,
) -> NormalizedBuildInfo:
    """Steps shared by push and diff: locate, detect the format, normalize."""
    build_info_file = look_for_build_info_file(artifact_path, selection_resolver)
    located = detect_format(build_info_file)
    logger.info(located.describe())
    normalized = normalize(located)
    logger.info("Compilation artifact is valid (id %s)", normalized.artifact.id)
    return normalized


def push(
    artifact_path: Union[str, Path],
    project: str,
    tag: Optional[str],
    storage_provider: StorageProvider,
    *,
    force: bool = False,
    debug: bool = False,
    selection_resolver: Optional[SelectionResolver] = None,
) -> str:
    """
    Push the build at ``artifact_path`` to ``project``, optionally under ``tag``.

    Parameters
    ----------
    artifact_path : Union[str, Path]
        A build-info JSON file, or a directory holding one (directly or in a
        ``build-info`` subdirectory).
    project : str
        Target project.
    tag : Optional[str]
        Tag to point at the pushed artifact.
    storage_provider : StorageProvider
        Destination storage.
    force : bool, default False
        Overwrite ``tag`` if it already exists.
    debug : bool, default False
        Log the underlying cause of storage failures with its traceback.
    selection_resolver : Optional[SelectionResolver]
        Picks a file when a directory holds several build-info candidates.
        Defaults to failing on ambiguity.

    Returns
    -------
    str
        The content id of the pushed artifact.

    Raises
    ------
    TagAlreadyExistsError
        If ``tag`` exists and ``force`` is False. Nothing is uploaded.
    StorageOperationError
        If the storage provider fails unexpectedly.
    """
    validate_project(project)
    if tag is not None:
        validate_tag(tag)

    normalized = locate_and_normalize(artifact_path, selection_resolver)
    artifact = normalized.artifact

    if tag is None:
        logger.info("No tag provided, skipping tag existence check")
    else:
        tag_exists = call_storage(
            lambda: storage_provider.has_artifact_by_tag(project, tag),
            f'Error checking if the tag "{tag}" exists on the storage',
            debug,
        )
        if tag_exists and not force:
            raise TagAlreadyExistsError(
                f'The tag "{tag}" already exists on the storage. Please, make sure to '
                "use a different tag."
            )
        if tag_exists:
            logger.warning('Tag "%s" already exists, forcing push', tag)

    call_storage(
        lambda: storage_provider.upload_artifact(
            project, artifact, tag, normalized.original_content_paths
        ),
        f'Error pushing the artifact "{project}:{tag or artifact.id}" to the storage',
        debug,
    )
    logger.info("Artifact %s:%s uploaded successfully", project, tag or artifact.id)
    return artifact.id
