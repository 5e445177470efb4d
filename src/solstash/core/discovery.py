"""
solstash/core/discovery.py

Locating build-info files on disk.

It handles:
1. Resolving a user-provided path (file or directory) to one build-info file.
2. Delegating ambiguous directories to a ``SelectionResolver``.
3. Walking an artifacts tree lazily for scattered per-contract JSON files.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set

from rich.console import Console
from rich.prompt import IntPrompt

from solstash.errors import (
    AmbiguousBuildInfoError,
    BuildInfoNotFoundError,
    BuildInfoReadError,
    SelectionTimeoutError,
)
from solstash.protocols import SelectionResolver

logger = logging.getLogger(__name__)

BUILD_INFO_DIRNAME = "build-info"
HARDHAT_V3_OUTPUT_SUFFIX = ".output.json"


class NonInteractiveSelectionResolver:
    """Fails on ambiguity. Used in CI and whenever no terminal is available."""

    def select(self, folder: Path, candidates: Sequence[Path]) -> Path:
        raise AmbiguousBuildInfoError(
            f'Multiple JSON files found in "{folder}". In CI environments, please make '
            "sure to have a unique JSON file in the directory. Alternatively, please "
            "specify a direct path to the build info file instead of a directory to "
            "avoid ambiguity."
        )


class PromptSelectionResolver:
    """
    Asks the user to pick a build-info file, most recently modified first.

    The prompt is written to stderr. If no valid answer is given within
    ``timeout_seconds`` the selection aborts with ``SelectionTimeoutError``;
    a timeout of ``0`` waits indefinitely.
    """

    def __init__(
        self, timeout_seconds: float = 30.0, console: Optional[Console] = None
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.console = console or Console(stderr=True)

    def select(self, folder: Path, candidates: Sequence[Path]) -> Path:
        ordered = sorted(candidates, key=lambda p: p.stat().st_mtime, reverse=True)
        self.console.print(
            f'\nMultiple JSON files found in "{folder}". '
            "Please select which build info file to use:"
        )
        for index, candidate in enumerate(ordered, start=1):
            self.console.print(f"  {index}. {describe_candidate(candidate)}")

        answer: List[int] = []
        failure: List[BaseException] = []

        def _ask() -> None:
            try:
                answer.append(
                    IntPrompt.ask(
                        "Enter your choice (number)",
                        console=self.console,
                        choices=[str(i) for i in range(1, len(ordered) + 1)],
                        show_choices=False,
                    )
                )
            except BaseException as exc:  # surfaced in the calling thread
                failure.append(exc)

        # Daemon thread: an unanswered prompt must not keep the process alive.
        worker = threading.Thread(target=_ask, daemon=True)
        worker.start()
        worker.join(self.timeout_seconds if self.timeout_seconds > 0 else None)

        if worker.is_alive():
            raise SelectionTimeoutError(
                f"User selection timed out after {self.timeout_seconds:g}s."
            )
        if failure:
            raise failure[0]
        return ordered[answer[0] - 1]


def default_selection_resolver(
    is_ci: bool, timeout_seconds: float = 30.0
) -> SelectionResolver:
    if is_ci:
        return NonInteractiveSelectionResolver()
    return PromptSelectionResolver(timeout_seconds=timeout_seconds)


def describe_candidate(path: Path, now: Optional[datetime] = None) -> str:
    stat = path.stat()
    modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
    return f"{path.name} ({format_time_ago(modified, now)}, {format_file_size(stat.st_size)})"


def format_time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return "just now"


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.1f}MB"


def look_for_build_info_file(
    input_path: Path | str,
    resolver: Optional[SelectionResolver] = None,
) -> Path:
    """
    Resolve ``input_path`` to a single build-info JSON file.

    A ``.json`` file is returned as-is. For a directory, its ``build-info``
    subdirectory is searched when present, otherwise the directory itself.
    Hardhat v3 output pieces (``*.output.json``) are not candidates: they are
    paired with their input piece during format detection.

    Raises
    ------
    BuildInfoNotFoundError
        If the path does not exist, is not JSON, or holds no candidate.
    AmbiguousBuildInfoError
        If several candidates exist and the resolver cannot pick one.
    """
    path = Path(input_path)
    if not path.exists():
        raise BuildInfoNotFoundError(
            f'The provided path "{path}" does not exist or is not accessible. Please '
            "provide a valid path to a compilation artifact (build info) or a "
            "directory containing it."
        )

    if path.is_file():
        if path.suffix != ".json":
            raise BuildInfoNotFoundError(
                f'The provided path "{path}" is a file but does not have a .json '
                "extension. Please provide a valid path to a JSON compilation "
                "artifact (build info)."
            )
        return path

    if not path.is_dir():
        raise BuildInfoNotFoundError(
            f'The provided path "{path}" is neither a file nor a directory. Please '
            "provide a valid path to a compilation artifact (build info) or a "
            "directory containing it."
        )

    folder = path
    if (path / BUILD_INFO_DIRNAME).is_dir():
        folder = path / BUILD_INFO_DIRNAME

    candidates = sorted(
        entry
        for entry in folder.iterdir()
        if entry.is_file()
        and entry.suffix == ".json"
        and not entry.name.endswith(HARDHAT_V3_OUTPUT_SUFFIX)
    )
    logger.debug("Build info candidates in %s: %s", folder, [c.name for c in candidates])

    if not candidates:
        raise BuildInfoNotFoundError(
            f'No JSON file found in the provided path "{path}". Please provide a valid '
            "path to a JSON compilation artifact (build info) or a directory "
            "containing it."
        )
    if len(candidates) == 1:
        return candidates[0]

    resolver = resolver or NonInteractiveSelectionResolver()
    return resolver.select(folder, candidates)


def walk_json_files(root: Path, exclude: Optional[Path] = None) -> Iterator[Path]:
    """
    Lazily yield every ``*.json`` file below ``root``.

    Entries of each directory are visited in sorted name order, depth first, so
    the sequence does not depend on the platform's directory listing order.
    ``exclude`` (typically the ``build-info`` directory) is never entered, and
    a directory reached twice through symlinks is only walked once.
    The returned generator is single-use.

    Raises
    ------
    BuildInfoReadError
        If a directory of the tree cannot be listed.
    """
    excluded = exclude.resolve() if exclude is not None else None
    visited: Set[Path] = set()
    stack: List[Path] = [root]
    while stack:
        directory = stack.pop()
        resolved = directory.resolve()
        if resolved in visited:
            logger.debug("Skipping %s, already walked as %s", directory, resolved)
            continue
        visited.add(resolved)
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError as e:
            logger.debug("Failed to list %s: %s", directory, e)
            raise BuildInfoReadError(
                f'The directory "{directory}" could not be read while looking for '
                "compiled contract files. Please check the permissions and try "
                "again. Run with debug mode for more info."
            ) from e
        subdirectories: List[Path] = []
        for entry in entries:
            if entry.is_dir():
                if excluded is not None and entry.resolve() == excluded:
                    continue
                subdirectories.append(entry)
            elif entry.is_file() and entry.suffix == ".json":
                yield entry
        # Reversed so the lexicographically first subdirectory is walked first.
        stack.extend(reversed(subdirectories))
