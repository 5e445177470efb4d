"""
solstash/errors.py

User-actionable errors raised by solstash.

Every ``SolstashError`` carries a message that can be shown to the user as-is.
Unexpected failures (I/O, storage SDK errors) are wrapped in
``StorageOperationError`` with the original exception chained as ``__cause__``
so callers can surface it in a diagnostic mode only.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SolstashError(Exception):
    """Base class for errors whose message is meant for the end user."""


class InvalidKeyError(SolstashError, ValueError):
    """A project, tag or id does not satisfy the key rules."""


class InvalidSettingError(SolstashError, ValueError):
    """An option is outside the range it accepts."""


class BuildInfoNotFoundError(SolstashError):
    """No build-info candidate could be found at the provided path."""


class AmbiguousBuildInfoError(SolstashError):
    """Several build-info candidates were found and none could be selected."""


class SelectionTimeoutError(SolstashError):
    """The interactive selection prompt was not answered in time."""


class BuildInfoReadError(SolstashError):
    """A build-info file could not be read or parsed as JSON."""


class BuildInfoValidationError(SolstashError):
    """A build-info file does not match the schema of its detected format."""

    def __init__(self, message: str, expected_format: str | None = None):
        super().__init__(message)
        self.expected_format = expected_format


class ForgeReconstructionError(BuildInfoValidationError):
    """The scattered Forge contract outputs do not cover the build-info manifest."""

    def __init__(self, message: str, missing: Iterable[Tuple[str, str]] = ()):
        super().__init__(message, expected_format="forge-default")
        self.missing = list(missing)


class TagAlreadyExistsError(SolstashError):
    """The tag is already in use and the push was not forced."""


class ArtifactNotFoundError(SolstashError):
    """The requested tag or id is unknown to the queried storage."""


class InvalidArtifactError(SolstashError):
    """A stored artifact does not satisfy the canonical artifact schema."""


class ContractNotFoundError(SolstashError):
    """A contract name could not be resolved inside an artifact."""


class StorageOperationError(SolstashError):
    """An unexpected failure while talking to a storage backend."""

    def __init__(self, message: str):
        super().__init__(
            f"{message}. Please check the storage configuration or re-run with "
            "debug mode for more info."
        )


def call_storage(
    operation: Callable[[], T], failure_message: str, debug: bool = False
) -> T:
    """
    Run a storage call, wrapping unexpected failures in ``StorageOperationError``.

    User-actionable ``SolstashError`` instances pass through untouched. The
    original exception stays chained as ``__cause__`` and is logged with its
    traceback when ``debug`` is set.
    """
    try:
        return operation()
    except SolstashError:
        raise
    except Exception as e:
        if debug:
            logger.exception("%s", failure_message)
        raise StorageOperationError(failure_message) from e
