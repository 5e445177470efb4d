from __future__ import annotations

import re

from solstash.errors import InvalidKeyError

MAX_KEY_LENGTH = 128
VALID_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


def validate_key(key: str, kind: str = "key") -> str:
    """
    Check that ``key`` can be used as a project, tag or id.

    Keys become file names and object keys, so they are restricted to a
    portable character set and may not contain path separators or ``..``.
    """
    if not isinstance(key, str):
        raise InvalidKeyError(f"The {kind} must be a string, got {type(key)}")
    if not key:
        raise InvalidKeyError(f"The {kind} cannot be empty.")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidKeyError(f"The {kind} exceeds max length {MAX_KEY_LENGTH}: {key}")
    if ".." in key:
        raise InvalidKeyError(f"Invalid {kind} '{key}'. It cannot contain '..'.")
    if not VALID_KEY_PATTERN.match(key):
        raise InvalidKeyError(
            f"Invalid {kind} '{key}'. It must start with a letter, number or underscore "
            "and contain only alphanumeric characters, underscores, dashes and dots."
        )
    return key


def validate_project(project: str) -> str:
    return validate_key(project, "project")


def validate_tag(tag: str) -> str:
    return validate_key(tag, "tag")
