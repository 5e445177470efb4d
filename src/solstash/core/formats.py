"""
solstash/core/formats.py

Sniffs a build-info file and decides which build tool produced it.

Detection only looks at the discriminating keys of the document; full schema
validation happens during normalization.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from solstash.errors import (
    BuildInfoNotFoundError,
    BuildInfoReadError,
    BuildInfoValidationError,
)
from solstash.types import (
    HARDHAT_V2_FORMAT,
    HARDHAT_V3_INPUT_FORMAT,
    HARDHAT_V3_OUTPUT_FORMAT,
    BuildInfoFormat,
    BuildInfoPath,
    HardhatV3BuildInfo,
    SingleFileBuildInfo,
)

logger = logging.getLogger(__name__)


def read_json_file(path: Path, display_name: str = "build info") -> Any:
    """Read and parse a JSON file, raising user-facing errors on failure."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug("Failed to read %s: %s", path, e)
        raise BuildInfoReadError(
            f'The provided {display_name} path "{path}" could not be read. Please check '
            "the permissions and try again. Run with debug mode for more info."
        ) from e
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.debug("Failed to parse %s as JSON: %s", path, e)
        raise BuildInfoReadError(
            f'The provided {display_name} file "{path}" could not be parsed as JSON. '
            "Please provide a valid JSON file. Run with debug mode for more info."
        ) from e


def _declared_format(document: Any) -> Optional[str]:
    if isinstance(document, dict):
        value = document.get("_format")
        return value if isinstance(value, str) else None
    return None


def _sniff_id(path: Path, expected_format: str) -> Optional[str]:
    """Return the ``id`` of ``path`` if it is a JSON document of ``expected_format``."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    if _declared_format(document) != expected_format:
        return None
    value = document.get("id")
    return value if isinstance(value, str) else None


def find_hardhat_v3_counterpart(
    path: Path, build_info_id: str, counterpart_format: str
) -> Path:
    """
    Find the other Hardhat v3 piece sharing ``build_info_id``.

    For an input piece, the conventional ``<id>.output.json`` sibling is proposed
    first; otherwise siblings are scanned and paired on equality of their
    ``id``. The pair is validated again during normalization.
    """
    if counterpart_format == HARDHAT_V3_OUTPUT_FORMAT:
        conventional = path.with_name(path.name[: -len(".json")] + ".output.json")
        if conventional.is_file():
            return conventional
    elif path.name.endswith(".output.json"):
        conventional = path.with_name(path.name[: -len(".output.json")] + ".json")
        if (
            conventional.is_file()
            and _sniff_id(conventional, counterpart_format) is not None
        ):
            return conventional

    for sibling in sorted(path.parent.glob("*.json")):
        if sibling == path:
            continue
        if _sniff_id(sibling, counterpart_format) == build_info_id:
            return sibling

    piece = "output" if counterpart_format == HARDHAT_V3_OUTPUT_FORMAT else "input"
    raise BuildInfoNotFoundError(
        f'The Hardhat V3 build info "{path}" has no matching {piece} file with id '
        f'"{build_info_id}" next to it. Please make sure both the input and the output '
        "build info files are present."
    )


def detect_format(path: Path | str) -> BuildInfoPath:
    """
    Detect the build-info format of the JSON file at ``path``.

    Returns
    -------
    BuildInfoPath
        A ``HardhatV3BuildInfo`` pairing both pieces for Hardhat v3, a
        ``SingleFileBuildInfo`` otherwise.

    Raises
    ------
    BuildInfoValidationError
        If the document does not look like any supported format.
    """
    path = Path(path)
    document = read_json_file(path)
    declared = _declared_format(document)

    if declared == HARDHAT_V2_FORMAT:
        return SingleFileBuildInfo(BuildInfoFormat.HARDHAT_V2, path)

    if declared in (HARDHAT_V3_INPUT_FORMAT, HARDHAT_V3_OUTPUT_FORMAT):
        build_info_id = document.get("id")
        if not isinstance(build_info_id, str):
            raise BuildInfoValidationError(
                f'The provided build info file "{path}" seems to be a Hardhat V3 build '
                "info piece but has no id. Please provide a valid Hardhat V3 build "
                "info JSON file.",
                expected_format=BuildInfoFormat.HARDHAT_V3.value,
            )
        if declared == HARDHAT_V3_INPUT_FORMAT:
            output_path = find_hardhat_v3_counterpart(
                path, build_info_id, HARDHAT_V3_OUTPUT_FORMAT
            )
            return HardhatV3BuildInfo(input_path=path, output_path=output_path)
        input_path = find_hardhat_v3_counterpart(
            path, build_info_id, HARDHAT_V3_INPUT_FORMAT
        )
        return HardhatV3BuildInfo(input_path=input_path, output_path=path)

    if isinstance(document, dict) and isinstance(
        document.get("source_id_to_path"), dict
    ):
        if "output" in document and "input" in document:
            return SingleFileBuildInfo(BuildInfoFormat.FORGE_WITH_BUILD_INFO, path)
        return SingleFileBuildInfo(BuildInfoFormat.FORGE_DEFAULT, path)

    raise BuildInfoValidationError(
        f'The provided build info file "{path}" does not match any of the supported '
        "formats (Hardhat V2, Hardhat V3, Forge). Please provide a valid build info "
        "JSON file. Run with debug mode for more info."
    )
