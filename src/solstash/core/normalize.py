"""
solstash/core/normalize.py

Maps a located build-info file onto the canonical ``Artifact``.

There is one normalizer per ``BuildInfoFormat`` variant. Every normalizer
validates the whole document before the artifact is built, so an invalid build
never reaches storage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Type, TypeVar, Union, assert_never

from pydantic import BaseModel, ValidationError

from solstash.core.formats import detect_format, read_json_file
from solstash.core.forge import reconstruct_forge_default
from solstash.core.identity import derive_artifact_id
from solstash.errors import BuildInfoValidationError
from solstash.models.artifact import (
    Artifact,
    CompilerInput,
    CompilerOutput,
    Origin,
)
from solstash.models.build_info import (
    ForgeBuildInfoWithOutput,
    ForgeDefaultBuildInfo,
    HardhatV2BuildInfo,
    HardhatV3InputPiece,
    HardhatV3OutputPiece,
)
from solstash.types import (
    FORGE_WITH_BUILD_INFO_FORMAT,
    HARDHAT_V2_FORMAT,
    HARDHAT_V3_INPUT_FORMAT,
    HARDHAT_V3_OUTPUT_FORMAT,
    BuildInfoFormat,
    BuildInfoPath,
    HardhatV3BuildInfo,
    SingleFileBuildInfo,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

FORMAT_DISPLAY_NAMES = {
    BuildInfoFormat.HARDHAT_V2: "Hardhat V2",
    BuildInfoFormat.HARDHAT_V3: "Hardhat V3",
    BuildInfoFormat.FORGE_WITH_BUILD_INFO: "Forge (with build info)",
    BuildInfoFormat.FORGE_DEFAULT: "Forge (default)",
}


@dataclass(frozen=True)
class NormalizedBuildInfo:
    """A canonical artifact and the raw files it was built from."""

    artifact: Artifact
    original_content_paths: List[Path] = field(default_factory=list)


def _validate_piece(
    model: Type[ModelT], document: Any, path: Path, build_format: BuildInfoFormat
) -> ModelT:
    try:
        return model.model_validate(document)
    except ValidationError as e:
        logger.debug("Schema validation of %s failed: %s", path, e)
        display = FORMAT_DISPLAY_NAMES[build_format]
        raise BuildInfoValidationError(
            f'The provided build info file "{path}" does not match the expected '
            f"{display} format. Please provide a valid {display} build info JSON "
            "file. Run with debug mode for more info.",
            expected_format=build_format.value,
        ) from e


def build_artifact(
    origin: Origin,
    solc_long_version: str,
    compiler_input: CompilerInput,
    compiler_output: CompilerOutput,
) -> Artifact:
    """Assemble an ``Artifact``, deriving its id from the compiled contracts."""
    return Artifact(
        id=derive_artifact_id(compiler_output),
        origin=origin,
        solc_long_version=solc_long_version,
        input=compiler_input,
        # Only the contracts are part of the canonical output.
        output=CompilerOutput(contracts=compiler_output.contracts),
    )


def normalize_hardhat_v2(path: Path) -> NormalizedBuildInfo:
    build_info = _validate_piece(
        HardhatV2BuildInfo, read_json_file(path), path, BuildInfoFormat.HARDHAT_V2
    )
    artifact = build_artifact(
        Origin(id=build_info.id, format=HARDHAT_V2_FORMAT),
        build_info.solc_long_version,
        build_info.input,
        build_info.output,
    )
    return NormalizedBuildInfo(artifact=artifact, original_content_paths=[path])


def normalize_hardhat_v3(located: HardhatV3BuildInfo) -> NormalizedBuildInfo:
    input_piece = _validate_piece(
        HardhatV3InputPiece,
        read_json_file(located.input_path),
        located.input_path,
        BuildInfoFormat.HARDHAT_V3,
    )
    output_piece = _validate_piece(
        HardhatV3OutputPiece,
        read_json_file(located.output_path),
        located.output_path,
        BuildInfoFormat.HARDHAT_V3,
    )
    if input_piece.id != output_piece.id:
        raise BuildInfoValidationError(
            f'The Hardhat V3 build info input "{located.input_path}" (id '
            f'"{input_piece.id}") and output "{located.output_path}" (id '
            f'"{output_piece.id}") do not belong together. Please provide matching '
            "input and output build info files.",
            expected_format=BuildInfoFormat.HARDHAT_V3.value,
        )

    artifact = build_artifact(
        Origin(
            id=input_piece.id,
            format=HARDHAT_V3_INPUT_FORMAT,
            output_format=HARDHAT_V3_OUTPUT_FORMAT,
        ),
        input_piece.solc_long_version,
        input_piece.input,
        output_piece.output,
    )
    return NormalizedBuildInfo(
        artifact=artifact,
        original_content_paths=[located.input_path, located.output_path],
    )


def normalize_forge_with_build_info(path: Path) -> NormalizedBuildInfo:
    build_info = _validate_piece(
        ForgeBuildInfoWithOutput,
        read_json_file(path),
        path,
        BuildInfoFormat.FORGE_WITH_BUILD_INFO,
    )
    artifact = build_artifact(
        Origin(id=build_info.id, format=FORGE_WITH_BUILD_INFO_FORMAT),
        build_info.compiler_version,
        build_info.input,
        build_info.output,
    )
    return NormalizedBuildInfo(artifact=artifact, original_content_paths=[path])


def normalize_forge_default(path: Path) -> NormalizedBuildInfo:
    manifest = _validate_piece(
        ForgeDefaultBuildInfo,
        read_json_file(path),
        path,
        BuildInfoFormat.FORGE_DEFAULT,
    )
    artifact, original_content_paths = reconstruct_forge_default(path, manifest)
    return NormalizedBuildInfo(
        artifact=artifact, original_content_paths=original_content_paths
    )


def normalize(target: Union[BuildInfoPath, Path, str]) -> NormalizedBuildInfo:
    """
    Normalize a build-info file into a canonical artifact.

    Parameters
    ----------
    target : Union[BuildInfoPath, Path, str]
        Either an already located build info (see ``detect_format``) or the
        path of a build-info JSON file, whose format is then detected.

    Returns
    -------
    NormalizedBuildInfo
        The artifact and the list of raw files it was built from, to be
        archived alongside it.

    Raises
    ------
    BuildInfoReadError
        If a file cannot be read or is not valid JSON.
    BuildInfoValidationError
        If a file does not match the schema of its format.
    """
    located = (
        detect_format(target) if isinstance(target, (str, Path)) else target
    )
    logger.debug("Normalizing %s", located.describe())

    match located:
        case HardhatV3BuildInfo():
            return normalize_hardhat_v3(located)
        case SingleFileBuildInfo(format=BuildInfoFormat.HARDHAT_V2, path=path):
            return normalize_hardhat_v2(path)
        case SingleFileBuildInfo(
            format=BuildInfoFormat.FORGE_WITH_BUILD_INFO, path=path
        ):
            return normalize_forge_with_build_info(path)
        case SingleFileBuildInfo(format=BuildInfoFormat.FORGE_DEFAULT, path=path):
            return normalize_forge_default(path)
        case SingleFileBuildInfo(format=BuildInfoFormat.HARDHAT_V3):
            raise BuildInfoValidationError(
                "Hardhat V3 build info must be located as an input/output pair.",
                expected_format=BuildInfoFormat.HARDHAT_V3.value,
            )
        case _:
            assert_never(located)
