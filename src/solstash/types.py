"""
solstash/types.py

Closed set of supported build-info formats and the located build-info variants.

A ``BuildInfoPath`` is what discovery hands to normalization: either a single
JSON file whose format has been sniffed, or the pair of Hardhat v3 pieces.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TypeAlias, Union

HARDHAT_V2_FORMAT = "hh-sol-build-info-1"
HARDHAT_V3_INPUT_FORMAT = "hh3-sol-build-info-1"
HARDHAT_V3_OUTPUT_FORMAT = "hh3-sol-build-info-output-1"
FORGE_WITH_BUILD_INFO_FORMAT = "ethers-rs-sol-build-info-1"
FORGE_DEFAULT_FORMAT = "forge-default"

# Formats that may appear as ``origin.format`` without an ``outputFormat``.
SINGLE_FILE_ORIGIN_FORMATS = frozenset(
    {HARDHAT_V2_FORMAT, FORGE_WITH_BUILD_INFO_FORMAT, FORGE_DEFAULT_FORMAT}
)


class BuildInfoFormat(str, Enum):
    HARDHAT_V2 = "hardhat-v2"
    HARDHAT_V3 = "hardhat-v3"
    FORGE_WITH_BUILD_INFO = "forge-with-build-info"
    FORGE_DEFAULT = "forge-default"


@dataclass(frozen=True)
class SingleFileBuildInfo:
    format: BuildInfoFormat
    path: Path

    def describe(self) -> str:
        if self.format is BuildInfoFormat.HARDHAT_V2:
            return f"Hardhat V2 compilation artifact found at {self.path}"
        return f"Forge compilation artifact found at {self.path}"


@dataclass(frozen=True)
class HardhatV3BuildInfo:
    input_path: Path
    output_path: Path

    @property
    def format(self) -> BuildInfoFormat:
        return BuildInfoFormat.HARDHAT_V3

    def describe(self) -> str:
        return f"Hardhat V3 compilation artifact found at {self.input_path}"


BuildInfoPath: TypeAlias = Union[SingleFileBuildInfo, HardhatV3BuildInfo]
