"""
solstash/models/build_info.py

Schemas for the build-info files emitted by the supported build tools.

These models validate what Hardhat (v2, v3) and Forge (with and without the
``--build-info`` option) write to disk, before normalization maps them onto
the canonical ``Artifact``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from solstash.models.artifact import Bytecode, CompilerInput, CompilerOutput


class BuildInfoModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class HardhatV2BuildInfo(BuildInfoModel):
    format: Literal["hh-sol-build-info-1"] = Field(alias="_format")
    id: str
    solc_version: Optional[str] = Field(default=None, alias="solcVersion")
    solc_long_version: str = Field(alias="solcLongVersion")
    input: CompilerInput
    output: CompilerOutput


class HardhatV3InputPiece(BuildInfoModel):
    format: Literal["hh3-sol-build-info-1"] = Field(alias="_format")
    id: str
    solc_version: Optional[str] = Field(default=None, alias="solcVersion")
    solc_long_version: str = Field(alias="solcLongVersion")
    user_source_name_map: Dict[str, str] = Field(alias="userSourceNameMap")
    input: CompilerInput


class HardhatV3OutputPiece(BuildInfoModel):
    format: Literal["hh3-sol-build-info-output-1"] = Field(alias="_format")
    id: str
    output: CompilerOutput


class ForgeBuildInfoWithOutput(BuildInfoModel):
    """Forge build info written with ``--build-info``: input and output in one file."""

    format: Optional[Literal["ethers-rs-sol-build-info-1"]] = Field(
        default=None, alias="_format"
    )
    id: str
    source_id_to_path: Dict[str, str]
    solc_version: Optional[str] = Field(default=None, alias="solcVersion")
    solc_long_version: Optional[str] = Field(default=None, alias="solcLongVersion")
    input: CompilerInput
    output: CompilerOutput

    @model_validator(mode="after")
    def _require_compiler_version(self) -> "ForgeBuildInfoWithOutput":
        if not (self.solc_long_version or self.solc_version):
            raise ValueError("solcLongVersion or solcVersion is required")
        return self

    @property
    def compiler_version(self) -> str:
        return self.solc_long_version or self.solc_version or ""


class ForgeDefaultBuildInfo(BuildInfoModel):
    """
    Default Forge build info: only a manifest of ``source id -> source path``.

    The compiled output is scattered as one JSON file per contract across the
    artifacts tree; see ``solstash.core.forge``.
    """

    id: str
    source_id_to_path: Dict[str, str]
    language: Optional[str] = None

    @field_validator("source_id_to_path")
    @classmethod
    def _non_empty(cls, value: Dict[str, str]) -> Dict[str, str]:
        if not value:
            raise ValueError("source_id_to_path must list at least one source")
        return value


class ForgeCompilerVersion(BuildInfoModel):
    version: str


class ForgeMetadataOutput(BuildInfoModel):
    abi: Optional[List[Dict[str, Any]]] = None
    devdoc: Optional[Dict[str, Any]] = None
    userdoc: Optional[Dict[str, Any]] = None


class ForgeMetadataSettings(BuildInfoModel):
    compilation_target: Dict[str, str] = Field(
        default_factory=dict, alias="compilationTarget"
    )
    remappings: Optional[List[str]] = None
    optimizer: Optional[Dict[str, Any]] = None
    evm_version: Optional[str] = Field(default=None, alias="evmVersion")
    eof_version: Optional[int] = Field(default=None, alias="eofVersion")
    via_ir: Optional[bool] = Field(default=None, alias="viaIR")
    metadata: Optional[Dict[str, Any]] = None
    # "file:LibraryName" -> address
    libraries: Dict[str, str] = Field(default_factory=dict)


class ForgeContractMetadata(BuildInfoModel):
    compiler: ForgeCompilerVersion
    language: str
    output: ForgeMetadataOutput = Field(default_factory=ForgeMetadataOutput)
    settings: ForgeMetadataSettings
    sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class ForgeContractArtifact(BuildInfoModel):
    """One per-contract JSON file of a default Forge build."""

    abi: List[Dict[str, Any]]
    bytecode: Bytecode
    deployed_bytecode: Bytecode = Field(alias="deployedBytecode")
    method_identifiers: Optional[Dict[str, str]] = Field(
        default=None, alias="methodIdentifiers"
    )
    raw_metadata: Optional[str] = Field(default=None, alias="rawMetadata")
    metadata: Optional[ForgeContractMetadata] = None
    id: int

    @property
    def compilation_targets(self) -> Dict[str, str]:
        if self.metadata is None:
            return {}
        return self.metadata.settings.compilation_target

