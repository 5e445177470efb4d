from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from solstash.types import (
    HARDHAT_V3_INPUT_FORMAT,
    HARDHAT_V3_OUTPUT_FORMAT,
    SINGLE_FILE_ORIGIN_FORMATS,
)


def strip_hex_prefix(value: str) -> str:
    """Return ``value`` without a leading ``0x``."""
    if value.startswith("0x"):
        return value[2:]
    return value


class CompilerModel(BaseModel):
    """
    Base for compiler input/output structures.

    Compiler JSON carries many optional, version-dependent fields. Only the ones
    solstash reasons about are typed; everything else is preserved untouched so
    the stored document stays faithful to what the compiler produced.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Bytecode(CompilerModel):
    object: str
    link_references: Optional[Dict[str, Dict[str, List[Dict[str, int]]]]] = Field(
        default=None, alias="linkReferences"
    )
    source_map: Optional[str] = Field(default=None, alias="sourceMap")
    opcodes: Optional[str] = None

    @field_validator("object")
    @classmethod
    def _bare_hex(cls, value: str) -> str:
        return strip_hex_prefix(value)


class EvmOutput(CompilerModel):
    bytecode: Optional[Bytecode] = None
    deployed_bytecode: Optional[Bytecode] = Field(default=None, alias="deployedBytecode")
    method_identifiers: Optional[Dict[str, str]] = Field(
        default=None, alias="methodIdentifiers"
    )


class CompiledContract(CompilerModel):
    """
    Compiled output for a single contract.

    Attributes:
        abi: The contract ABI.
        metadata: Raw compiler metadata, as the JSON string emitted by solc.
        userdoc / devdoc: NatSpec documentation.
        evm: Bytecode, deployed bytecode and method identifiers. Bytecode objects
            are always stored without a ``0x`` prefix.
    """

    abi: Optional[List[Dict[str, Any]]] = None
    metadata: Optional[str] = None
    userdoc: Optional[Dict[str, Any]] = None
    devdoc: Optional[Dict[str, Any]] = None
    evm: Optional[EvmOutput] = None


class OptimizerSettings(CompilerModel):
    enabled: Optional[bool] = None
    runs: Optional[int] = None


class CompilerSettings(CompilerModel):
    optimizer: Optional[OptimizerSettings] = None
    evm_version: Optional[str] = Field(default=None, alias="evmVersion")
    eof_version: Optional[int] = Field(default=None, alias="eofVersion")
    via_ir: Optional[bool] = Field(default=None, alias="viaIR")
    remappings: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    # source file -> library name -> address
    libraries: Optional[Dict[str, Dict[str, str]]] = None
    output_selection: Optional[Dict[str, Any]] = Field(
        default=None, alias="outputSelection"
    )


class CompilerInput(CompilerModel):
    language: str
    sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    settings: CompilerSettings = Field(default_factory=CompilerSettings)


class CompilerOutput(CompilerModel):
    # source path -> contract name -> compiled contract
    contracts: Dict[str, Dict[str, CompiledContract]] = Field(default_factory=dict)
    sources: Optional[Dict[str, Any]] = None
    errors: Optional[List[Dict[str, Any]]] = None

    def contracts_payload(self) -> Dict[str, Any]:
        """Serialized ``contracts`` mapping, as written in the canonical JSON."""
        return {
            source_path: {
                name: contract.model_dump(mode="json", by_alias=True, exclude_none=True)
                for name, contract in contracts.items()
            }
            for source_path, contracts in self.contracts.items()
        }


class Origin(BaseModel):
    """
    Provenance pointer to the build-tool record an artifact was created from.

    ``format`` is the build tool's declared format tag. ``output_format`` only
    exists for Hardhat v3, whose compiler input and output live in two files.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    format: str
    output_format: Optional[str] = Field(default=None, alias="outputFormat")

    @model_validator(mode="after")
    def _check_format_pairing(self) -> "Origin":
        if self.format == HARDHAT_V3_INPUT_FORMAT:
            if self.output_format != HARDHAT_V3_OUTPUT_FORMAT:
                raise ValueError(
                    f"origin format '{self.format}' requires outputFormat "
                    f"'{HARDHAT_V3_OUTPUT_FORMAT}'"
                )
        elif self.format in SINGLE_FILE_ORIGIN_FORMATS:
            if self.output_format is not None:
                raise ValueError(
                    f"origin format '{self.format}' does not accept an outputFormat"
                )
        else:
            raise ValueError(f"Unknown origin format '{self.format}'")
        return self


class Artifact(BaseModel):
    """
    Canonical, immutable record of one compiled-contract set.

    The ``id`` is derived from ``output.contracts`` only (see
    ``solstash.core.identity``); ``origin`` is never part of the identity.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    origin: Origin
    solc_long_version: str = Field(alias="solcLongVersion")
    input: CompilerInput
    output: CompilerOutput

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "Artifact":
        return cls.model_validate_json(data)

    def iter_contracts(self) -> Iterator[Tuple[str, str, CompiledContract]]:
        for source_path, contracts in self.output.contracts.items():
            for name, contract in contracts.items():
                yield source_path, name, contract

    @property
    def fully_qualified_names(self) -> List[str]:
        return sorted(f"{path}:{name}" for path, name, _ in self.iter_contracts())

    def __str__(self) -> str:
        return f"Artifact(id={self.id}, origin={self.origin.format}:{self.origin.id})"
