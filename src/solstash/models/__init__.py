from solstash.models.artifact import (
    Artifact,
    Bytecode,
    CompiledContract,
    CompilerInput,
    CompilerOutput,
    CompilerSettings,
    EvmOutput,
    OptimizerSettings,
    Origin,
)

__all__ = [
    "Artifact",
    "Bytecode",
    "CompiledContract",
    "CompilerInput",
    "CompilerOutput",
    "CompilerSettings",
    "EvmOutput",
    "OptimizerSettings",
    "Origin",
]
