"""
solstash: freeze, version and retrieve compiled smart-contract builds.

Builds from Hardhat (v2, v3) and Forge are normalized into one canonical
``Artifact`` identified by a content id, pushed to a storage provider under an
optional tag, and pulled back into a local cache.
"""

# Models
from solstash.models.artifact import Artifact, CompiledContract, Origin

# Core
from solstash.core.diff import Difference, DifferenceStatus
from solstash.core.local_cache import LocalCache
from solstash.core.normalize import NormalizedBuildInfo, normalize
from solstash.core.pull import PullResult
from solstash.core.settings import SolstashSettings
from solstash.types import BuildInfoFormat

# Storage
from solstash.storage import (
    LocalStorageProvider,
    RoleCredentialCache,
    S3StorageProvider,
    create_storage_provider,
)

# API
from solstash.api import (
    default_local_cache,
    diff,
    export_abi,
    inspect,
    list_artifacts,
    pull,
    push,
)

__all__ = [
    # Models
    "Artifact",
    "CompiledContract",
    "Origin",
    # Core objects
    "BuildInfoFormat",
    "Difference",
    "DifferenceStatus",
    "LocalCache",
    "NormalizedBuildInfo",
    "PullResult",
    "SolstashSettings",
    "normalize",
    # Storage
    "LocalStorageProvider",
    "RoleCredentialCache",
    "S3StorageProvider",
    "create_storage_provider",
    # Functional helpers
    "default_local_cache",
    "diff",
    "export_abi",
    "inspect",
    "list_artifacts",
    "pull",
    "push",
]
