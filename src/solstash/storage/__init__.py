"""
Storage providers and their configuration.

``create_storage_provider`` turns a validated ``StorageConfig`` (or a plain
mapping with a ``type`` discriminator) into a provider instance::

    create_storage_provider({"type": "local", "path": "./storage"})
    create_storage_provider(
        {"type": "aws", "bucket_name": "artifacts", "region": "eu-west-3"}
    )
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from solstash.protocols import StorageProvider
from solstash.storage.credentials import RoleConfig, RoleCredentialCache
from solstash.storage.local import LocalStorageProvider
from solstash.storage.s3 import S3StorageProvider


class LocalStorageConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["local"] = "local"
    path: Path


class AwsStorageConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["aws"] = "aws"
    bucket_name: str
    region: Optional[str] = None
    prefix: str = ""
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    role: Optional[RoleConfig] = None
    endpoint_url: Optional[str] = None
    force_path_style: bool = False


StorageConfig = Annotated[
    Union[LocalStorageConfig, AwsStorageConfig], Field(discriminator="type")
]

_storage_config_adapter: TypeAdapter[Any] = TypeAdapter(StorageConfig)


def parse_storage_config(
    config: Union[LocalStorageConfig, AwsStorageConfig, Mapping[str, Any]],
) -> Union[LocalStorageConfig, AwsStorageConfig]:
    if isinstance(config, (LocalStorageConfig, AwsStorageConfig)):
        return config
    return _storage_config_adapter.validate_python(dict(config))


def create_storage_provider(
    config: Union[LocalStorageConfig, AwsStorageConfig, Mapping[str, Any]],
) -> StorageProvider:
    """
    Build the storage provider described by ``config``.

    For an AWS config with a ``role``, a fresh ``RoleCredentialCache`` is
    created and owned by the returned provider.
    """
    parsed = parse_storage_config(config)
    if isinstance(parsed, LocalStorageConfig):
        return LocalStorageProvider(parsed.path)

    credential_cache = (
        RoleCredentialCache(parsed.role, region=parsed.region)
        if parsed.role is not None
        else None
    )
    return S3StorageProvider(
        parsed.bucket_name,
        parsed.region,
        prefix=parsed.prefix,
        access_key_id=parsed.access_key_id,
        secret_access_key=parsed.secret_access_key,
        credential_cache=credential_cache,
        endpoint_url=parsed.endpoint_url,
        force_path_style=parsed.force_path_style,
    )


__all__ = [
    "AwsStorageConfig",
    "LocalStorageConfig",
    "LocalStorageProvider",
    "RoleConfig",
    "RoleCredentialCache",
    "S3StorageProvider",
    "StorageConfig",
    "create_storage_provider",
    "parse_storage_config",
]
