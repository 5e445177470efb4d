"""
solstash/storage/s3.py

Storage provider backed by an S3 bucket (or an S3-compatible endpoint).

Object keys mirror the local provider layout, optionally under ``prefix``::

    [prefix/]projects/<project>/ids/<id>.json
    [prefix/]projects/<project>/ids/<id>/original-content/<sanitized path>
    [prefix/]projects/<project>/tags/<tag>.json
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Sequence, Union

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from solstash.core.fs import sanitize_relative_path
from solstash.core.validation import validate_key, validate_project, validate_tag
from solstash.errors import ArtifactNotFoundError
from solstash.models.artifact import Artifact
from solstash.storage.credentials import RoleCredentialCache, TemporaryCredentials

logger = logging.getLogger(__name__)

PROJECTS_PREFIX = "projects"
JSON_CONTENT_TYPE = "application/json"
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_not_found(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in NOT_FOUND_CODES


class S3StorageProvider:
    """
    Reads and writes artifacts in ``bucket_name``.

    Args:
        bucket_name: Target bucket.
        region: AWS region of the bucket.
        prefix: Optional key prefix placed before ``projects/``.
        access_key_id / secret_access_key: Static credentials. When omitted,
            boto3's default credential chain is used.
        credential_cache: Role-assumption cache owned by the caller. Takes
            precedence over static credentials.
        endpoint_url: Override for S3-compatible services.
        force_path_style: Use path-style addressing instead of virtual hosts.
        client: A ready-made S3 client; every other connection setting is
            then ignored.
    """

    def __init__(
        self,
        bucket_name: str,
        region: Optional[str] = None,
        *,
        prefix: str = "",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        credential_cache: Optional[RoleCredentialCache] = None,
        endpoint_url: Optional[str] = None,
        force_path_style: bool = False,
        client: Any = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.prefix = prefix.strip("/")
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.credential_cache = credential_cache
        self.endpoint_url = endpoint_url
        self.force_path_style = force_path_style
        self._injected_client = client
        self._client: Any = None
        self._client_credentials: Optional[TemporaryCredentials] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"S3StorageProvider(bucket_name={self.bucket_name!r})"

    @property
    def client(self) -> Any:
        if self._injected_client is not None:
            return self._injected_client
        with self._lock:
            credentials = (
                self.credential_cache.get() if self.credential_cache else None
            )
            # Rebuilt whenever the role cache hands out new credentials.
            if self._client is None or credentials is not self._client_credentials:
                self._client = self._build_client(credentials)
                self._client_credentials = credentials
            return self._client

    def _build_client(self, credentials: Optional[TemporaryCredentials]) -> Any:
        kwargs: dict[str, Any] = {"region_name": self.region}
        if credentials is not None:
            kwargs.update(credentials.as_client_kwargs())
        elif self.access_key_id and self.secret_access_key:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.force_path_style:
            kwargs["config"] = Config(s3={"addressing_style": "path"})
        logger.debug("Creating S3 client for bucket %s", self.bucket_name)
        return boto3.client("s3", **kwargs)

    def _key(self, *parts: str) -> str:
        key = "/".join(parts)
        return f"{self.prefix}/{key}" if self.prefix else key

    def _project_key(self, project: str, *parts: str) -> str:
        return self._key(PROJECTS_PREFIX, validate_project(project), *parts)

    def id_key(self, project: str, artifact_id: str) -> str:
        filename = f"{validate_key(artifact_id, 'id')}.json"
        return self._project_key(project, "ids", filename)

    def tag_key(self, project: str, tag: str) -> str:
        return self._project_key(project, "tags", f"{validate_tag(tag)}.json")

    def original_content_key(
        self, project: str, artifact_id: str, source_path: Union[str, Path]
    ) -> str:
        return self._project_key(
            project,
            "ids",
            validate_key(artifact_id, "id"),
            "original-content",
            sanitize_relative_path(source_path),
        )

    def _list_keys(self, directory_key: str) -> List[str]:
        prefix = f"{directory_key}/"
        paginator = self.client.get_paginator("list_objects_v2")
        keys = []
        # Delimiter keeps the original-content archives out of the listing.
        for page in paginator.paginate(
            Bucket=self.bucket_name, Prefix=prefix, Delimiter="/"
        ):
            for item in page.get("Contents", []):
                name = item["Key"][len(prefix) :]
                if name.endswith(".json") and "/" not in name:
                    keys.append(name[: -len(".json")])
        return sorted(keys)

    def list_tags(self, project: str) -> List[str]:
        return self._list_keys(self._project_key(project, "tags"))

    def list_ids(self, project: str) -> List[str]:
        return self._list_keys(self._project_key(project, "ids"))

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise
        return True

    def has_artifact_by_tag(self, project: str, tag: str) -> bool:
        return self._exists(self.tag_key(project, tag))

    def has_artifact_by_id(self, project: str, artifact_id: str) -> bool:
        return self._exists(self.id_key(project, artifact_id))

    def upload_artifact(
        self,
        project: str,
        artifact: Artifact,
        tag: Optional[str],
        original_content_paths: Sequence[Path],
    ) -> None:
        payload = artifact.to_json().encode("utf-8")

        id_key = self.id_key(project, artifact.id)
        if self._exists(id_key):
            # Ids are content addressed: an existing id entry holds the same contracts.
            logger.debug("Artifact %s already stored, skipping id entry", artifact.id)
        else:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=id_key,
                Body=payload,
                ContentType=JSON_CONTENT_TYPE,
            )

        if tag is not None:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=self.tag_key(project, tag),
                Body=payload,
                ContentType=JSON_CONTENT_TYPE,
            )

        for source_path in original_content_paths:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=self.original_content_key(project, artifact.id, source_path),
                Body=Path(source_path).read_bytes(),
            )

        logger.info(
            "Stored artifact %s:%s in bucket %s",
            project,
            tag or artifact.id,
            self.bucket_name,
        )

    def _download(self, key: str, project: str, name: str) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ArtifactNotFoundError(
                    f'The artifact "{project}:{name}" does not exist in {self}.'
                ) from e
            raise
        return response["Body"]

    def download_artifact_by_id(self, project: str, artifact_id: str) -> BinaryIO:
        return self._download(self.id_key(project, artifact_id), project, artifact_id)

    def download_artifact_by_tag(self, project: str, tag: str) -> BinaryIO:
        return self._download(self.tag_key(project, tag), project, tag)
