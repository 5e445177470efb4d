"""
solstash/storage/credentials.py

Temporary credentials obtained by assuming an AWS IAM role.

A ``RoleCredentialCache`` is created by the caller for one invocation and
handed to the ``S3StorageProvider``; it is never held globally. The role is
assumed on first use and again whenever the cached credentials are within
``refresh_margin`` of their reported expiration.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import boto3
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "solstash-session"
DEFAULT_REFRESH_MARGIN = timedelta(seconds=60)


class RoleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    role_arn: str
    external_id: Optional[str] = None
    session_name: str = DEFAULT_SESSION_NAME
    duration_seconds: int = Field(default=3600, ge=900, le=43200)


@dataclass(frozen=True)
class TemporaryCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: datetime

    def as_client_kwargs(self) -> Dict[str, str]:
        return {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "aws_session_token": self.session_token,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoleCredentialCache:
    def __init__(
        self,
        role: RoleConfig,
        region: Optional[str] = None,
        sts_client: Any = None,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.role = role
        self.region = region
        self.refresh_margin = refresh_margin
        self._sts_client = sts_client
        self._clock = clock
        self._credentials: Optional[TemporaryCredentials] = None
        # Pull downloads run in worker threads sharing one cache.
        self._lock = threading.Lock()

    def _sts(self) -> Any:
        if self._sts_client is None:
            self._sts_client = boto3.client("sts", region_name=self.region)
        return self._sts_client

    def _is_fresh(self, credentials: TemporaryCredentials) -> bool:
        return self._clock() < credentials.expiration - self.refresh_margin

    def _assume_role(self) -> TemporaryCredentials:
        params: Dict[str, Any] = {
            "RoleArn": self.role.role_arn,
            "RoleSessionName": self.role.session_name,
            "DurationSeconds": self.role.duration_seconds,
        }
        if self.role.external_id:
            params["ExternalId"] = self.role.external_id

        logger.debug("Assuming role %s", self.role.role_arn)
        response = self._sts().assume_role(**params)
        raw = response.get("Credentials") or {}
        try:
            expiration = raw["Expiration"]
            if isinstance(expiration, str):
                expiration = datetime.fromisoformat(expiration.replace("Z", "+00:00"))
            if expiration.tzinfo is None:
                expiration = expiration.replace(tzinfo=timezone.utc)
            return TemporaryCredentials(
                access_key_id=raw["AccessKeyId"],
                secret_access_key=raw["SecretAccessKey"],
                session_token=raw["SessionToken"],
                expiration=expiration,
            )
        except KeyError as e:
            raise RuntimeError(
                f"Failed to assume role {self.role.role_arn}: no credentials returned"
            ) from e

    def get(self) -> TemporaryCredentials:
        with self._lock:
            if self._credentials is None or not self._is_fresh(self._credentials):
                self._credentials = self._assume_role()
            return self._credentials

    def clear(self) -> None:
        with self._lock:
            self._credentials = None
