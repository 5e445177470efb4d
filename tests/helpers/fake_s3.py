"""
In-memory stand-in for a boto3 S3 client.

Only the calls used by ``S3StorageProvider`` are implemented. Missing objects
raise real ``botocore`` ``ClientError`` instances with the error codes S3
returns, so the provider's error handling is exercised as in production.
"""

from __future__ import annotations

import io
from typing import Any, Dict, Iterator, List, Optional, Tuple

from botocore.exceptions import ClientError


def _client_error(code: str, operation: str, message: str = "Not Found") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakePaginator:
    def __init__(self, client: "FakeS3Client", page_size: int):
        self.client = client
        self.page_size = page_size

    def paginate(
        self, Bucket: str, Prefix: str = "", Delimiter: Optional[str] = None
    ) -> Iterator[Dict[str, Any]]:
        contents: List[Dict[str, Any]] = []
        common_prefixes = set()
        for bucket, key in sorted(self.client.objects):
            if bucket != Bucket or not key.startswith(Prefix):
                continue
            remainder = key[len(Prefix) :]
            if Delimiter and Delimiter in remainder:
                head = remainder.split(Delimiter, 1)[0]
                common_prefixes.add(f"{Prefix}{head}{Delimiter}")
                continue
            contents.append({"Key": key, "Size": len(self.client.objects[(bucket, key)])})

        if not contents:
            yield {"KeyCount": 0, "CommonPrefixes": [{"Prefix": p} for p in sorted(common_prefixes)]}
            return
        for start in range(0, len(contents), self.page_size):
            page = contents[start : start + self.page_size]
            yield {
                "Contents": page,
                "KeyCount": len(page),
                "CommonPrefixes": [{"Prefix": p} for p in sorted(common_prefixes)],
            }


class FakeS3Client:
    def __init__(self, page_size: int = 2):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.put_calls: List[str] = []
        self.page_size = page_size
        # Keys for which every call fails with an access error.
        self.failing_keys: set = set()

    def _check(self, key: str, operation: str) -> None:
        if key in self.failing_keys:
            raise _client_error("AccessDenied", operation, "Access Denied")

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self._check(Key, "HeadObject")
        if (Bucket, Key) not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[(Bucket, Key)])}

    def put_object(self, Bucket: str, Key: str, Body: Any, **kwargs: Any) -> Dict[str, Any]:
        self._check(Key, "PutObject")
        data = Body if isinstance(Body, bytes) else Body.read()
        self.objects[(Bucket, Key)] = data
        self.put_calls.append(Key)
        return {"ETag": '"fake"'}

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        self._check(Key, "GetObject")
        if (Bucket, Key) not in self.objects:
            raise _client_error("NoSuchKey", "GetObject", "The specified key does not exist.")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def get_paginator(self, operation_name: str) -> FakePaginator:
        assert operation_name == "list_objects_v2"
        return FakePaginator(self, self.page_size)

    def keys(self, bucket: str) -> List[str]:
        return sorted(key for b, key in self.objects if b == bucket)
