from __future__ import annotations
"""Data models representing bucket listings."""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class Entry:
    """A single object reported by a listing call."""

    key: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    storage_class: Optional[str] = None

    @classmethod
    def from_listing(cls, item: dict[str, Any]) -> "Entry":
        return cls(
            key=item["Key"],
            size=item.get("Size"),
            last_modified=item.get("LastModified"),
            etag=item.get("ETag"),
            storage_class=item.get("StorageClass"),
        )

    @property
    def is_directory_marker(self) -> bool:
        return self.key.endswith(PATH_SEPARATOR)


@dataclass(frozen=True)
class ListParams:
    """Parameters for one ``list_objects_v2`` request."""

    bucket: str
    prefix: str = ""
    continuation_token: Optional[str] = None
    max_keys: Optional[int] = None

    def with_token(self, token: str) -> "ListParams":
        return replace(self, continuation_token=token)

    def to_request(self) -> dict[str, Any]:
        request: dict[str, Any] = {"Bucket": self.bucket}
        if self.prefix:
            request["Prefix"] = self.prefix
        if self.continuation_token:
            request["ContinuationToken"] = self.continuation_token
        if self.max_keys:
            request["MaxKeys"] = self.max_keys
        return request
