from __future__ import annotations
"""Object store client backed by a local directory tree.

Each bucket is a directory below ``root`` and each object a file inside it,
keyed by its relative POSIX path. Empty sub-directories show up as directory
markers (``"photos/"``). The client mirrors the subset of the S3 API used by
the helpers so it can stand in for a real store in tests and local runs.
"""
import base64
import errno
from datetime import datetime, timezone
import hashlib
import logging
import os
from pathlib import Path
from typing import Any, Iterator

from .errors import InvalidBucketNameError, ScanDirectoryNotFoundError
from .models import PATH_SEPARATOR

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_KEYS = 1000


def _encode_token(key: str) -> str:
    return base64.urlsafe_b64encode(key.encode("utf-8")).decode("ascii")


def _decode_token(token: str) -> str:
    try:
        return base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8")
    except (ValueError, UnicodeError) as exc:
        raise ValueError(f"Invalid continuation token: {token!r}") from exc


def _md5_etag(path: Path) -> str:
    digest = hashlib.md5()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return f'"{digest.hexdigest()}"'


class LocalDirectoryClient:
    """Async S3-like client storing objects under ``root``."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _bucket_path(self, bucket: str) -> Path:
        if not bucket or PATH_SEPARATOR in bucket or bucket in {".", ".."}:
            raise InvalidBucketNameError(f"Invalid bucket name: {bucket!r}")
        return self._root / bucket

    def _object_path(self, bucket: str, key: str) -> Path:
        parts = [part for part in key.split(PATH_SEPARATOR) if part]
        if not parts or any(part in {".", ".."} for part in parts):
            raise ValueError(f"Invalid object key: {key!r}")
        return self._bucket_path(bucket).joinpath(*parts)

    def _scan(self, directory: str, prefix: str = "") -> Iterator[tuple[str, os.DirEntry | None]]:
        try:
            with os.scandir(directory) as entries:
                children = list(entries)
        except FileNotFoundError as exc:
            if prefix:
                raise
            # Only the bucket directory itself counts as "no bucket yet".
            raise ScanDirectoryNotFoundError(exc.errno, exc.strerror, exc.filename) from exc
        if not children and prefix:
            yield prefix, None
            return
        for child in children:
            if child.is_dir(follow_symlinks=False):
                yield from self._scan(child.path, f"{prefix}{child.name}{PATH_SEPARATOR}")
            else:
                yield f"{prefix}{child.name}", child

    def _describe(self, key: str, item: os.DirEntry | None) -> dict[str, Any]:
        if item is None:
            return {"Key": key, "Size": 0, "StorageClass": "STANDARD"}
        stat = item.stat()
        return {
            "Key": key,
            "Size": stat.st_size,
            "LastModified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            "ETag": _md5_etag(Path(item.path)),
            "StorageClass": "STANDARD",
        }

    async def list_objects_v2(
        self,
        *,
        Bucket: str,
        Prefix: str = "",
        ContinuationToken: str | None = None,
        MaxKeys: int = DEFAULT_MAX_KEYS,
        **_: Any,
    ) -> dict[str, Any]:
        bucket_path = self._bucket_path(Bucket)
        listing = sorted(
            ((key, item) for key, item in self._scan(str(bucket_path)) if key.startswith(Prefix or "")),
            key=lambda pair: pair[0],
        )
        if ContinuationToken:
            start_after = _decode_token(ContinuationToken)
            listing = [pair for pair in listing if pair[0] > start_after]

        page = listing[: max(MaxKeys, 0)]
        truncated = len(listing) > len(page)
        response: dict[str, Any] = {
            "Name": Bucket,
            "Prefix": Prefix or "",
            "MaxKeys": MaxKeys,
            "KeyCount": len(page),
            "IsTruncated": truncated,
            "Contents": [self._describe(key, item) for key, item in page],
        }
        if ContinuationToken:
            response["ContinuationToken"] = ContinuationToken
        if truncated and page:
            response["NextContinuationToken"] = _encode_token(page[-1][0])
        return response

    async def delete_object(self, *, Bucket: str, Key: str, **_: Any) -> dict[str, Any]:
        bucket_path = self._bucket_path(Bucket)
        if not bucket_path.is_dir():
            raise FileNotFoundError(errno.ENOENT, "No such bucket", str(bucket_path))
        path = self._object_path(Bucket, Key)
        if Key.endswith(PATH_SEPARATOR):
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()
        else:
            path.unlink(missing_ok=True)
        self._prune(path.parent, bucket_path)
        LOGGER.debug("Deleted '%s' from local bucket '%s'", Key, Bucket)
        return {}

    async def put_object(self, *, Bucket: str, Key: str, Body: bytes | str = b"", **_: Any) -> dict[str, Any]:
        path = self._object_path(Bucket, Key)
        if Key.endswith(PATH_SEPARATOR):
            path.mkdir(parents=True, exist_ok=True)
            return {}
        path.parent.mkdir(parents=True, exist_ok=True)
        data = Body.encode("utf-8") if isinstance(Body, str) else Body
        path.write_bytes(data)
        return {"ETag": _md5_etag(path)}

    @staticmethod
    def _prune(directory: Path, bucket_path: Path) -> None:
        while directory != bucket_path and bucket_path in directory.parents:
            if not directory.is_dir() or any(directory.iterdir()):
                return
            directory.rmdir()
            directory = directory.parent
