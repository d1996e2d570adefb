from __future__ import annotations
"""Listing and bulk deletion helpers for a whole bucket."""
import asyncio
import logging
from typing import Any, Iterable, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .client import get_instance
from .errors import BulkDeleteError, DeleteError, ScanDirectoryNotFoundError
from .models import Entry, ListParams

LOGGER = logging.getLogger(__name__)

STORE_ERRORS = (BotoCoreError, ClientError, OSError)


async def _resolve_client(client: Any) -> Any:
    if client is not None:
        return client
    return await get_instance()


async def list_all_objects(
    params: ListParams,
    out: Optional[list[Entry]] = None,
    *,
    client: Any = None,
) -> list[Entry]:
    """Return every entry matching ``params``, following continuation tokens.

    Pages are appended in request order to ``out`` (a new list by default).
    ``out`` is only extended once the last page arrived, so a failing listing
    leaves it untouched. A local backend whose bucket directory does not exist
    yet lists as an empty bucket.

    Raises:
        BotoCoreError | ClientError | OSError: when a page cannot be fetched.
    """

    client = await _resolve_client(client)
    collected: list[Entry] = []
    request = params
    page_number = 1
    while True:
        LOGGER.debug("Listing page %d of bucket '%s'", page_number, request.bucket)
        try:
            response = await client.list_objects_v2(**request.to_request())
        except ScanDirectoryNotFoundError:
            LOGGER.debug("Bucket directory for '%s' does not exist, listing as empty", request.bucket)
            return []

        collected.extend(Entry.from_listing(item) for item in response.get("Contents") or [])
        token = response.get("NextContinuationToken")
        if not response.get("IsTruncated") or not token:
            break
        request = request.with_token(token)
        page_number += 1

    LOGGER.debug("Listed %d object(s) in %d page(s) of bucket '%s'", len(collected), page_number, params.bucket)
    if out is None:
        return collected
    out.extend(collected)
    return out


async def _delete_one(client: Any, bucket: str, key: str) -> str:
    try:
        await client.delete_object(Bucket=bucket, Key=key)
    except STORE_ERRORS as exc:
        raise DeleteError(key, exc) from exc
    return key


async def delete_entries(bucket: str, entries: Iterable[Entry], *, client: Any = None) -> list[str]:
    """Delete ``entries`` concurrently and return the removed keys in order.

    Directory markers are skipped. Every delete is awaited even after a
    failure; failures are then reported together as :class:`BulkDeleteError`.
    """

    client = await _resolve_client(client)
    keys = [entry.key for entry in entries if not entry.is_directory_marker]
    if not keys:
        return []

    LOGGER.debug("Deleting %d object(s) from bucket '%s'", len(keys), bucket)
    results = await asyncio.gather(
        *(_delete_one(client, bucket, key) for key in keys),
        return_exceptions=True,
    )

    deleted: list[str] = []
    failures: list[DeleteError] = []
    for result in results:
        if isinstance(result, DeleteError):
            failures.append(result)
        elif isinstance(result, BaseException):
            raise result
        else:
            deleted.append(result)

    if failures:
        LOGGER.debug(
            "Bulk delete in bucket '%s' removed %d object(s), %d failed",
            bucket,
            len(deleted),
            len(failures),
        )
        raise BulkDeleteError(failures, deleted)
    return deleted


async def clear_bucket(bucket: str, *, client: Any = None) -> list[str]:
    """Delete every object of ``bucket`` and return the removed keys."""

    client = await _resolve_client(client)
    entries = await list_all_objects(ListParams(bucket=bucket), client=client)
    return await delete_entries(bucket, entries, client=client)
