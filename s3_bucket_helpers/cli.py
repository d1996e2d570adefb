from __future__ import annotations
"""Command line entry point for listing and clearing buckets."""
import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .client import ClientHandle, create_client_context
from .config import ConfigStorage, ConnectionProfile, ProfileNotFoundError
from .errors import BulkDeleteError, InvalidBucketNameError
from .local_store import LocalDirectoryClient
from .models import ListParams
from .services import clear_bucket, list_all_objects

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3-bucket-helpers",
        description="List or delete every object of an S3-compatible bucket.",
    )
    parser.add_argument("--config", help="path to the JSON configuration file")
    parser.add_argument("--profile", help="connection profile to use (defaults to the configured default)")
    parser.add_argument(
        "--local-root",
        help="use a local directory tree as the object store instead of S3",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="print every key of a bucket")
    list_cmd.add_argument("bucket")
    list_cmd.add_argument("--prefix", default="", help="only list keys starting with PREFIX")

    clear_cmd = commands.add_parser("clear", help="delete every object of a bucket")
    clear_cmd.add_argument("bucket")
    clear_cmd.add_argument("--yes", action="store_true", help="actually delete; otherwise only preview")
    return parser


def _select_profile(storage: ConfigStorage, name: str | None) -> ConnectionProfile | None:
    name = name or storage.load_settings().default_profile
    if not name:
        return None
    return storage.get_profile(name)


@asynccontextmanager
async def _open_client(args: argparse.Namespace, profile: ConnectionProfile | None) -> AsyncIterator[Any]:
    if args.local_root:
        yield LocalDirectoryClient(args.local_root)
        return
    handle = ClientHandle(lambda: create_client_context(profile))
    try:
        yield await handle.get()
    finally:
        await handle.close()


async def _list(args: argparse.Namespace, client: Any, page_size: int) -> int:
    params = ListParams(bucket=args.bucket, prefix=args.prefix, max_keys=page_size)
    entries = await list_all_objects(params, client=client)
    for entry in entries:
        print(entry.key)
    print(f"{len(entries)} object(s) in bucket '{args.bucket}'")
    return EXIT_OK


async def _clear(args: argparse.Namespace, client: Any, page_size: int) -> int:
    if not args.yes:
        params = ListParams(bucket=args.bucket, max_keys=page_size)
        entries = await list_all_objects(params, client=client)
        targets = [entry.key for entry in entries if not entry.is_directory_marker]
        for key in targets:
            print(f"[DRY] would delete {key}")
        print(f"Would delete {len(targets)} object(s) from bucket '{args.bucket}'; pass --yes to delete")
        return EXIT_OK
    deleted = await clear_bucket(args.bucket, client=client)
    print(f"Deleted {len(deleted)} object(s) from bucket '{args.bucket}'")
    return EXIT_OK


async def run(args: argparse.Namespace, storage: ConfigStorage) -> int:
    settings = storage.load_settings()
    profile = None if args.local_root else _select_profile(storage, args.profile)
    command = _list if args.command == "list" else _clear
    async with _open_client(args, profile) as client:
        return await command(args, client, settings.page_size)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    storage = ConfigStorage(args.config)

    try:
        return asyncio.run(run(args, storage))
    except (ProfileNotFoundError, InvalidBucketNameError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except BulkDeleteError as exc:
        LOGGER.debug("Failed keys: %s", ", ".join(exc.failed_keys))
        print(f"error: {exc}", file=sys.stderr)
        print(f"{len(exc.deleted)} object(s) were deleted before the failure was reported", file=sys.stderr)
        return EXIT_FAILURE
    except (BotoCoreError, ClientError, OSError) as exc:
        LOGGER.exception("Operation '%s' failed for bucket '%s'", args.command, args.bucket)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
