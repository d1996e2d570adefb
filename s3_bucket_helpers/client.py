from __future__ import annotations
"""Object store client construction and the shared client handle."""
import asyncio
from contextlib import AsyncExitStack
import logging
from typing import Any, AsyncContextManager, Callable

import aioboto3
from botocore.client import Config

from .config import ConnectionProfile

LOGGER = logging.getLogger(__name__)


def create_client_context(profile: ConnectionProfile | None = None) -> AsyncContextManager[Any]:
    """Return an ``async with`` context producing an aioboto3 S3 client.

    Without a profile the SDK's default credential chain and region apply.
    """

    options: dict[str, Any] = {"config": Config(signature_version="s3v4")}
    if profile is not None:
        if profile.endpoint_url:
            options["endpoint_url"] = profile.endpoint_url
        if profile.access_key:
            options["aws_access_key_id"] = profile.access_key
        if profile.secret_key:
            options["aws_secret_access_key"] = profile.secret_key
        if profile.region_name:
            options["region_name"] = profile.region_name
    return aioboto3.Session().client("s3", **options)


class ClientHandle:
    """Lazily creates one object store client and hands it out on demand."""

    def __init__(self, client_factory: Callable[[], AsyncContextManager[Any]] | None = None):
        self._client_factory = client_factory or create_client_context
        self._client: Any = None
        self._exit_stack: AsyncExitStack | None = None
        # Event loop the created client and its exit stack are bound to.
        self._loop: asyncio.AbstractEventLoop | None = None
        self._injected = False
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def _usable(self, loop: asyncio.AbstractEventLoop) -> bool:
        return self._client is not None and (self._injected or self._loop is loop)

    async def get(self) -> Any:
        loop = asyncio.get_running_loop()
        if self._usable(loop):
            return self._client
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        async with self._lock:
            if not self._usable(loop):
                if self._exit_stack is not None and self._loop is loop:
                    await self._exit_stack.aclose()
                elif self._exit_stack is not None:
                    # The owning loop is gone, so the old client cannot be exited.
                    LOGGER.debug("Discarding object store client bound to another event loop")
                self._client = None
                self._exit_stack = None
                self._injected = False
                stack = AsyncExitStack()
                self._client = await stack.enter_async_context(self._client_factory())
                self._exit_stack = stack
                self._loop = loop
                LOGGER.debug("Created object store client %r", self._client)
        return self._client

    def replace(self, client: Any) -> None:
        """Swap the client reference, typically for a test double."""

        self._client = client
        self._injected = client is not None

    async def close(self) -> None:
        stack, self._exit_stack = self._exit_stack, None
        owner, self._loop = self._loop, None
        self._client = None
        self._injected = False
        if stack is not None and owner is asyncio.get_running_loop():
            await stack.aclose()
            LOGGER.debug("Closed object store client")


_instance = ClientHandle()


async def get_instance() -> Any:
    """Return the process-wide client, creating it on first use."""

    return await _instance.get()


def use_client(client: Any) -> None:
    """Install ``client`` as the process-wide client (for tests)."""

    _instance.replace(client)


async def close_instance() -> None:
    await _instance.close()
