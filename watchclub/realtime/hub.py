"""
Per-process registry of relays shared by stream clients.

Every SSE connection to the same logical channel shares one relay (and one
transport subscription). Relays are reference counted: the first client
subscribes, the last one to leave unsubscribes.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.realtime.events import ChangeEvent, TableBinding
from watchclub.realtime.relay import ChangeFeedRelay, Resolver

logger = get_logger(__name__)

CLIENT_QUEUE_SIZE = 100


@dataclass(slots=True)
class _HubEntry:
    relay: ChangeFeedRelay
    clients: int = 0


class RelayHub:
    def __init__(
        self,
        relay_factory: Callable[..., ChangeFeedRelay] = ChangeFeedRelay,
        *,
        enabled: bool | None = None,
    ):
        self._relay_factory = relay_factory
        self._entries: dict[str, _HubEntry] = {}
        self._lock = asyncio.Lock()
        self.enabled = settings.CHANGE_FEED_ENABLED if enabled is None else enabled

    @property
    def channel_names(self) -> list[str]:
        return list(self._entries)

    def client_count(self, channel_name: str) -> int:
        entry = self._entries.get(channel_name)
        return entry.clients if entry else 0

    async def acquire(
        self, channel_name: str, bindings: tuple[TableBinding, ...], resolver: Resolver
    ) -> ChangeFeedRelay:
        async with self._lock:
            entry = self._entries.get(channel_name)
            if entry is None:
                relay = self._relay_factory(
                    channel_name, bindings, resolver, enabled=self.enabled
                )
                entry = _HubEntry(relay=relay)
                self._entries[channel_name] = entry
                await relay.subscribe()
            entry.clients += 1
            return entry.relay

    async def release(self, channel_name: str) -> None:
        async with self._lock:
            entry = self._entries.get(channel_name)
            if entry is None:
                return
            entry.clients -= 1
            if entry.clients <= 0:
                del self._entries[channel_name]
                await entry.relay.unsubscribe()

    @asynccontextmanager
    async def stream(
        self, channel_name: str, bindings: tuple[TableBinding, ...], resolver: Resolver
    ) -> AsyncIterator[asyncio.Queue]:
        """A queue receiving this channel's events for the lifetime of the block."""
        relay = await self.acquire(channel_name, bindings, resolver)
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=CLIENT_QUEUE_SIZE)

        def enqueue(event: ChangeEvent) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Stream client too slow, dropping event", channel=channel_name)

        remove_listener = relay.add_listener(enqueue)
        enqueue(relay.status_event())
        try:
            yield queue
        finally:
            remove_listener()
            await self.release(channel_name)

    async def set_enabled(self, enabled: bool) -> None:
        """Flip every live relay without dropping its clients."""
        self.enabled = enabled
        for entry in list(self._entries.values()):
            await entry.relay.set_enabled(enabled)

    async def close(self) -> None:
        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            await entry.relay.unsubscribe()


relay_hub = RelayHub()
