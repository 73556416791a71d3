"""
Change-feed relay: one logical channel, re-fetching authoritative state on
every notification.

    DISCONNECTED -> CONNECTING -> SUBSCRIBED -> (error/timeout/close) -> DISCONNECTED

Raw notifications only tell us *that* a row changed. For creates and updates
the resolver re-fetches the composed record (or the whole aggregate) and the
result is republished; deletes carry just the id. Re-fetches run as
independent tasks, so delivery order is not notification order: listeners
must replace state by key, never apply events as diffs.
"""

import asyncio
from collections.abc import Awaitable, Callable

from watchclub.infrastructure.observability.logging import get_logger
from watchclub.realtime.events import (
    RELAY_STATUS,
    ChangeEvent,
    ConnectionState,
    RawChange,
    RelayStatus,
    TableBinding,
)
from watchclub.realtime.transport import PostgresChangeTransport, get_change_transport

logger = get_logger(__name__)

Resolver = Callable[[RawChange], Awaitable[ChangeEvent | None]]
Listener = Callable[[ChangeEvent], None]


class ChangeFeedRelay:
    def __init__(
        self,
        channel_name: str,
        bindings: tuple[TableBinding, ...],
        resolver: Resolver,
        *,
        transport_factory: Callable[[], PostgresChangeTransport] = get_change_transport,
        enabled: bool = True,
    ):
        self.channel_name = channel_name
        self.bindings = tuple(bindings)
        self.resolver = resolver
        self.enabled = enabled
        self.state = ConnectionState.DISCONNECTED
        self._transport_factory = transport_factory
        self._transport: PostgresChangeTransport | None = None
        self._listeners: list[Listener] = []
        self._pending: set[asyncio.Task] = set()

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.SUBSCRIBED

    @property
    def is_subscribed(self) -> bool:
        """True while holding a transport subscription, connected or not."""
        return self._transport is not None

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def subscribe(self) -> None:
        if not self.enabled or self._transport is not None:
            return

        self.state = ConnectionState.CONNECTING
        transport = self._transport_factory()
        self._transport = transport
        try:
            await transport.subscribe(
                self.channel_name, self.bindings, self._on_change, self._on_status
            )
        except Exception:
            self._transport = None
            self.state = ConnectionState.DISCONNECTED
            raise

    async def unsubscribe(self) -> None:
        """Safe to call repeatedly or before any subscribe()."""
        transport, self._transport = self._transport, None
        if transport is None:
            return

        transport.unsubscribe(self.channel_name)

        pending = list(self._pending)
        self._pending.clear()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._set_state(ConnectionState.DISCONNECTED, RelayStatus.CLOSED)
        logger.info("Relay unsubscribed", channel=self.channel_name)

    async def set_enabled(self, enabled: bool) -> None:
        """Toggle without rebuilding the relay: off unsubscribes, on resubscribes."""
        if enabled == self.enabled:
            return
        self.enabled = enabled
        if enabled:
            await self.subscribe()
        else:
            await self.unsubscribe()

    def status_event(self, status: RelayStatus | None = None) -> ChangeEvent:
        data = {"channel": self.channel_name, "connected": self.is_connected}
        if status is not None:
            data["status"] = status.value
        return ChangeEvent(RELAY_STATUS, data)

    def _on_status(self, status: RelayStatus, error: Exception | None) -> None:
        if self._transport is None:
            return

        if error is not None:
            logger.warning(
                "Relay subscription error",
                channel=self.channel_name,
                status=status.value,
                error=str(error),
            )

        if status is RelayStatus.SUBSCRIBED:
            self._set_state(ConnectionState.SUBSCRIBED, status)
        else:
            self._set_state(ConnectionState.DISCONNECTED, status)

    def _set_state(self, state: ConnectionState, status: RelayStatus) -> None:
        if state is self.state:
            return
        self.state = state
        logger.info("Relay state changed", channel=self.channel_name, state=state.value)
        self._publish(self.status_event(status))

    def _on_change(self, change: RawChange) -> None:
        if self._transport is None:
            return
        task = asyncio.create_task(self._resolve_and_publish(change))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _resolve_and_publish(self, change: RawChange) -> None:
        try:
            event = await self.resolver(change)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "Relay re-fetch failed",
                channel=self.channel_name,
                table=change.table,
                change_type=change.type.value,
                record_id=change.identifier,
            )
            return

        if event is not None:
            self._publish(event)

    def _publish(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Relay listener failed", channel=self.channel_name)
