"""
Postgres LISTEN/NOTIFY transport for the change feed.

One dedicated connection (outside the query pool) LISTENs on
CHANGE_FEED_CHANNEL. Row triggers (migrations/0002_change_feed_notify.sql)
publish JSON payloads there; the transport fans each one out to the logical
channels whose table bindings match.

Reconnection lives here, not in the relay: when the connection drops every
channel is told CHANNEL_ERROR/TIMED_OUT, the loop sleeps
min(tries * step, ceiling) and reconnects, and channels get SUBSCRIBED again
once LISTEN is re-issued.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import psycopg
from psycopg import sql

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.realtime.events import RawChange, RelayStatus, TableBinding

logger = get_logger(__name__)

ChangeCallback = Callable[[RawChange], None]
StatusCallback = Callable[[RelayStatus, Exception | None], None]
Connector = Callable[..., Awaitable[psycopg.AsyncConnection]]


class RelayTransportError(Exception):
    """The LISTEN connection dropped or could not be established."""


@dataclass(slots=True)
class ChannelSubscription:
    name: str
    bindings: tuple[TableBinding, ...]
    on_change: ChangeCallback
    on_status: StatusCallback

    def wants(self, change: RawChange) -> bool:
        return any(binding.matches(change) for binding in self.bindings)


class PostgresChangeTransport:
    """Shared push connection; logical channels are registered with subscribe()."""

    def __init__(
        self,
        dsn: str | None = None,
        *,
        channel: str | None = None,
        heartbeat_seconds: float | None = None,
        connect_timeout_seconds: float | None = None,
        connector: Connector = psycopg.AsyncConnection.connect,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.dsn = dsn or settings.DATABASE_URL
        self.channel = channel or settings.CHANGE_FEED_CHANNEL
        self.heartbeat_seconds = heartbeat_seconds or settings.CHANGE_FEED_HEARTBEAT_SECONDS
        self.connect_timeout_seconds = (
            connect_timeout_seconds or settings.CHANGE_FEED_CONNECT_TIMEOUT_SECONDS
        )
        self._connector = connector
        self._sleep = sleep
        self._subscriptions: dict[str, ChannelSubscription] = {}
        self._task: asyncio.Task | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def channel_names(self) -> list[str]:
        return list(self._subscriptions)

    async def connect(self) -> None:
        """Start the listen loop if it is not already running."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._listen_loop(), name="change-feed-listener")

    async def disconnect(self) -> None:
        """Stop the listen loop and close every logical channel."""
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._connected = False
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            self._notify_status(subscription, RelayStatus.CLOSED, None)
        logger.info("Change feed transport disconnected", channels=len(subscriptions))

    async def subscribe(
        self,
        name: str,
        bindings: tuple[TableBinding, ...],
        on_change: ChangeCallback,
        on_status: StatusCallback,
    ) -> ChannelSubscription:
        if name in self._subscriptions:
            raise ValueError(f"Channel '{name}' is already subscribed")

        subscription = ChannelSubscription(name, tuple(bindings), on_change, on_status)
        self._subscriptions[name] = subscription
        logger.info(
            "Change feed channel registered",
            channel=name,
            tables=[binding.table for binding in subscription.bindings],
        )

        if self._connected:
            self._notify_status(subscription, RelayStatus.SUBSCRIBED, None)
        await self.connect()
        return subscription

    def unsubscribe(self, name: str) -> bool:
        """Drop a logical channel. Unknown names are ignored."""
        removed = self._subscriptions.pop(name, None)
        if removed:
            logger.info("Change feed channel removed", channel=name)
        return removed is not None

    async def _listen_loop(self) -> None:
        tries = 0
        while True:
            try:
                await self._listen_once()
                status, error = RelayStatus.CLOSED, RelayTransportError("Connection closed")
            except asyncio.CancelledError:
                raise
            except TimeoutError as e:
                status, error = RelayStatus.TIMED_OUT, e
            except (psycopg.Error, OSError, RelayTransportError) as e:
                status, error = RelayStatus.CHANNEL_ERROR, e
            except Exception as e:
                logger.exception("Unexpected change feed listener failure", channel=self.channel)
                status, error = RelayStatus.CHANNEL_ERROR, e

            was_connected = self._connected
            self._connected = False
            tries = 1 if was_connected else tries + 1
            self._broadcast_status(status, error)

            delay = settings.reconnect_delay(tries)
            logger.warning(
                "Change feed connection lost, reconnecting",
                status=status.value,
                error=str(error),
                attempt=tries,
                delay_seconds=delay,
            )
            await self._sleep(delay)

    async def _listen_once(self) -> None:
        conn = await asyncio.wait_for(
            self._connector(self.dsn, autocommit=True),
            timeout=self.connect_timeout_seconds,
        )
        async with conn:
            await conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel)))
            self._connected = True
            self._broadcast_status(RelayStatus.SUBSCRIBED, None)
            logger.info("Change feed listening", channel=self.channel)

            while True:
                async for notify in conn.notifies(timeout=self.heartbeat_seconds):
                    self.dispatch(notify.payload)
                # Quiet period: make sure the connection is still alive
                await conn.execute("SELECT 1")

    def dispatch(self, payload: str) -> int:
        """Hand one NOTIFY payload to every matching channel. Returns the match count."""
        try:
            change = RawChange.from_payload(payload)
        except ValueError as e:
            logger.warning("Ignoring malformed change notification", error=str(e))
            return 0

        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if not subscription.wants(change):
                continue
            delivered += 1
            try:
                subscription.on_change(change)
            except Exception:
                logger.exception("Change handler failed", channel=subscription.name)
        return delivered

    def _broadcast_status(self, status: RelayStatus, error: Exception | None) -> None:
        for subscription in list(self._subscriptions.values()):
            self._notify_status(subscription, status, error)

    @staticmethod
    def _notify_status(
        subscription: ChannelSubscription, status: RelayStatus, error: Exception | None
    ) -> None:
        try:
            subscription.on_status(status, error)
        except Exception:
            logger.exception("Status handler failed", channel=subscription.name)


_transport: PostgresChangeTransport | None = None


def get_change_transport() -> PostgresChangeTransport:
    """One transport per process, created on first use."""
    global _transport
    if _transport is None:
        _transport = PostgresChangeTransport()
    return _transport


async def reset_change_transport() -> None:
    """Disconnect and forget the process transport (app shutdown, tests)."""
    global _transport
    transport, _transport = _transport, None
    if transport is not None:
        await transport.disconnect()
