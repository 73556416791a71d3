"""
Server-Sent Events for the change feed.

Each connection receives a `relay:status` event first, then the relay's
events as they are re-fetched. Clients reconcile by id (see
watchclub.realtime.state.KeyedState), never by arrival order.
"""

import asyncio
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import StreamingResponse

from watchclub.auth.verify import auth_dependency
from watchclub.infrastructure.observability.logging import get_logger
from watchclub.realtime.events import TableBinding
from watchclub.realtime.hub import RelayHub, relay_hub
from watchclub.realtime.relay import Resolver
from watchclub.realtime.resolvers import (
    BOARD_BINDINGS,
    BOARD_CHANNEL,
    make_oscar_resolver,
    oscar_bindings,
    oscar_channel,
    resolve_board_change,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/stream", tags=["stream"])

KEEPALIVE_SECONDS = 15.0
SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def get_relay_hub() -> RelayHub:
    return relay_hub


async def event_stream(
    request: Request,
    hub: RelayHub,
    channel_name: str,
    bindings: tuple[TableBinding, ...],
    resolver: Resolver,
) -> AsyncIterator[str]:
    async with hub.stream(channel_name, bindings, resolver) as queue:
        logger.info("Stream client connected", channel=channel_name)
        try:
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield event.to_sse()
        finally:
            logger.info("Stream client disconnected", channel=channel_name)


@router.get("/board")
async def stream_board(
    request: Request,
    claims: dict = Depends(auth_dependency),
    hub: RelayHub = Depends(get_relay_hub),
):
    """post-it:created / post-it:updated / post-it:deleted"""
    return StreamingResponse(
        event_stream(request, hub, BOARD_CHANNEL, BOARD_BINDINGS, resolve_board_change),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/oscars/{edition_id}")
async def stream_oscar_results(
    request: Request,
    edition_id: int = Path(..., gt=0),
    claims: dict = Depends(auth_dependency),
    hub: RelayHub = Depends(get_relay_hub),
):
    """results:updated with the full leaderboard + stats snapshot"""
    return StreamingResponse(
        event_stream(
            request,
            hub,
            oscar_channel(edition_id),
            oscar_bindings(edition_id),
            make_oscar_resolver(edition_id),
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
