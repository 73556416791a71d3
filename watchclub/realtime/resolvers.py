"""
Re-fetch strategies for the watched collections.
"""

from watchclub.infrastructure.observability.logging import get_logger
from watchclub.realtime.events import (
    POST_CREATED,
    POST_DELETED,
    POST_UPDATED,
    RESULTS_UPDATED,
    ChangeEvent,
    ChangeType,
    RawChange,
    TableBinding,
)
from watchclub.realtime.relay import Resolver
from watchclub.repositories import board_repository, oscar_repository

logger = get_logger(__name__)

BOARD_CHANNEL = "board_post_changes"
BOARD_BINDINGS = (TableBinding("board_posts"),)


def oscar_channel(edition_id: int) -> str:
    return f"oscar_results_changes:{edition_id}"


def oscar_bindings(edition_id: int) -> tuple[TableBinding, ...]:
    edition_filter = f"edition_id=eq.{edition_id}"
    return (
        TableBinding("oscar_categories", edition_filter),
        TableBinding("oscar_ballots", edition_filter),
    )


async def resolve_board_change(change: RawChange) -> ChangeEvent | None:
    """Created/updated posts are re-fetched with their author; deletes need only the id."""
    if change.type is ChangeType.DELETE:
        return ChangeEvent(POST_DELETED, {"id": str(change.identifier)})

    post = await board_repository.get_post(str(change.identifier))
    if post is None:
        # Deleted again before the re-fetch ran; its DELETE notification follows
        logger.debug("Board post vanished before re-fetch", post_id=change.identifier)
        return None

    event_name = POST_CREATED if change.type is ChangeType.INSERT else POST_UPDATED
    return ChangeEvent(event_name, post.to_dict())


def make_oscar_resolver(edition_id: int) -> Resolver:
    """Any ballot or category change re-derives the whole results snapshot."""

    async def resolve_oscar_change(change: RawChange) -> ChangeEvent:
        snapshot = await oscar_repository.get_results_snapshot(edition_id)
        return ChangeEvent(RESULTS_UPDATED, snapshot)

    return resolve_oscar_change
