"""Polling feed of order events for dashboards."""

from fastapi import APIRouter, Query, Request

from cafe_pos.api.deps import EventHistory, EventViewer
from cafe_pos.core.rate_limit import limiter
from cafe_pos.schemas.event import EventFeed

router = APIRouter()


@router.get("/", response_model=EventFeed)
@limiter.limit("120/minute")
def poll_events(
    request: Request,
    history: EventHistory,
    current_user: EventViewer,
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Events with a sequence number greater than ``after``.

    Clients pass back ``last_seq`` from the previous response. Events older
    than the retained history are gone.
    """
    items = history.since(after, limit)
    last_seq = items[-1]["seq"] if items else history.last_seq
    return EventFeed(items=items, last_seq=last_seq)
