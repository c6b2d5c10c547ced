"""
MODULE OVERVIEW:
The demo Server-Sent Events endpoint.

WHAT IS HAPPENING HERE:
sse-starlette's `EventSourceResponse` turns our async generator of dicts into a
proper `text/event-stream` body and sends keep-alive pings. We read the
`Last-Event-ID` header the client sends on reconnect and continue the numbered
feed right after it, which is the server half of stream resumption.
"""
from fastapi import APIRouter, Header, Query
from sse_starlette.sse import EventSourceResponse

from realtime_eventsource.server.dummy_data import numbered_feed, resume_after
from realtime_eventsource.shared.client_utils import log_connection, make_client_id
from realtime_eventsource.shared.config import settings

router = APIRouter()


@router.get("/events")
async def events_endpoint(
    client_id: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    last_event_id: str | None = Header(None, alias="Last-Event-ID"),
):
    cid = make_client_id(client_id)
    start = resume_after(last_event_id)
    log_connection("sse:connect", cid, {"last_event_id": last_event_id, "start": start})

    feed = numbered_feed(
        start=start,
        limit=limit,
        interval_s=settings.DEMO_EVENT_INTERVAL_S,
        retry_ms=settings.DEMO_RETRY_MS,
    )
    return EventSourceResponse(feed)
