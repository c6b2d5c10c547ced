"""
MODULE OVERVIEW:
Fake event feed for the demo stream server.

WHAT IS HAPPENING HERE:
The demo server needs traffic that exercises every part of the client: a retry
hint, ids to resume from, the default "message" type and a couple of named
types. `numbered_feed()` produces plain dicts that sse-starlette serializes as
`id:`, `event:`, `data:` and `retry:` lines. Ids are consecutive integers, so a
client that reconnects with `Last-Event-ID: 41` continues at 42.
"""

import asyncio
import json
import random
from datetime import datetime, timezone
from typing import AsyncIterator

EVENT_TYPES = ["message", "metric", "notification"]


def build_payload(event_type: str, seq: int) -> dict:
    if event_type == "metric":
        return {
            "cpu_percent": round(random.uniform(0.0, 100.0), 1),
            "memory_percent": round(random.uniform(20.0, 90.0), 1),
        }
    if event_type == "notification":
        return {
            "user": random.choice(["@alice", "@bob", "@charlie", "@dave"]),
            "action": random.choice(["liked your post", "mentioned you", "placed order #4821"]),
        }
    return {"seq": seq, "text": f"tick {seq}"}


def resume_after(last_event_id: str | None) -> int:
    """First sequence number to send, given the client's Last-Event-ID."""
    if last_event_id and last_event_id.isdigit():
        return int(last_event_id) + 1
    return 1


async def numbered_feed(
    start: int = 1,
    limit: int | None = None,
    interval_s: float = 1.0,
    retry_ms: int | None = None,
) -> AsyncIterator[dict]:
    if retry_ms is not None:
        yield {"retry": retry_ms, "comment": "retry hint"}

    seq = start
    sent = 0
    while limit is None or sent < limit:
        event_type = EVENT_TYPES[seq % len(EVENT_TYPES)]
        yield {
            "id": str(seq),
            "event": event_type,
            "data": json.dumps({
                **build_payload(event_type, seq),
                "generated_at": datetime.now(timezone.utc).isoformat(),
            }),
        }
        seq += 1
        sent += 1
        if interval_s > 0:
            await asyncio.sleep(interval_s)
