"""
MODULE OVERVIEW:
The FastAPI application for the demo stream server.

WHAT IS HAPPENING HERE:
A tiny server to point the EventSource client at. Stop it while a client is
listening and start it again: the client reports an error, waits the retry
interval the server advertised, and resumes from its last event id.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from realtime_eventsource.server.routes import events

app = FastAPI(
    title="EventSource Demo Stream",
    description="Numbered Server-Sent Events with Last-Event-ID resumption",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(events.router, tags=["Stream"])


@app.get("/healthz", tags=["Ops"])
async def health_check():
    return {"status": "ok"}
