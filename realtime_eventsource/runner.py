"""
CLI entrypoint for the EventSource client.
"""
import asyncio
import sys
from typing import List, Optional

import typer
from loguru import logger

from realtime_eventsource.client.event_source import EventSource
from realtime_eventsource.client.visualizer import Visualizer
from realtime_eventsource.shared.config import settings
from realtime_eventsource.shared.models import Event

app = typer.Typer(help="Server-Sent Events client")


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def log_event(event: Event) -> None:
    if event.error is not None:
        logger.warning(f"event={event.event} state={event.ready_state.name} error='{event.error}'")
    else:
        logger.info(f"event={event.event} id={event.id} state={event.ready_state.name} data={event.data!r}")


async def listen_plain(source: EventSource, event_names: list[str], duration_s: float) -> None:
    source.on_open(log_event)
    source.on_error(log_event)
    source.on_message(log_event)
    for name in event_names:
        source.add_event_listener(name, log_event)

    async with source:
        await asyncio.sleep(duration_s)


@app.command()
def listen(
    url: str = typer.Argument(..., help="Stream URL"),
    auth: Optional[str] = typer.Option(None, help="Authorization header value"),
    timeout: float = typer.Option(settings.EVENTSOURCE_TIMEOUT_S, help="Seconds of silence before reconnecting"),
    retry: int = typer.Option(settings.EVENTSOURCE_RETRY_INTERVAL_MS, help="Initial retry interval in ms"),
    event: List[str] = typer.Option([], "--event", "-e", help="Extra named event to listen for"),
    duration: float = typer.Option(60.0, help="Seconds to listen before closing"),
    dashboard: bool = typer.Option(True, "--dashboard/--plain", help="Rich dashboard or plain log lines"),
):
    """Connect to a stream and print every event it delivers."""
    source = EventSource(url, auth, timeout_s=timeout, retry_interval_ms=retry)

    if dashboard:
        # Log lines would tear the live layout apart.
        configure_logging("ERROR")
        runner = Visualizer(source, event).run(duration)
    else:
        configure_logging(settings.LOG_LEVEL)
        runner = listen_plain(source, event, duration)

    try:
        asyncio.run(runner)
    except KeyboardInterrupt:
        pass


@app.command()
def server():
    """Start the demo stream server using Uvicorn."""
    import uvicorn
    configure_logging(settings.LOG_LEVEL)
    typer.echo(f"Starting demo stream on port {settings.PORT}...")
    uvicorn.run(
        "realtime_eventsource.server.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    app()
