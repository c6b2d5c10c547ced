import asyncio
import uuid
from datetime import datetime, timezone
from loguru import logger


def make_client_id(client_id: str | None = None) -> str:
    """
    If the caller provided a client_id, use it.
    If not, generate a short readable one like 'client-a3f2'.
    This keeps log lines from several clients apart.
    """
    if client_id:
        return client_id
    return f"client-{str(uuid.uuid4())[:4]}"


def on_loop_thread(loop: asyncio.AbstractEventLoop | None) -> bool:
    """True when called from the thread currently running `loop`."""
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


def make_client_stats() -> dict:
    """
    Returns a fresh stats dictionary with zeroed counters.
    Every EventSource calls this once in __init__.
    Keys: events_received, reconnect_count, errors, bytes_received,
          last_event_at, connected_at.
    """
    return {
        "events_received": 0,
        "reconnect_count": 0,
        "errors": 0,
        "bytes_received": 0,
        "last_event_at": None,
        "connected_at": None,
    }


def mark_event_received(stats: dict) -> None:
    stats["events_received"] += 1
    stats["last_event_at"] = datetime.now(timezone.utc).isoformat()


def mark_connected(stats: dict) -> None:
    stats["connected_at"] = datetime.now(timezone.utc).isoformat()


def build_request_headers(
    auth: str | None = None,
    auth_header: str = "Authorization",
    last_event_id: str | None = None,
) -> dict[str, str]:
    """
    Headers for one streaming GET.
    The resumption header is omitted entirely when no id has been seen.
    """
    headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
    if auth:
        headers[auth_header] = auth
    if last_event_id:
        headers["Last-Event-ID"] = last_event_id
    return headers


def log_connection(protocol: str, client_id: str, extra: dict | None = None) -> None:
    """
    Single structured log entry for a connection lifecycle step.
    Writes: protocol, client_id and any extra fields as key=value pairs.
    """
    log_str = f"protocol={protocol} client_id={client_id}"
    for k, v in (extra or {}).items():
        log_str += f" {k}={v}"
    logger.info(log_str)
