"""
MODULE OVERVIEW:
The EventSource connection manager: the Python counterpart of the browser's
`EventSource` object.

WHAT IS HAPPENING HERE:
We use the HTTPX `stream()` context manager to keep the response body open and
feed every byte chunk to a fresh `StreamParser`. Completed records go to the
`EventDispatcher`. When anything goes wrong (refused connection, non-200
status, read timeout, or the server simply ending the body) the client moves to
CLOSED, tells the "error" handler, and lets the `ReconnectPolicy` schedule the
next attempt. Only `close()` stops that cycle.

`open()` and `close()` never wait on the network. `open()` starts a task on the
running loop and returns. `close()` may be called from any thread: the state
flag is flipped under a lock first, then the task and the reconnect timer are
cancelled, so no handler runs after it returns and no timer fires. A task that
has been superseded by close() or a later open() stops dispatching at the next
event, and stops parsing, so it never writes into the shared policy again.

An owned HTTP client released by aclose() is rebuilt by the next open().

State transitions:
    CLOSED (transient) -> CONNECTING -> OPEN -> CLOSED (transient) -> ...
    any state -> CLOSED (terminal), via close()
"""
import asyncio
import threading
import httpx
from loguru import logger

from realtime_eventsource.client.dispatcher import EventDispatcher, EventHandler
from realtime_eventsource.client.parser import StreamParser
from realtime_eventsource.client.reconnect import ReconnectPolicy
from realtime_eventsource.shared.client_utils import (
    build_request_headers,
    log_connection,
    make_client_id,
    make_client_stats,
    mark_connected,
    mark_event_received,
    on_loop_thread,
)
from realtime_eventsource.shared.config import settings
from realtime_eventsource.shared.errors import (
    EventSourceError,
    HTTPStatusError,
    StreamEndedError,
    classify_error,
)
from realtime_eventsource.shared.models import (
    ERROR_EVENT,
    MESSAGE_EVENT,
    OPEN_EVENT,
    Event,
    ReadyState,
)


class EventSource:
    protocol_name: str = "sse"

    def __init__(
        self,
        url: str,
        auth: str | None = None,
        *,
        timeout_s: float | None = None,
        retry_interval_ms: int | None = None,
        auth_header: str | None = None,
        client: httpx.AsyncClient | None = None,
        client_id: str | None = None,
    ):
        self.url = str(url)
        self.auth = auth
        self.auth_header = auth_header or settings.EVENTSOURCE_AUTH_HEADER
        self.timeout_s = timeout_s if timeout_s is not None else settings.EVENTSOURCE_TIMEOUT_S
        self.client_id = make_client_id(client_id)

        self.policy = ReconnectPolicy(retry_interval_ms)
        self.dispatcher = EventDispatcher()
        self.stats = make_client_stats()

        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient(timeout=self.timeout_s)

        self._lock = threading.Lock()
        self._ready_state = ReadyState.CLOSED
        self._closed_by_caller = False
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def __repr__(self) -> str:
        return f"<EventSource url={self.url!r} ready_state={self.ready_state.name}>"

    # ==========================
    # STATE
    # ==========================
    @property
    def ready_state(self) -> ReadyState:
        with self._lock:
            return self._ready_state

    @property
    def last_event_id(self) -> str | None:
        return self.policy.last_event_id

    @property
    def retry_interval_ms(self) -> int:
        return self.policy.retry_interval_ms

    def _is_stale(self) -> bool:
        """True inside a connection task that close() or a newer open() has superseded. Hold the lock."""
        return self._closed_by_caller or asyncio.current_task() is not self._task

    def _superseded(self) -> bool:
        with self._lock:
            return self._is_stale()

    def _transition(self, expected: ReadyState, target: ReadyState) -> bool:
        with self._lock:
            if self._is_stale() or self._ready_state != expected:
                return False
            self._ready_state = target
            return True

    # ==========================
    # HANDLER REGISTRATION
    # ==========================
    def on_message(self, handler: EventHandler) -> EventHandler:
        self.dispatcher.register(MESSAGE_EVENT, handler)
        return handler

    def on_open(self, handler: EventHandler) -> EventHandler:
        self.dispatcher.register(OPEN_EVENT, handler)
        return handler

    def on_error(self, handler: EventHandler) -> EventHandler:
        self.dispatcher.register(ERROR_EVENT, handler)
        return handler

    def add_event_listener(self, name: str, handler: EventHandler) -> EventHandler:
        self.dispatcher.register(name, handler)
        return handler

    def remove_event_listener(self, name: str) -> None:
        self.dispatcher.unregister(name)

    # ==========================
    # LIFECYCLE
    # ==========================
    def open(self) -> None:
        """Start connecting. A no-op while CONNECTING or OPEN."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._ready_state in (ReadyState.CONNECTING, ReadyState.OPEN):
                return
            self._closed_by_caller = False
            self._ready_state = ReadyState.CONNECTING
        if self._owns_client and self.client.is_closed:
            self.client = httpx.AsyncClient(timeout=self.timeout_s)
        self.policy.resume()
        self._start(loop)

    def close(self) -> None:
        """Stop for good: cancel the request and any pending reconnect. Idempotent."""
        with self._lock:
            already_closed = self._closed_by_caller
            self._closed_by_caller = True
            self._ready_state = ReadyState.CLOSED
            task, loop = self._task, self._loop

        self.policy.stop()

        if task is not None and not task.done():
            if on_loop_thread(loop):
                task.cancel()
            elif not loop.is_closed():
                loop.call_soon_threadsafe(task.cancel)

        if not already_closed:
            log_connection(self.protocol_name, self.client_id, {"event": "close", "reason": "caller"})

    async def aclose(self) -> None:
        """close(), wait for the connection task to unwind, release the owned HTTP client."""
        self.close()
        task = self._task
        if task is not None and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "EventSource":
        self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _start(self, loop: asyncio.AbstractEventLoop) -> None:
        task = loop.create_task(self._connect())
        with self._lock:
            self._task, self._loop = task, loop
            closed = self._closed_by_caller
        if closed:
            task.cancel()

    def _reconnect(self) -> None:
        with self._lock:
            if self._closed_by_caller or self._ready_state != ReadyState.CLOSED:
                return
            self._ready_state = ReadyState.CONNECTING
        self._start(asyncio.get_running_loop())

    # ==========================
    # CONNECTION TASK
    # ==========================
    async def _connect(self) -> None:
        parser = StreamParser(self.policy)
        last_event_id = self.policy.last_event_id
        headers = build_request_headers(self.auth, self.auth_header, last_event_id)
        log_connection(
            self.protocol_name,
            self.client_id,
            {"event": "connect", "url": self.url, "last_event_id": last_event_id},
        )

        try:
            async with self.client.stream(
                "GET", self.url, headers=headers, timeout=self.timeout_s
            ) as response:
                if response.status_code != 200:
                    raise HTTPStatusError(response.status_code, response.reason_phrase)

                if not self._transition(ReadyState.CONNECTING, ReadyState.OPEN):
                    return
                mark_connected(self.stats)
                log_connection(self.protocol_name, self.client_id, {"event": "open", "status": response.status_code})
                if not self._dispatch(Event(event=OPEN_EVENT, ready_state=ReadyState.OPEN)):
                    return

                async for chunk in response.aiter_bytes():
                    self.stats["bytes_received"] += len(chunk)
                    for event in parser.iter_feed(chunk):
                        if not self._dispatch(event):
                            return
                        mark_event_received(self.stats)
                        # A handler may have superseded us; stop before parsing the next record.
                        if self._superseded():
                            return

            raise StreamEndedError("server closed the stream")
        except asyncio.CancelledError:
            raise
        except (httpx.HTTPError, EventSourceError, OSError) as exc:
            self._fail(classify_error(exc))
        except Exception as exc:
            logger.exception(f"protocol={self.protocol_name} client_id={self.client_id} event=unexpected_error")
            self._fail(classify_error(exc))

    def _dispatch(self, event: Event) -> bool:
        """Hand one event to the dispatcher. Returns False once this connection is closed or superseded."""
        with self._lock:
            if self._is_stale():
                return False
            state = self._ready_state
        if event.ready_state != state:
            event = event.model_copy(update={"ready_state": state})
        self.dispatcher.dispatch(event)
        return True

    def _fail(self, error: EventSourceError) -> None:
        with self._lock:
            if self._is_stale():
                return
            self._ready_state = ReadyState.CLOSED

        self.stats["errors"] += 1
        logger.warning(
            f"protocol={self.protocol_name} client_id={self.client_id} event=error "
            f"reason='{error}' retry_s={self.policy.delay_s:.3f}"
        )
        self._dispatch(Event(event=ERROR_EVENT, ready_state=ReadyState.CLOSED, error=error))

        if self.policy.schedule(self._reconnect):
            self.stats["reconnect_count"] += 1
