"""
MODULE OVERVIEW:
The handler registry for the EventSource client.

WHAT IS HAPPENING HERE:
One slot per event name. Registering a name again replaces the previous handler,
and the replacement is used by the very next dispatch. Handlers run synchronously
on the connection task. A handler written as `async def` has its coroutine
scheduled on the running loop instead of being awaited, so a slow handler never
stalls the stream.

A failing handler is the handler's problem: the exception is logged and
swallowed, and the next event is dispatched as usual.
"""
import asyncio
import inspect
from typing import Any, Awaitable, Callable
from loguru import logger

from realtime_eventsource.shared.models import Event

EventHandler = Callable[[Event], Awaitable[None] | None]


class EventDispatcher:
    def __init__(self):
        self._handlers: dict[str, EventHandler] = {}
        self._pending: set[asyncio.Task] = set()

    def register(self, name: str, handler: EventHandler) -> None:
        if not callable(handler):
            raise TypeError(f"handler for {name!r} must be callable")
        self._handlers[name] = handler

    def unregister(self, name: str) -> None:
        self._handlers.pop(name, None)

    def handler_for(self, name: str) -> EventHandler | None:
        return self._handlers.get(name)

    @property
    def registered_names(self) -> list[str]:
        return list(self._handlers)

    def dispatch(self, event: Event) -> bool:
        """Invoke the handler registered under `event.event`. Returns False if there is none."""
        handler = self._handlers.get(event.event)
        if handler is None:
            logger.debug(f"protocol=sse event=dropped name={event.event} reason=no_handler")
            return False

        try:
            result = handler(event)
        except Exception:
            logger.exception(f"protocol=sse event=handler_error name={event.event}")
            return True

        if inspect.isawaitable(result):
            self._schedule(event.event, result)
        return True

    def _schedule(self, name: str, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.opt(exception=t.exception()).error(
                    f"protocol=sse event=handler_error name={name}"
                )

        task.add_done_callback(_done)
