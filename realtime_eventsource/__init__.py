from realtime_eventsource.client.dispatcher import EventDispatcher
from realtime_eventsource.client.event_source import EventSource
from realtime_eventsource.client.parser import StreamParser
from realtime_eventsource.client.reconnect import ReconnectPolicy
from realtime_eventsource.shared.errors import (
    ConnectionTimeoutError,
    EventSourceError,
    HTTPStatusError,
    StreamEndedError,
    TransportError,
)
from realtime_eventsource.shared.models import Event, ReadyState

__all__ = [
    "ConnectionTimeoutError",
    "Event",
    "EventDispatcher",
    "EventSource",
    "EventSourceError",
    "HTTPStatusError",
    "ReadyState",
    "ReconnectPolicy",
    "StreamEndedError",
    "StreamParser",
    "TransportError",
]
