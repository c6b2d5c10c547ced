"""
MODULE OVERVIEW:
This module defines the strictly typed data structures shared by the EventSource
client components, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
`Event` is the one record that flows from the parser, through the connection
manager, into user handlers. It is frozen: the connection manager never mutates
an event, it makes a `model_copy()` carrying the ready state at dispatch time.
`ReadyState` mirrors the browser EventSource constants and its numeric values
are part of the public contract.
"""
from enum import IntEnum
from pydantic import BaseModel, ConfigDict


class ReadyState(IntEnum):
    CONNECTING = 0
    OPEN = 1
    CLOSED = 2


# Reserved handler names wired to lifecycle notifications.
MESSAGE_EVENT = "message"
OPEN_EVENT = "open"
ERROR_EVENT = "error"


# WHAT IS HAPPENING HERE:
# `id` is only set when the record itself carried a non-empty `id:` line.
# `error` is only set on the synthesized "error" notification.
class Event(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str | None = None
    event: str = MESSAGE_EVENT
    data: str = ""
    ready_state: ReadyState = ReadyState.OPEN
    error: BaseException | None = None
    retry: int | None = None
