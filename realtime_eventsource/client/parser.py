"""
MODULE OVERVIEW:
The incremental Server-Sent Events stream parser.

WHAT IS HAPPENING HERE:
The network hands us chunks of bytes with no respect for protocol boundaries: a
chunk may end in the middle of a line, a field, a UTF-8 character, or even
between the `\\r` and `\\n` of one line terminator. The parser keeps just enough
state to make the output independent of where those cuts fall:

  1. An incremental UTF-8 decoder holds back incomplete multi-byte sequences.
  2. A text buffer holds the tail after the last line terminator.
  3. A flag remembers a trailing `\\r`, so a `\\n` opening the next chunk is
     not mistaken for a blank line.
  4. The fields of the record under construction.

A blank line ends a record. Records with at least one `data:` line are emitted;
the rest are dropped. Each connection attempt builds a fresh parser, so nothing
half-parsed leaks across reconnects. The only state that outlives a parser is
the retry interval and resumption id, which belong to the `ReconnectPolicy`.
"""
import codecs
import re
from typing import AsyncIterable, AsyncIterator, Iterator
from loguru import logger

from realtime_eventsource.client.reconnect import MAX_RETRY_INTERVAL_MS, ReconnectPolicy
from realtime_eventsource.shared.models import Event, MESSAGE_EVENT

_LINE_END = re.compile(r"\r\n|\r|\n")
_BOM = "\ufeff"
_MAX_RETRY_DIGITS = len(str(MAX_RETRY_INTERVAL_MS))


class StreamParser:
    def __init__(self, policy: ReconnectPolicy | None = None):
        self.policy = policy if policy is not None else ReconnectPolicy()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._skip_lf = False
        self._at_stream_start = True
        self._reset_record()

    def _reset_record(self) -> None:
        self._event_type = ""
        self._data_lines: list[str] = []
        self._id: str | None = None
        self._retry: int | None = None

    def feed(self, chunk: str | bytes) -> list[Event]:
        """Consume one chunk and return the records it completed, in order."""
        return list(self.iter_feed(chunk))

    def iter_feed(self, chunk: str | bytes) -> Iterator[Event]:
        """
        Like feed(), but lines are only processed as the caller advances.
        Abandoning the iterator drops the rest of the chunk without touching the policy.
        """
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if self._at_stream_start and text:
            if text.startswith(_BOM):
                text = text[1:]
            self._at_stream_start = False

        for line in self._split_lines(text):
            event = self._process_line(line)
            if event is not None:
                yield event

    async def aiter_events(self, chunks: AsyncIterable[str | bytes]) -> AsyncIterator[Event]:
        async for chunk in chunks:
            for event in self.feed(chunk):
                yield event

    def _split_lines(self, text: str) -> list[str]:
        if self._skip_lf and text:
            if text.startswith("\n"):
                text = text[1:]
            self._skip_lf = False

        buf = self._buffer + text
        lines = []
        pos = 0
        for match in _LINE_END.finditer(buf):
            lines.append(buf[pos:match.start()])
            pos = match.end()
            # A lone "\r" at the very end may be the first half of "\r\n".
            if match.group() == "\r" and pos == len(buf):
                self._skip_lf = True
        self._buffer = buf[pos:]
        return lines

    def _process_line(self, line: str) -> Event | None:
        if not line:
            return self._dispatch_record()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data_lines.append(value)
        elif field == "event":
            self._event_type = value
        elif field == "id":
            if "\0" not in value:
                self._id = value
        elif field == "retry":
            if value.isascii() and value.isdigit():
                self._retry = _parse_retry(value)
                self.policy.retry_interval_ms = self._retry
            else:
                logger.debug(f"protocol=sse event=ignored_field field=retry value={value!r}")
        return None

    def _dispatch_record(self) -> Event | None:
        if not self._data_lines:
            self._reset_record()
            return None

        if self._id is not None:
            # An explicit empty id clears the resumption identifier.
            self.policy.last_event_id = self._id

        event = Event(
            id=self._id or None,
            event=self._event_type or MESSAGE_EVENT,
            data="\n".join(self._data_lines),
            retry=self._retry,
        )
        self._reset_record()
        return event


def _parse_retry(digits: str) -> int:
    # Huge values would overflow the timer (or int()'s digit limit), so they saturate.
    digits = digits.lstrip("0") or "0"
    if len(digits) > _MAX_RETRY_DIGITS:
        return MAX_RETRY_INTERVAL_MS
    return min(int(digits), MAX_RETRY_INTERVAL_MS)
