"""
MODULE OVERVIEW:
The Rich Terminal Dashboard.

WHAT IS HAPPENING HERE:
We use Rich to render a live view of one EventSource: the latest events, the
ready state timeline, and the connection stats. The dashboard registers itself
as the handler for "open", "error", "message" and any extra named events, and
redraws on a fixed refresh tick while the client runs in the background.
"""

from rich.live import Live
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from collections import deque
from datetime import datetime
import asyncio

from realtime_eventsource.client.event_source import EventSource
from realtime_eventsource.shared.models import Event, ReadyState

STATE_COLORS = {
    ReadyState.CONNECTING: "yellow",
    ReadyState.OPEN: "green",
    ReadyState.CLOSED: "red",
}


class Visualizer:
    def __init__(self, source: EventSource, event_names: list[str] | None = None):
        self.source = source
        self.event_names = event_names or []
        self.recent_events = deque(maxlen=10)
        self.timeline = deque(maxlen=5)
        self.last_error: str | None = None
        self._last_state: ReadyState | None = None

    def attach(self) -> None:
        self.source.on_open(self.on_open)
        self.source.on_error(self.on_error)
        self.source.on_message(self.on_event)
        for name in self.event_names:
            self.source.add_event_listener(name, self.on_event)

    def record_state(self, state: ReadyState) -> None:
        if state == self._last_state:
            return
        self._last_state = state
        ts = datetime.now().strftime("%H:%M:%S")
        self.timeline.appendleft(f"[{ts}] State: {state.name}")

    def on_open(self, event: Event):
        self.record_state(event.ready_state)

    def on_error(self, event: Event):
        self.last_error = str(event.error)
        self.record_state(event.ready_state)

    def on_event(self, event: Event):
        ts = datetime.now().strftime("%H:%M:%S")
        data = event.data[:40] + "..." if len(event.data) > 40 else event.data
        self.recent_events.appendleft((ts, event.event, event.id or "-", data))

    def generate_layout(self) -> Layout:
        state = self.source.ready_state
        self.record_state(state)

        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline"),
            Layout(name="error")
        )

        color = STATE_COLORS[state]
        layout["header"].update(Panel(f"[{color} bold]{self.source.url} | State: {state.name}[/]", style=color))

        table = Table(title="Live Event Feed", expand=True)
        table.add_column("Time", justify="left", style="cyan", no_wrap=True)
        table.add_column("Event", style="magenta")
        table.add_column("Id", style="blue")
        table.add_column("Data", style="green")

        for e in self.recent_events:
            table.add_row(*e)

        layout["left"].update(Panel(table, title="Feed"))

        stats = self.source.stats
        stats_text = (
            f"Events Received: {stats['events_received']}\n"
            f"Reconnects: {stats['reconnect_count']}\n"
            f"Bytes: {stats['bytes_received']}\n"
            f"Retry: {self.source.retry_interval_ms} ms\n"
            f"Last-Event-ID: {self.source.last_event_id or '-'}"
        )
        layout["stats"].update(Panel(stats_text, title="Connection Stats"))

        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))
        layout["error"].update(Panel(self.last_error or "none", title="Last Error"))

        return layout

    async def run(self, duration_s: float):
        self.attach()
        self.source.open()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s

        try:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while loop.time() < deadline:
                    live.update(self.generate_layout())
                    await asyncio.sleep(0.25)
        finally:
            await self.source.aclose()
