"""Dashboard tests: layout rendering only, no network."""

import pytest
from rich.console import Console
from rich.layout import Layout

from realtime_eventsource.client.event_source import EventSource
from realtime_eventsource.client.visualizer import Visualizer
from realtime_eventsource.shared.errors import TransportError
from realtime_eventsource.shared.models import Event, ReadyState


@pytest.mark.asyncio
async def test_visualizer_registers_handlers_and_renders():
    source = EventSource("http://stream.test/events", retry_interval_ms=250)
    visualizer = Visualizer(source, event_names=["metric"])
    visualizer.attach()

    assert set(source.dispatcher.registered_names) == {"open", "error", "message", "metric"}

    source.dispatcher.dispatch(Event(event="metric", id="7", data="x" * 60))
    source.dispatcher.dispatch(Event(event="error", ready_state=ReadyState.CLOSED, error=TransportError("refused")))

    assert visualizer.recent_events[0][1:3] == ("metric", "7")
    assert visualizer.recent_events[0][3].endswith("...")
    assert visualizer.last_error == "refused"

    layout = visualizer.generate_layout()
    assert isinstance(layout, Layout)
    Console(file=None, width=120, record=True, quiet=True).print(layout)

    await source.aclose()


def test_timeline_only_records_state_changes():
    visualizer = Visualizer(EventSource("http://stream.test/events"))

    visualizer.record_state(ReadyState.CONNECTING)
    visualizer.record_state(ReadyState.CONNECTING)
    visualizer.record_state(ReadyState.OPEN)

    assert len(visualizer.timeline) == 2
    assert "OPEN" in visualizer.timeline[0]
