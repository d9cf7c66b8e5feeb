# sinks.py
# Presentation sinks: observers that receive per-fix progress and discrete events.

import logging
import queue
from typing import Iterable, Optional, Sequence

from .models import TrackingStatus

logger = logging.getLogger(__name__)


class PresentationSink:
    """
    Observer for a Trip. Override the hooks you need; both default to no-ops.

    Hooks are called outside the trip lock, from whichever thread produced the
    update (the fix producer for progress, the solver thread for reroute events).
    """

    def on_progress(self, status: TrackingStatus) -> None:
        pass

    def on_event(self, event) -> None:
        pass


class QueueSink(PresentationSink):
    """
    Publishes updates onto a queue.Queue as ("progress", status) / ("event", event).

    Args:
        channel: Queue to publish to; a fresh unbounded queue if omitted.
    """

    def __init__(self, channel: Optional[queue.Queue] = None) -> None:
        self.channel = channel if channel is not None else queue.Queue()

    def on_progress(self, status: TrackingStatus) -> None:
        self.channel.put(("progress", status))

    def on_event(self, event) -> None:
        self.channel.put(("event", event))

    def drain(self) -> list:
        """Return everything currently queued without blocking."""
        items = []
        while True:
            try:
                items.append(self.channel.get_nowait())
            except queue.Empty:
                return items


def publish(sinks: Iterable[PresentationSink], status: Optional[TrackingStatus], events: Sequence) -> None:
    """
    Deliver one cycle's output to every sink.

    Events go out before progress. A failing sink is logged and skipped so it
    cannot break tracking.
    """
    for sink in list(sinks):
        for event in events:
            try:
                sink.on_event(event)
            except Exception:
                logger.exception(f"Sink {type(sink).__name__} failed on {type(event).__name__}")
        if status is not None:
            try:
                sink.on_progress(status)
            except Exception:
                logger.exception(f"Sink {type(sink).__name__} failed on progress update")
