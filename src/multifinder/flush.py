"""Exactly-once delivery of pass-through bytes."""
from __future__ import annotations

from collections.abc import Callable

from .buffer import SplitSlice

FlushCallback = Callable[[bytes], None]


class FlushCoordinator:
    """Tracks ``flushedpos`` and hands pass-through spans to the consumer.

    Positions are global stream offsets. A view passed to
    :meth:`flush_up_to` starts at global offset ``base``.
    """

    def __init__(self, on_flush: FlushCallback | None = None) -> None:
        self.on_flush = on_flush
        self.flushed = 0

    def flush_up_to(self, pos: int, view: SplitSlice, base: int) -> None:
        if pos <= self.flushed:
            return
        start = self.flushed - base
        end = pos - base
        if start < 0:
            raise ValueError(f"bytes from position {self.flushed} are no longer held in the window")
        if self.on_flush is not None:
            # One call per physical span, so the payload is never re-joined.
            for part in view.spans(start, end):
                self.on_flush(bytes(part))
        else:
            # Still validate the bounds when nobody listens.
            if end > len(view):
                raise IndexError(f"span [{start}, {end}) outside view of {len(view)} bytes")
        self.flushed = pos

    def consume(self, length: int) -> None:
        """Account for ``length`` bytes delivered through a match."""

        self.flushed += length

    def end_of_stream(self) -> None:
        if self.on_flush is not None:
            self.on_flush(b"")

    def reset(self) -> None:
        self.flushed = 0
