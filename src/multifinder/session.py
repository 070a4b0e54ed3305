"""Streaming scan sessions."""
from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any

from .buffer import ChunkBuffer, SplitSlice
from .engine import MatchEngine
from .errors import SessionStateError
from .flush import FlushCallback, FlushCoordinator
from .patterns import CaseMode, Pattern, PatternSet

LOGGER = logging.getLogger(__name__)

MatchCallback = Callable[["Session", int, Any], "int | None"]


def _as_chunk(chunk: Any) -> bytes | bytearray:
    if isinstance(chunk, (bytes, bytearray)):
        return chunk
    if isinstance(chunk, memoryview):
        return chunk.tobytes()
    raise TypeError(f"chunk must be bytes-like, not {type(chunk).__name__}")


class Session:
    """Scan one logical byte stream for the registered patterns.

    ``on_match(session, length, tag)`` is called for every match, after the
    bytes that precede it were flushed; a nonzero return aborts the session.
    ``on_flush(data)`` receives every byte that is not part of a match, in
    stream order, and one final empty payload from :meth:`finalize`.

    The same input produces the same callback sequence and the same flushed
    bytes however it is split across :meth:`submit` calls.
    """

    def __init__(
        self,
        on_match: MatchCallback | None = None,
        on_flush: FlushCallback | None = None,
        patterns: PatternSet | None = None,
    ) -> None:
        self.patterns = patterns if patterns is not None else PatternSet()
        self.on_match = on_match
        self._flusher = FlushCoordinator(on_flush)
        self._engine = MatchEngine(self.patterns)
        self._buffer = ChunkBuffer()
        self._streampos = 0
        self._abort = 0
        self._finalized = False
        self._busy = False

    def add_pattern(self, data: Any, case: CaseMode = CaseMode.SENSITIVE, tag: Any = None) -> Pattern | None:
        self._ensure_idle("add_pattern")
        return self.patterns.add(data, case, tag)

    def add_owned_pattern(
        self,
        buffer: bytes | bytearray,
        length: int | None = None,
        case: CaseMode = CaseMode.SENSITIVE,
        tag: Any = None,
    ) -> Pattern | None:
        self._ensure_idle("add_owned_pattern")
        return self.patterns.add_owned(buffer, length, case, tag)

    def pattern_count(self) -> int:
        return self.patterns.count()

    @property
    def aborted(self) -> int:
        """Nonzero code returned by the callback that aborted the session, else 0."""

        return self._abort

    @property
    def position(self) -> int:
        """Bytes conclusively delivered downstream, matched or flushed."""

        return self._flusher.flushed

    @property
    def stream_position(self) -> int:
        """Total bytes submitted since creation or the last reset."""

        return self._streampos

    @property
    def finalized(self) -> bool:
        return self._finalized

    def submit(self, chunk: bytes | bytearray | memoryview) -> int:
        """Scan ``chunk`` and return the number of matches it completed."""

        self._ensure_idle("submit")
        if self._finalized:
            raise SessionStateError("submit() called after finalize(); call reset() first")
        data = _as_chunk(chunk)
        if self._abort:
            self._streampos += len(data)
            return 0

        self._buffer.resize(max(self.patterns.longest - 1, len(self._buffer)))
        view = self._buffer.view(data)
        base = self._streampos - len(self._buffer)
        self._busy = True
        try:
            result = self._engine.scan(view, partial(self._found, view, base))
            self._streampos += len(data)
            if result.abort:
                self._set_aborted(result.abort)
                return result.matches
            self._flusher.flush_up_to(base + result.cursor, view, base)
            self._buffer.refill(view, result.cursor)
        finally:
            self._busy = False
        return result.matches

    def finalize(self) -> int:
        """Decide the retained bytes, flush them and signal end of stream."""

        self._ensure_idle("finalize")
        if self._finalized:
            raise SessionStateError("finalize() called twice; call reset() first")
        self._finalized = True
        matches = 0
        self._busy = True
        try:
            if not self._abort:
                view = self._buffer.view()
                base = self._streampos - len(self._buffer)
                result = self._engine.scan(view, partial(self._found, view, base), final=True)
                matches = result.matches
                if result.abort:
                    self._set_aborted(result.abort)
                else:
                    self._flusher.flush_up_to(self._streampos, view, base)
                self._buffer.clear()
            self._flusher.end_of_stream()
        finally:
            self._busy = False
        LOGGER.debug(
            "Finalized stream of %d bytes (%d delivered, %d matches in finalize, abort=%d)",
            self._streampos,
            self._flusher.flushed,
            matches,
            self._abort,
        )
        return matches

    def reset(self) -> None:
        """Forget all stream state so the session can scan a new stream."""

        self._ensure_idle("reset")
        self._streampos = 0
        self._abort = 0
        self._finalized = False
        self._flusher.reset()
        self._buffer.clear()
        LOGGER.debug("Session reset with %d patterns", self.patterns.count())

    def _found(self, view: SplitSlice, base: int, offset: int, pattern: Pattern) -> int:
        self._flusher.flush_up_to(base + offset, view, base)
        code = 0
        if self.on_match is not None:
            code = self.on_match(self, len(pattern), pattern.tag) or 0
        self._flusher.consume(len(pattern))
        return code

    def _set_aborted(self, code: int) -> None:
        self._abort = code
        LOGGER.info("Session aborted by match callback with code %d at position %d", code, self._flusher.flushed)

    def _ensure_idle(self, operation: str) -> None:
        if self._busy:
            raise SessionStateError(f"{operation}() cannot be called from inside a session callback")
