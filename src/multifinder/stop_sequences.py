"""Stop sequence utilities with boundary aware matching."""
from __future__ import annotations

import codecs
from collections.abc import Iterable
from typing import Any

from .session import Session

STOP_CODE = 1


class StopSequenceMatcher:
    """Incrementally truncates a text stream at the first stop sequence.

    Text before the stop is returned as soon as no stop sequence can start in
    it any more; the stop sequence itself and everything after it is dropped.
    """

    def __init__(self, stops: Iterable[str] | None) -> None:
        self.stops: list[str] = [s for s in (stops or []) if s]
        self.stop: str | None = None
        self._pending: list[str] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self.session = Session(on_match=self._on_stop, on_flush=self._on_flush)
        for stop in self.stops:
            self.session.add_pattern(stop, tag=stop)

    @property
    def finished(self) -> bool:
        return self.session.aborted != 0

    def push(self, chunk: str) -> tuple[str, bool]:
        if self.finished:
            return "", True
        if not chunk:
            return "", False
        self.session.submit(chunk.encode("utf-8"))
        return self._drain(), self.finished

    def flush(self) -> str:
        """Return the held back tail and start over on a fresh stream."""

        if self.finished:
            return ""
        self.session.finalize()
        text = self._drain()
        if not self.finished:
            self.session.reset()
        return text

    def _on_stop(self, session: Session, length: int, tag: Any) -> int:
        self.stop = tag
        return STOP_CODE

    def _on_flush(self, data: bytes) -> None:
        self._pending.append(self._decoder.decode(data, final=not data))

    def _drain(self) -> str:
        text = "".join(self._pending)
        self._pending.clear()
        return text
