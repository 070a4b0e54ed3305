"""Ready-made consumers: occurrence counting and streaming find/replace."""
from __future__ import annotations

from collections.abc import AsyncIterable, Iterable
from typing import Any, BinaryIO

from .patterns import CaseMode
from .session import Session
from .sources import scan_async_chunks, scan_chunks


def _encode(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


class MatchCounter:
    """Counts occurrences per registered pattern.

    Every call to :meth:`add` gets a counter slot, even for an empty pattern
    that the session ignores, so slot numbers follow the caller's list.
    """

    def __init__(self) -> None:
        self.counts: list[int] = []
        self.session = Session(on_match=self._on_match)

    def add(self, pattern: str | bytes, case: CaseMode = CaseMode.SENSITIVE) -> int:
        slot = len(self.counts)
        self.counts.append(0)
        self.session.add_pattern(pattern, case, tag=slot)
        return slot

    @property
    def total(self) -> int:
        return sum(self.counts)

    def _on_match(self, session: Session, length: int, tag: Any) -> int:
        self.counts[tag] += 1
        return 0

    def scan(self, chunks: Iterable[bytes]) -> int:
        return scan_chunks(self.session, chunks)

    async def scan_async(self, chunks: AsyncIterable[bytes]) -> int:
        return await scan_async_chunks(self.session, chunks)

    def reset(self) -> None:
        self.counts = [0] * len(self.counts)
        self.session.reset()


class Replacer:
    """Copies a stream to ``output`` with every match swapped for its replacement."""

    def __init__(self, output: BinaryIO) -> None:
        self.output = output
        self.replacements = 0
        self.session = Session(on_match=self._on_match, on_flush=self._on_flush)

    def add(self, pattern: str | bytes, replacement: str | bytes, case: CaseMode = CaseMode.SENSITIVE) -> None:
        self.session.add_pattern(pattern, case, tag=_encode(replacement))

    def _on_flush(self, data: bytes) -> None:
        if data:
            self.output.write(data)
        else:
            self.output.flush()

    def _on_match(self, session: Session, length: int, tag: Any) -> int:
        self.output.write(tag)
        self.replacements += 1
        return 0

    def scan(self, chunks: Iterable[bytes]) -> int:
        return scan_chunks(self.session, chunks)

    async def scan_async(self, chunks: AsyncIterable[bytes]) -> int:
        return await scan_async_chunks(self.session, chunks)
