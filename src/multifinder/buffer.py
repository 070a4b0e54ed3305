"""Byte windows used while scanning a chunked stream."""
from __future__ import annotations

from collections.abc import Iterator


class SplitSlice:
    """Two physical byte spans addressed as one logical, read-only range.

    ``head`` is normally the retained buffer and ``tail`` the chunk that is
    being submitted. Reads that straddle both spans only copy the bytes that
    were asked for.
    """

    __slots__ = ("head", "tail", "_split", "_length")

    def __init__(self, head: bytes | bytearray | memoryview, tail: bytes | bytearray | memoryview = b"") -> None:
        self.head = head
        self.tail = tail
        self._split = len(head)
        self._length = self._split + len(tail)

    def __len__(self) -> int:
        return self._length

    @property
    def split(self) -> int:
        """Logical offset of the first ``tail`` byte."""

        return self._split

    def __getitem__(self, key: int | slice) -> int | bytes:
        if isinstance(key, slice):
            start, stop, step = key.indices(self._length)
            if step != 1:
                raise ValueError("SplitSlice only supports contiguous slices")
            return b"".join(bytes(part) for part in self.spans(start, stop))
        index = key + self._length if key < 0 else key
        if not 0 <= index < self._length:
            raise IndexError("SplitSlice index out of range")
        if index < self._split:
            return self.head[index]
        return self.tail[index - self._split]

    def spans(self, start: int, end: int) -> Iterator[memoryview | bytes | bytearray]:
        """Yield the non-empty physical pieces covering ``[start, end)``."""

        if start < 0 or end > self._length:
            raise IndexError(f"span [{start}, {end}) outside view of {self._length} bytes")
        if start >= end:
            return
        if start < self._split:
            yield self.head[start : min(end, self._split)]
        if end > self._split:
            yield self.tail[max(start, self._split) - self._split : end - self._split]

    def compare(self, offset: int, needle: bytes, fold: bool = False) -> bool:
        """Return whether ``needle`` occurs at ``offset``.

        With ``fold`` the window bytes are ASCII lower-cased first; ``needle``
        must already be folded.
        """

        end = offset + len(needle)
        if offset < 0 or end > self._length:
            return False
        if end <= self._split:
            piece = self.head[offset:end]
        elif offset >= self._split:
            piece = self.tail[offset - self._split : end - self._split]
        else:
            piece = self[offset:end]
        if fold:
            return bytes(piece).lower() == needle
        return piece == needle


class ChunkBuffer:
    """Owned window of the stream bytes that are still undecided."""

    def __init__(self, capacity: int = 0) -> None:
        self.capacity = max(capacity, 0)
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def resize(self, capacity: int) -> None:
        """Grow the capacity after new patterns were registered."""

        capacity = max(capacity, 0)
        if capacity < len(self._data):
            raise ValueError(f"cannot shrink buffer below its {len(self._data)} retained bytes")
        self.capacity = capacity

    def view(self, chunk: bytes | bytearray | memoryview = b"") -> SplitSlice:
        return SplitSlice(memoryview(self._data), chunk)

    def refill(self, view: SplitSlice, start: int) -> None:
        """Keep ``view[start:]`` as the new content, copying it out of ``view``."""

        retained = len(view) - start
        if retained > self.capacity:
            raise ValueError(f"{retained} undecided bytes exceed buffer capacity {self.capacity}")
        data = view[start:]
        self._data = bytearray(data)

    def clear(self) -> None:
        self._data = bytearray()
