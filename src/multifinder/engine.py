"""Leftmost-first, non-overlapping multi-pattern scanning."""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from .buffer import SplitSlice
from .patterns import Pattern, PatternSet

FoundHandler = Callable[[int, Pattern], int]


@dataclass
class ScanResult:
    """Outcome of one pass over a window."""

    cursor: int
    matches: int = 0
    abort: int = 0


class MatchEngine:
    """Scans a :class:`SplitSlice` for the patterns of a :class:`PatternSet`.

    Offsets are decided left to right. At each offset the patterns are tried
    in registration order and the first one that matches wins; the cursor then
    jumps over the whole match. Unless the pass is final, offsets with fewer
    than ``longest`` bytes of lookahead are left undecided.
    """

    def __init__(self, patterns: PatternSet) -> None:
        self.patterns = patterns
        self._skip_key: frozenset[int] | None = None
        self._skip: re.Pattern[bytes] | None = None

    def _skip_regex(self) -> re.Pattern[bytes]:
        first_bytes = self.patterns.first_bytes
        if self._skip is None or self._skip_key != first_bytes:
            members = b"".join(re.escape(bytes([value])) for value in sorted(first_bytes))
            self._skip = re.compile(b"[" + members + b"]")
            self._skip_key = first_bytes
        return self._skip

    def _next_candidate(self, view: SplitSlice, start: int, stop: int) -> int:
        """First offset in ``[start, stop)`` holding a possible first byte, else ``stop``."""

        first_bytes = self.patterns.first_bytes
        split = view.split
        index = start
        while index < stop and index < split:
            if view.head[index] in first_bytes:
                return index
            index += 1
        if index >= stop:
            return stop
        found = self._skip_regex().search(view.tail, index - split, stop - split)
        return found.start() + split if found else stop

    def scan(self, view: SplitSlice, on_found: FoundHandler, final: bool = False, start: int = 0) -> ScanResult:
        """Decide every offset of ``view`` that can be decided.

        ``on_found`` receives the view offset and the matching pattern and
        returns a nonzero code to stop scanning right after that match.
        """

        longest = self.patterns.longest
        length = len(view)
        if longest == 0:
            return ScanResult(cursor=length)
        limit = length if final else length - longest + 1
        result = ScanResult(cursor=start)
        index = start
        while index < limit:
            index = self._next_candidate(view, index, limit)
            if index >= limit:
                break
            pattern = self.patterns.match_at(view, index)
            if pattern is None:
                index += 1
                continue
            result.matches += 1
            code = on_found(index, pattern)
            index += len(pattern)
            if code:
                result.abort = code
                break
        result.cursor = index
        return result
