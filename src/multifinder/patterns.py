"""Pattern registration and comparison."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import only needed for annotations
    from .buffer import SplitSlice

LOGGER = logging.getLogger(__name__)


class CaseMode(Enum):
    """How a pattern is compared against stream bytes."""

    SENSITIVE = "sensitive"
    INSENSITIVE = "insensitive"


def _as_pattern_bytes(data: Any) -> bytes | bytearray | None:
    if data is None:
        return None
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return data
    if isinstance(data, memoryview):
        return data.tobytes()
    raise TypeError(f"pattern must be bytes-like or str, not {type(data).__name__}")


@dataclass(frozen=True)
class Pattern:
    """A literal byte sequence with its comparison mode and caller tag."""

    data: bytes | bytearray
    case: CaseMode = CaseMode.SENSITIVE
    tag: Any = None
    _needle: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # ``bytes.lower`` only folds ASCII letters, other bytes stay literal.
        needle = bytes(self.data)
        if self.case is CaseMode.INSENSITIVE:
            needle = needle.lower()
        object.__setattr__(self, "_needle", needle)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def folded(self) -> bool:
        return self.case is CaseMode.INSENSITIVE

    @property
    def first_bytes(self) -> frozenset[int]:
        """Byte values a match of this pattern can start with."""

        first = self._needle[0]
        if self.folded:
            return frozenset({first, bytes([first]).upper()[0]})
        return frozenset({first})

    def matches(self, view: SplitSlice, offset: int) -> bool:
        return view.compare(offset, self._needle, fold=self.folded)


class PatternSet:
    """Ordered collection of patterns; registration order is match priority."""

    def __init__(self) -> None:
        self._patterns: list[Pattern] = []
        self.longest = 0
        self._first_bytes: frozenset[int] = frozenset()

    def add(self, data: Any, case: CaseMode = CaseMode.SENSITIVE, tag: Any = None) -> Pattern | None:
        """Register a private copy of ``data``.

        Absent or empty patterns are ignored and ``None`` is returned.
        """

        raw = _as_pattern_bytes(data)
        if not raw:
            return None
        return self._append(Pattern(bytes(raw), case, tag))

    def add_owned(
        self,
        buffer: bytes | bytearray,
        length: int | None = None,
        case: CaseMode = CaseMode.SENSITIVE,
        tag: Any = None,
    ) -> Pattern | None:
        """Register ``buffer`` without copying it.

        The set takes ownership: the caller must not modify ``buffer`` after
        handing it over. ``length`` may restrict the pattern to a prefix, in
        which case a slice has to be taken.
        """

        if buffer is None:
            return None
        if not isinstance(buffer, (bytes, bytearray)):
            raise TypeError(f"owned pattern must be bytes or bytearray, not {type(buffer).__name__}")
        if length is not None:
            if length < 0 or length > len(buffer):
                raise ValueError(f"pattern length {length} outside buffer of {len(buffer)} bytes")
            if length != len(buffer):
                buffer = buffer[:length]
        if not buffer:
            return None
        return self._append(Pattern(buffer, case, tag))

    def _append(self, pattern: Pattern) -> Pattern:
        self._patterns.append(pattern)
        if len(pattern) > self.longest:
            self.longest = len(pattern)
        self._first_bytes = self._first_bytes | pattern.first_bytes
        LOGGER.debug(
            "Registered pattern #%d (%d bytes, %s)",
            len(self._patterns),
            len(pattern),
            pattern.case.value,
        )
        return pattern

    def count(self) -> int:
        return len(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self._patterns)

    def __getitem__(self, index: int) -> Pattern:
        return self._patterns[index]

    @property
    def first_bytes(self) -> frozenset[int]:
        return self._first_bytes

    def match_at(self, view: SplitSlice, offset: int) -> Pattern | None:
        """Return the highest priority pattern matching at ``offset``."""

        for pattern in self._patterns:
            if pattern.matches(view, offset):
                return pattern
        return None
