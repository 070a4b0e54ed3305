"""Shared pytest fixtures for the test suite."""
from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from multifinder import CaseMode, Session  # noqa: E402


class Recorder:
    """Collects every callback a session makes, in order."""

    def __init__(self, abort_on: dict[Any, int] | None = None) -> None:
        self.events: list[tuple[str, Any]] = []
        self.abort_on = abort_on or {}

    def on_match(self, session: Session, length: int, tag: Any) -> int:
        self.events.append(("match", (length, tag)))
        return self.abort_on.get(tag, 0)

    def on_flush(self, data: bytes) -> None:
        self.events.append(("flush", data))

    @property
    def matches(self) -> list[tuple[int, Any]]:
        return [value for kind, value in self.events if kind == "match"]

    @property
    def flushes(self) -> list[bytes]:
        return [value for kind, value in self.events if kind == "flush"]

    @property
    def output(self) -> bytes:
        return b"".join(self.flushes)

    def normalized(self) -> list[tuple[str, Any]]:
        """Events with adjacent flush payloads merged, independent of chunking."""

        merged: list[tuple[str, Any]] = []
        for kind, value in self.events:
            if kind == "flush" and value and merged and merged[-1][0] == "flush" and merged[-1][1]:
                merged[-1] = ("flush", merged[-1][1] + value)
            else:
                merged.append((kind, value))
        return merged


def make_session(
    patterns: Iterable[str | bytes | tuple[str | bytes, CaseMode]],
    abort_on: dict[Any, int] | None = None,
) -> tuple[Session, Recorder]:
    recorder = Recorder(abort_on)
    session = Session(on_match=recorder.on_match, on_flush=recorder.on_flush)
    for index, entry in enumerate(patterns):
        if isinstance(entry, tuple):
            data, case = entry
        else:
            data, case = entry, CaseMode.SENSITIVE
        session.add_pattern(data, case, tag=index)
    return session, recorder


def run_chunks(
    patterns: Iterable[str | bytes | tuple[str | bytes, CaseMode]],
    chunks: Sequence[bytes],
    abort_on: dict[Any, int] | None = None,
) -> tuple[Session, Recorder, int]:
    session, recorder = make_session(patterns, abort_on)
    total = 0
    for chunk in chunks:
        total += session.submit(chunk)
    total += session.finalize()
    return session, recorder, total


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()
