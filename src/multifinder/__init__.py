"""multifinder: streaming multi-pattern exact-match scanning."""
from __future__ import annotations

from .buffer import ChunkBuffer, SplitSlice
from .consumers import MatchCounter, Replacer
from .engine import MatchEngine, ScanResult
from .errors import ConfigError, MultifinderError, SessionStateError
from .flush import FlushCoordinator
from .patterns import CaseMode, Pattern, PatternSet
from .session import Session
from .sources import iter_bytes_chunks, iter_file_chunks, scan_async_chunks, scan_chunks, stream_url
from .stop_sequences import StopSequenceMatcher

__version__ = "0.1.1"

__all__ = [
    "CaseMode",
    "ChunkBuffer",
    "ConfigError",
    "FlushCoordinator",
    "MatchCounter",
    "MatchEngine",
    "MultifinderError",
    "Pattern",
    "PatternSet",
    "Replacer",
    "ScanResult",
    "Session",
    "SessionStateError",
    "SplitSlice",
    "StopSequenceMatcher",
    "iter_bytes_chunks",
    "iter_file_chunks",
    "scan_async_chunks",
    "scan_chunks",
    "stream_url",
]
