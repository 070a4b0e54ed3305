"""Chunked input sources feeding a :class:`~multifinder.session.Session`."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from typing import BinaryIO

import httpx

from .config import DEFAULT_READ_SIZE
from .session import Session

LOGGER = logging.getLogger(__name__)

STREAM_TIMEOUT = httpx.Timeout(connect=5.0, read=None, write=None, pool=None)


def _check_size(chunk_size: int) -> None:
    if chunk_size <= 0:
        raise ValueError("chunk size must be positive")


def iter_file_chunks(fileobj: BinaryIO, chunk_size: int = DEFAULT_READ_SIZE) -> Iterator[bytes]:
    """Yield successive reads of ``chunk_size`` bytes until EOF."""

    _check_size(chunk_size)
    while True:
        chunk = fileobj.read(chunk_size)
        if not chunk:
            return
        yield chunk


def iter_bytes_chunks(data: bytes, chunk_size: int = DEFAULT_READ_SIZE) -> Iterator[bytes]:
    _check_size(chunk_size)
    for start in range(0, len(data), chunk_size):
        yield data[start : start + chunk_size]


async def stream_url(
    url: str,
    chunk_size: int = DEFAULT_READ_SIZE,
    *,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[bytes]:
    """Yield the body of a ``GET url`` response in chunks of ``chunk_size``.

    Raises :class:`httpx.HTTPStatusError` for error responses. A client may be
    supplied, otherwise one is created and closed here.
    """

    _check_size(chunk_size)
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=STREAM_TIMEOUT, follow_redirects=True)
    try:
        async with client.stream("GET", url) as response:
            if response.is_error:
                # Read the body so the error detail is available to callers.
                await response.aread()
            response.raise_for_status()
            LOGGER.debug("Streaming %s (status %s)", url, response.status_code)
            async for chunk in response.aiter_bytes(chunk_size):
                yield chunk
    finally:
        if owns_client:
            await client.aclose()


def scan_chunks(session: Session, chunks: Iterable[bytes]) -> int:
    """Submit every chunk, finalize, and return the total number of matches."""

    count = 0
    for chunk in chunks:
        count += session.submit(chunk)
    count += session.finalize()
    return count


async def scan_async_chunks(session: Session, chunks: AsyncIterable[bytes]) -> int:
    count = 0
    async for chunk in chunks:
        count += session.submit(chunk)
    count += session.finalize()
    return count
