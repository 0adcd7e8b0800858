from __future__ import annotations

import os
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from pathlib import Path
from typing import Any, BinaryIO

import anyio
import anyio.to_thread

from .errors import InputFileError

DEFAULT_CHUNK_SIZE = 64 * 1024

InputFileSource = (
    bytes
    | bytearray
    | memoryview
    | str
    | os.PathLike[str]
    | BinaryIO
    | Iterable[bytes]
    | AsyncIterable[bytes]
)


class InputFile:
    """File content to upload, read lazily when the request body streams.

    Byte buffers and filesystem paths can be read any number of times. File
    objects, iterators and async iterators are one-shot sources.
    """

    __slots__ = ("_source", "_chunk_size", "_consumed", "filename")

    def __init__(
        self,
        source: InputFileSource,
        filename: str | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size
        self._consumed = False
        self._source: Any
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._source = bytes(source)
        elif isinstance(source, (str, os.PathLike)):
            path = Path(source)
            self._source = path
            if filename is None:
                filename = path.name or None
        elif hasattr(source, "read") or isinstance(
            source, (AsyncIterable, Iterable)
        ):
            self._source = source
        else:
            raise InputFileError(
                f"Unsupported file source of type {type(source).__name__}"
            )
        self.filename = filename

    def __repr__(self) -> str:
        return f"InputFile(filename={self.filename!r})"

    @property
    def is_reusable(self) -> bool:
        return isinstance(self._source, (bytes, Path))

    def _claim(self) -> None:
        if self._consumed:
            raise InputFileError(
                f"File source for {self.filename or 'upload'} was already consumed"
            )
        self._consumed = True

    async def chunks(self) -> AsyncIterator[bytes]:
        source = self._source
        if isinstance(source, bytes):
            yield source
            return
        if isinstance(source, Path):
            async with await anyio.open_file(source, "rb") as handle:
                while True:
                    chunk = await handle.read(self._chunk_size)
                    if not chunk:
                        break
                    yield chunk
            return
        self._claim()
        if hasattr(source, "read"):
            while True:
                chunk = await anyio.to_thread.run_sync(source.read, self._chunk_size)
                if not chunk:
                    break
                yield bytes(chunk)
        elif isinstance(source, AsyncIterable):
            async for chunk in source:
                yield bytes(chunk)
        else:
            iterator = iter(source)
            while True:
                chunk = await anyio.to_thread.run_sync(next, iterator, None)
                if chunk is None:
                    break
                yield bytes(chunk)

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self.chunks()])
