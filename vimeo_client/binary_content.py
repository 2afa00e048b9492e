"""Seekable byte source with a fixed length and content type.

Reads never move the caller-visible position of the wrapped stream, so the
upload loop can re-read any range after a failed or lost chunk.
"""

import io
import mimetypes
import os
import shutil
import tempfile
import threading
from importlib import resources
from typing import BinaryIO, Iterator, Optional, Tuple

from .exceptions import OutOfRangeError

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def guess_content_type(path: str) -> str:
    ctype, _ = mimetypes.guess_type(path)
    return ctype or DEFAULT_CONTENT_TYPE


class BinaryContent:
    def __init__(self, stream: BinaryIO, content_type: str = DEFAULT_CONTENT_TYPE, length: Optional[int] = None):
        self._source = stream
        if not _seekable(stream):
            stream = _spool(stream)
        self._stream = stream
        self._lock = threading.Lock()
        self.content_type = content_type or DEFAULT_CONTENT_TYPE
        self.length = self._measure() if length is None else int(length)
        if self.length < 0:
            raise OutOfRangeError(f"Negative content length: {self.length}")

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> 'BinaryContent':
        return cls(io.BytesIO(data), content_type, len(data))

    @classmethod
    def from_file(cls, path: str, content_type: Optional[str] = None) -> 'BinaryContent':
        stream = open(path, 'rb')
        return cls(stream, content_type or guess_content_type(path), os.fstat(stream.fileno()).st_size)

    @classmethod
    def from_resource(cls, package: str, name: str, content_type: Optional[str] = None) -> 'BinaryContent':
        """Open a file shipped inside an importable package."""
        stream = resources.files(package).joinpath(name).open('rb')
        return cls(stream, content_type or guess_content_type(name))

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def _measure(self) -> int:
        with self._lock:
            here = self._stream.tell()
            try:
                self._stream.seek(0, io.SEEK_END)
                return self._stream.tell()
            finally:
                self._stream.seek(here)

    def read(self, offset: int, max_length: int) -> bytes:
        if offset < 0 or offset > self.length:
            raise OutOfRangeError(f"Offset {offset} outside content of length {self.length}")
        if max_length < 0:
            raise OutOfRangeError(f"Negative read length: {max_length}")
        size = min(max_length, self.length - offset)
        if size == 0:
            return b''
        with self._lock:
            here = self._stream.tell()
            try:
                self._stream.seek(offset)
                chunks = []
                remaining = size
                while remaining > 0:
                    block = self._stream.read(remaining)
                    if not block:
                        break
                    chunks.append(block)
                    remaining -= len(block)
            finally:
                self._stream.seek(here)
        data = b''.join(chunks)
        if len(data) != size:
            raise OutOfRangeError(
                f"Source ended at {offset + len(data)} before declared length {self.length}"
            )
        return data

    def iter_ranges(self, chunk_size: int) -> Iterator[Tuple[int, int]]:
        """Yield ``(start, end)`` pairs, end exclusive, covering the content."""
        if chunk_size <= 0:
            raise ValueError('chunk_size must be positive')
        for start in range(0, self.length, chunk_size):
            yield start, min(start + chunk_size, self.length)

    def close(self) -> None:
        self._stream.close()
        if self._source is not self._stream:
            self._source.close()

    def __enter__(self) -> 'BinaryContent':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"BinaryContent(length={self.length}, content_type={self.content_type!r})"


def _seekable(stream) -> bool:
    try:
        return bool(stream.seekable())
    except (AttributeError, ValueError):
        return False


def _spool(stream) -> BinaryIO:
    spooled = tempfile.SpooledTemporaryFile(max_size=64 * 1024 * 1024)
    shutil.copyfileobj(stream, spooled)
    spooled.seek(0)
    return spooled
