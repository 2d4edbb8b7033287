"""
Compression envelopes for binary NBT files.

NBT files come uncompressed, gzip compressed or zlib compressed. The envelope
is guessed from the first byte of the file:

    0x0a  uncompressed (type byte of a Compound, the usual first entry)
    0x1f  gzip (first byte of the gzip magic)
    0x78  zlib (CMF byte for deflate with a 32K window)

This is a heuristic, not a signature check. An uncompressed file whose first
top-level entry is not a Compound is reported as UnknownCompression (or, for
the unlucky type bytes, misread as compressed).

Copyright (C) 2026 wszqkzqk <wszqkzqk@qq.com>

This library is free software; you can redistribute it and/or
modify it under the terms of the GNU Lesser General Public
License as published by the Free Software Foundation; either
version 2.1 of the License, or (at your option) any later version.

This library is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
Lesser General Public License for more details.

You should have received a copy of the GNU Lesser General Public
License along with this library; if not, write to the Free Software
Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301  USA
"""

import gzip
import io
import zlib
from contextlib import contextmanager
from enum import Enum
from typing import BinaryIO, Iterator, Optional

from .errors import UnknownCompression, UnknownCompressionName

# ============================================================================
# Constants
# ============================================================================

FIRST_BYTE_NONE = 0x0A
FIRST_BYTE_GZIP = 0x1F
FIRST_BYTE_ZLIB = 0x78

# Deflate level used for both envelopes (zlib's default)
COMPRESSION_LEVEL = 6

# Timestamp written into gzip headers, fixed so output is reproducible
GZIP_MTIME = 0

READ_CHUNK_SIZE = 64 * 1024


class Compression(Enum):
    """Compression envelope of a binary NBT file, valued by its text name."""
    NONE = "None"
    GZIP = "Gzip"
    ZLIB = "Zlib"

    def to_str(self) -> str:
        return self.value

    @classmethod
    def from_str(cls, name: str) -> "Compression":
        """Case-sensitive lookup of "None", "Gzip" or "Zlib"."""
        for compression in cls:
            if compression.value == name:
                return compression
        raise UnknownCompressionName(name)

    @classmethod
    def from_first_byte(cls, first_byte: Optional[int]) -> "Compression":
        if first_byte == FIRST_BYTE_NONE:
            return cls.NONE
        if first_byte == FIRST_BYTE_GZIP:
            return cls.GZIP
        if first_byte == FIRST_BYTE_ZLIB:
            return cls.ZLIB
        raise UnknownCompression(first_byte)


# ============================================================================
# Reading
# ============================================================================

class _PrependedReader:
    """Replays bytes already taken from a stream before reading on from it."""

    def __init__(self, head: bytes, fileobj: BinaryIO):
        self._head = head
        self._fileobj = fileobj

    def read(self, size: int = -1) -> bytes:
        if not self._head:
            return self._fileobj.read(size)
        if size is None or size < 0:
            data = self._head + self._fileobj.read()
            self._head = b""
            return data
        data = self._head[:size]
        self._head = self._head[size:]
        if len(data) < size:
            data += self._fileobj.read(size - len(data))
        return data


def peek_first_byte(fileobj: BinaryIO) -> tuple[Optional[int], BinaryIO]:
    """Look at the first byte without consuming it.

    Returns the byte (None on empty input) and the stream to keep reading
    from, which still starts with that byte.
    """
    if hasattr(fileobj, "peek"):
        head = fileobj.peek(1)[:1]
        return (head[0] if head else None), fileobj
    head = fileobj.read(1)
    if not head:
        return None, fileobj
    return head[0], _PrependedReader(head, fileobj)


class ZlibReader(io.RawIOBase):
    """Raw stream decompressing a zlib envelope as it is read."""

    def __init__(self, fileobj: BinaryIO):
        super().__init__()
        self._fileobj = fileobj
        self._decompressor = zlib.decompressobj()
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending:
            if self._decompressor.eof:
                return 0
            chunk = self._fileobj.read(READ_CHUNK_SIZE)
            if not chunk:
                raise EOFError("Compressed file ended before the end-of-stream marker was reached")
            self._pending = self._decompressor.decompress(chunk)
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def open_decompressed(fileobj: BinaryIO, compression: Compression) -> BinaryIO:
    """Wrap a stream so reads return the decompressed payload."""
    if compression is Compression.GZIP:
        return gzip.GzipFile(filename="", mode="rb", fileobj=fileobj)
    if compression is Compression.ZLIB:
        return io.BufferedReader(ZlibReader(fileobj))
    return fileobj


# ============================================================================
# Writing
# ============================================================================

class ZlibWriter:
    """File-like wrapper compressing everything written into a zlib envelope."""

    def __init__(self, fileobj: BinaryIO, level: int = COMPRESSION_LEVEL):
        self._fileobj = fileobj
        self._compressor = zlib.compressobj(level)
        self.closed = False

    def write(self, data: bytes) -> int:
        self._fileobj.write(self._compressor.compress(data))
        return len(data)

    def close(self):
        if not self.closed:
            self.closed = True
            self._fileobj.write(self._compressor.flush(zlib.Z_FINISH))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


@contextmanager
def open_compressed(fileobj: BinaryIO, compression: Compression) -> Iterator[BinaryIO]:
    """Yield a writer for `compression`; the envelope is finished on exit, even on error."""
    if compression is Compression.GZIP:
        with gzip.GzipFile(filename="", mode="wb", fileobj=fileobj,
                           compresslevel=COMPRESSION_LEVEL, mtime=GZIP_MTIME) as writer:
            yield writer
    elif compression is Compression.ZLIB:
        with ZlibWriter(fileobj) as writer:
            yield writer
    else:
        yield fileobj
