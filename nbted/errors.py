"""
Error types raised while reading or writing NBT data.

Every failure a caller can reasonably report is an NbtError subclass with a
grep-friendly `code`. Errors collect context on the way out: each enclosing
construct (compound entry, list, array) appends one line, so a failure deep
in a file reads like

    Invalid Int NotAnInt
        while reading Int tag 'Count'
        while reading Compound tag 'Inventory'

Encoding a bare End tag is not an NbtError; that is a broken tree and raises
AssertionError instead.

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

from typing import Optional

# ============================================================================
# Error codes
# ============================================================================

ERR_IO = "ERR_IO"
ERR_UNEXPECTED_EOF = "ERR_UNEXPECTED_EOF"
ERR_INVALID_LITERAL = "ERR_INVALID_LITERAL"
ERR_UNKNOWN_TAG_TYPE = "ERR_UNKNOWN_TAG_TYPE"
ERR_UNKNOWN_COMPRESSION = "ERR_UNKNOWN_COMPRESSION"
ERR_UNKNOWN_COMPRESSION_NAME = "ERR_UNKNOWN_COMPRESSION_NAME"
ERR_INVALID_ESCAPE = "ERR_INVALID_ESCAPE"
ERR_DUPLICATE_COMPRESSION = "ERR_DUPLICATE_COMPRESSION"
ERR_UTF8 = "ERR_UTF8"
ERR_LENGTH = "ERR_LENGTH"


# ============================================================================
# Exceptions
# ============================================================================

class NbtError(Exception):
    """Base class for every reportable NBT error."""

    code = "ERR_NBT"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: list[str] = []

    def add_context(self, line: str) -> "NbtError":
        """Record the construct that was being processed. Returns self so it can be re-raised."""
        self.context.append(line)
        return self

    def describe(self) -> str:
        lines = [self.message]
        lines.extend(f"\t{line}" for line in self.context)
        return "\n".join(lines)


class NbtIoError(NbtError):
    """The byte source, sink or a compression filter failed."""
    code = ERR_IO


class UnexpectedEof(NbtError):
    """Input ran out in the middle of a construct."""

    code = ERR_UNEXPECTED_EOF

    def __init__(self, construct: str, message: Optional[str] = None):
        super().__init__(message or f"EOF when trying to read {construct}")
        self.construct = construct


class InvalidLiteral(NbtError):
    code = ERR_INVALID_LITERAL

    def __init__(self, token: str, kind: str):
        super().__init__(f"Invalid {kind} {token}")
        self.token = token
        self.kind = kind


class UnknownTagType(NbtError):
    code = ERR_UNKNOWN_TAG_TYPE

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(message or f"Unknown tag type {name}")
        self.name = name


class UnknownCompression(NbtError):
    """The first byte of a binary file matches none of the known envelopes."""

    code = ERR_UNKNOWN_COMPRESSION

    def __init__(self, first_byte: Optional[int]):
        if first_byte is None:
            message = "Unable to detect compression, file is empty"
        else:
            message = f"Unknown compression format where first byte is 0x{first_byte:02x}"
        super().__init__(message)
        self.first_byte = first_byte


class UnknownCompressionName(NbtError):
    code = ERR_UNKNOWN_COMPRESSION_NAME

    def __init__(self, name: str):
        super().__init__(f"Unknown compression format {name!r}")
        self.name = name


class InvalidEscape(NbtError):
    code = ERR_INVALID_ESCAPE

    def __init__(self, char: str):
        super().__init__(
            f"Invalid string, tried to escape the character {char!r} which cannot be escaped "
            r"(to enter a literal \, write \\)"
        )
        self.char = char


class DuplicateCompression(NbtError):
    code = ERR_DUPLICATE_COMPRESSION

    def __init__(self, first: str, second: str):
        super().__init__(f"Found multiple compression settings ({first} and {second})")
        self.first = first
        self.second = second


class Utf8Error(NbtError):
    """A byte string that has to be text is not valid UTF-8."""

    code = ERR_UTF8

    def __init__(self, what: str, data: bytes, exc: Optional[UnicodeDecodeError] = None):
        valid = data[:exc.start] if exc is not None else b""
        super().__init__(
            f"{what} is not valid UTF-8 (valid up to {valid.decode('utf-8', errors='replace')!r})"
        )
        self.data = data


class LengthError(NbtError):
    """An array or list length is negative, or above the configured bound."""

    code = ERR_LENGTH

    def __init__(self, length: int, construct: str, limit: Optional[int] = None):
        if length < 0:
            message = f"Invalid length {length} for {construct}"
        else:
            message = f"Length {length} for {construct} exceeds the limit of {limit}"
        super().__init__(message)
        self.length = length
        self.limit = limit


def check_length(length: int, construct: str, max_length: Optional[int]) -> int:
    """Validate a length prefix before anything is allocated for it."""
    if length < 0:
        raise LengthError(length, construct)
    if max_length is not None and length > max_length:
        raise LengthError(length, construct, max_length)
    return length
