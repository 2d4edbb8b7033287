"""
Binary NBT reader and writer.

Wire format (all multi-byte fields big-endian):

    entry     = type(u8) name payload
    name      = length(u16) raw bytes
    String    = length(u16) raw bytes
    arrays    = length(i32) then that many i8 / i32 / i64
    List      = element type(u8) length(i32) then that many payloads
    Compound  = entries, terminated by a single 0x00 (End)

The top level of a file is an implicit compound: the entries are written back
to back with no type/name header of their own and no End at the end. When
reading, the top level also stops cleanly if the input ends exactly where a
type byte was expected. Nested compounds always need their End.

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

import io
import math
import struct
import zlib
from typing import BinaryIO, Optional

from .compression import Compression, open_compressed, open_decompressed, peek_first_byte
from .errors import LengthError, NbtError, NbtIoError, UnexpectedEof, check_length
from .tags import Float32NaN, NbtFile, Tag, TagType, TYPE_NAMES, display_name, list_element_type

# Element struct codes for the array types
ARRAY_FORMATS = {
    TagType.BYTE_ARRAY: ("b", 1),
    TagType.INT_ARRAY: ("i", 4),
    TagType.LONG_ARRAY: ("q", 8),
}

# Fixed width scalar payloads: type -> (struct format, size)
SCALAR_FORMATS = {
    TagType.BYTE: (">b", 1),
    TagType.SHORT: (">h", 2),
    TagType.INT: (">i", 4),
    TagType.LONG: (">q", 8),
    TagType.FLOAT: (">f", 4),
    TagType.DOUBLE: (">d", 8),
}

MAX_STRING_LENGTH = 0xFFFF

_STREAM_ERRORS = (OSError, EOFError, zlib.error)


# ============================================================================
# Binary Reader/Writer Helpers
# ============================================================================

class BinaryReader:
    """Reads big-endian NBT fields from a (possibly decompressing) stream."""

    def __init__(self, stream: BinaryIO, max_length: Optional[int] = None):
        self.stream = stream
        self.max_length = max_length

    def _read(self, n: int) -> bytes:
        chunks = []
        remaining = n
        try:
            while remaining > 0:
                chunk = self.stream.read(remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        except _STREAM_ERRORS as exc:
            raise NbtIoError(f"Error reading NBT data: {exc}") from exc
        return b"".join(chunks)

    def read_bytes(self, n: int, construct: str) -> bytes:
        data = self._read(n)
        if len(data) != n:
            raise UnexpectedEof(construct)
        return data

    def read_type_byte(self) -> Optional[int]:
        """Next type byte, or None if the input ended right here."""
        data = self._read(1)
        return data[0] if data else None

    def read_scalar(self, tag_type: TagType):
        fmt, size = SCALAR_FORMATS[tag_type]
        data = self.read_bytes(size, f"a value of type {TYPE_NAMES[tag_type]}")
        value = struct.unpack(fmt, data)[0]
        if tag_type == TagType.FLOAT and math.isnan(value):
            return Float32NaN(struct.unpack(">I", data)[0])
        return value

    def read_length(self, construct: str) -> int:
        data = self.read_bytes(4, f"the length of {construct}")
        return check_length(struct.unpack(">i", data)[0], construct, self.max_length)

    def read_string_bytes(self, construct: str) -> bytes:
        # Unlike every other length in NBT, string lengths are unsigned
        length = struct.unpack(">H", self.read_bytes(2, f"the length of {construct}"))[0]
        check_length(length, construct, self.max_length)
        return self.read_bytes(length, construct)

    # ------------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------------

    def read_payload(self, tag_type: TagType) -> Tag:
        if tag_type in SCALAR_FORMATS:
            return Tag(tag_type, self.read_scalar(tag_type))
        elif tag_type in ARRAY_FORMATS:
            return self.read_array(tag_type)
        elif tag_type == TagType.STRING:
            return Tag(TagType.STRING, self.read_string_bytes("a String"))
        elif tag_type == TagType.LIST:
            return self.read_list()
        elif tag_type == TagType.COMPOUND:
            return self.read_compound(implicit=False)
        else:
            # End has no payload; it only shows up as a List element type
            return Tag(TagType.END)

    def read_array(self, tag_type: TagType) -> Tag:
        name = TYPE_NAMES[tag_type]
        code, width = ARRAY_FORMATS[tag_type]
        length = self.read_length(f"a {name}")
        data = self.read_bytes(length * width, f"the values of a {name} of length {length}")
        return Tag(tag_type, list(struct.unpack(f">{length}{code}", data)))

    def read_list(self) -> Tag:
        element_type = TagType.from_byte(self.read_bytes(1, "the element type of a List")[0])
        element_name = TYPE_NAMES[element_type]
        length = self.read_length(f"a List of {element_name}")
        items = []
        for index in range(length):
            try:
                items.append(self.read_payload(element_type))
            except NbtError as exc:
                raise exc.add_context(f"while reading element {index} of a List of {element_name}")
        return Tag(TagType.LIST, items)

    def read_compound(self, implicit: bool) -> Tag:
        """Read compound entries up to an End.

        With implicit=True (the file's top level) running out of input where a
        type byte is expected also ends the compound.
        """
        entries = []
        while True:
            type_byte = self.read_type_byte()
            if type_byte is None:
                if implicit:
                    break
                raise UnexpectedEof("the next item in a compound")
            if type_byte == TagType.END:
                break

            tag_type = TagType.from_byte(type_byte)
            name = self.read_string_bytes(f"the name of a {TYPE_NAMES[tag_type]} tag in a compound")
            try:
                tag = self.read_payload(tag_type)
            except NbtError as exc:
                raise exc.add_context(f"while reading {TYPE_NAMES[tag_type]} tag {display_name(name)}")
            entries.append((name, tag))
        return Tag(TagType.COMPOUND, entries)


class BinaryWriter:
    """Writes big-endian NBT fields to a stream."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write_bytes(self, data: bytes):
        self.stream.write(data)

    def write_u8(self, value: int):
        self.stream.write(struct.pack(">B", value))

    def write_i32(self, value: int):
        self.stream.write(struct.pack(">i", value))

    def write_string_bytes(self, value: bytes):
        if len(value) > MAX_STRING_LENGTH:
            raise LengthError(len(value), "a String or tag name", MAX_STRING_LENGTH)
        self.stream.write(struct.pack(">H", len(value)))
        self.stream.write(value)

    def write_payload(self, tag: Tag):
        tag_type = tag.type
        if tag_type == TagType.END:
            raise AssertionError("Unable to write End tag")
        elif tag_type == TagType.FLOAT and isinstance(tag.value, Float32NaN):
            self.write_bytes(struct.pack(">I", tag.value.bits))
        elif tag_type in SCALAR_FORMATS:
            fmt, _ = SCALAR_FORMATS[tag_type]
            self.write_bytes(struct.pack(fmt, tag.value))
        elif tag_type in ARRAY_FORMATS:
            code, _ = ARRAY_FORMATS[tag_type]
            values = tag.value
            self.write_i32(len(values))
            if values:
                self.write_bytes(struct.pack(f">{len(values)}{code}", *values))
        elif tag_type == TagType.STRING:
            self.write_string_bytes(tag.value)
        elif tag_type == TagType.LIST:
            self.write_list(tag)
        elif tag_type == TagType.COMPOUND:
            self.write_compound(tag, implicit=False)
        else:
            raise AssertionError(f"Unknown tag type {tag_type!r}")

    def write_list(self, tag: Tag):
        self.write_u8(list_element_type(tag))
        self.write_i32(len(tag.value))
        for item in tag.value:
            self.write_payload(item)

    def write_compound(self, tag: Tag, implicit: bool):
        for name, entry in tag.value:
            self.write_u8(entry.type_byte())
            self.write_string_bytes(name)
            self.write_payload(entry)
        # No End on the implicit top-level compound
        if not implicit:
            self.write_u8(TagType.END)


# ============================================================================
# File level
# ============================================================================

def parse_nbt(source, max_length: Optional[int] = None) -> NbtFile:
    """Read a binary NBT file from bytes or a readable binary stream.

    The compression envelope is picked from the first byte. `max_length`
    optionally bounds every array, list and string length before reading it.
    """
    stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray, memoryview)) else source
    try:
        first_byte, stream = peek_first_byte(stream)
    except OSError as exc:
        raise NbtIoError(f"Error reading NBT data: {exc}") from exc

    compression = Compression.from_first_byte(first_byte)
    reader = BinaryReader(open_decompressed(stream, compression), max_length)
    root = reader.read_compound(implicit=True)
    return NbtFile(root=root, compression=compression)


def write_nbt(nbt_file: NbtFile, sink: BinaryIO):
    """Write `nbt_file` in binary form, compressed as its `compression` says."""
    root = nbt_file.root
    if root.type != TagType.COMPOUND:
        raise AssertionError(f"The root of an NBT file must be a Compound, not {root.type_string()}")
    try:
        with open_compressed(sink, nbt_file.compression) as stream:
            BinaryWriter(stream).write_compound(root, implicit=True)
    except OSError as exc:
        raise NbtIoError(f"Error writing NBT data: {exc}") from exc


def nbt_to_bytes(nbt_file: NbtFile) -> bytes:
    buffer = io.BytesIO()
    write_nbt(nbt_file, buffer)
    return buffer.getvalue()
