"""
NBT tag model.

A tag is one node of the tree: a TagType plus the payload for that type.
Payload conventions:

- Byte, Short, Int, Long: int
- Float, Double: float (Float payloads are kept representable as IEEE single)
- ByteArray, IntArray, LongArray: list[int]
- String: bytes (raw, not necessarily UTF-8 in binary files)
- List: list[Tag], every element of the same type
- Compound: list[tuple[bytes, Tag]], insertion ordered, duplicate names allowed
- End: None; only ever a structural terminator, never a stored value

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

import math
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional

from .compression import Compression
from .errors import UnknownTagType


class TagType(IntEnum):
    """Tag types, valued by their type byte."""
    END = 0
    BYTE = 1
    SHORT = 2
    INT = 3
    LONG = 4
    FLOAT = 5
    DOUBLE = 6
    BYTE_ARRAY = 7
    STRING = 8
    LIST = 9
    COMPOUND = 10
    INT_ARRAY = 11
    LONG_ARRAY = 12

    @classmethod
    def from_name(cls, name: str) -> "TagType":
        """Look up a type by its text name (case-sensitive)."""
        try:
            return _TYPES_BY_NAME[name]
        except KeyError:
            raise UnknownTagType(name) from None

    @classmethod
    def from_byte(cls, value: int) -> "TagType":
        try:
            return cls(value)
        except ValueError:
            raise UnknownTagType(f"0x{value:02x}", f"Got unknown type id 0x{value:02x}") from None


# Names used by the pretty text format
TYPE_NAMES = {
    TagType.END: "End",
    TagType.BYTE: "Byte",
    TagType.SHORT: "Short",
    TagType.INT: "Int",
    TagType.LONG: "Long",
    TagType.FLOAT: "Float",
    TagType.DOUBLE: "Double",
    TagType.BYTE_ARRAY: "ByteArray",
    TagType.STRING: "String",
    TagType.LIST: "List",
    TagType.COMPOUND: "Compound",
    TagType.INT_ARRAY: "IntArray",
    TagType.LONG_ARRAY: "LongArray",
}

_TYPES_BY_NAME = {name: tag_type for tag_type, name in TYPE_NAMES.items()}

ARRAY_TYPES = {TagType.BYTE_ARRAY, TagType.INT_ARRAY, TagType.LONG_ARRAY}

# Element type stored in each array type
ARRAY_ELEMENT_TYPES = {
    TagType.BYTE_ARRAY: TagType.BYTE,
    TagType.INT_ARRAY: TagType.INT,
    TagType.LONG_ARRAY: TagType.LONG,
}


class Float32NaN(float):
    """A single precision NaN that keeps its exact bit pattern.

    Converting through a double sets the quiet bit of signalling NaNs, so
    the binary reader stores NaN Floats as this type and the writer packs
    `bits` directly.
    """

    def __new__(cls, bits: int):
        obj = super().__new__(cls, math.nan)
        obj.bits = bits
        return obj

    def __repr__(self):
        return f"Float32NaN(0x{self.bits:08x})"


def to_float32(value: float) -> float:
    """Round a float to the nearest IEEE single precision value."""
    if isinstance(value, Float32NaN):
        return value
    try:
        return struct.unpack(">f", struct.pack(">f", value))[0]
    except OverflowError:
        # Finite doubles beyond the single range round to infinity
        return math.copysign(math.inf, value)


def _name_bytes(name) -> bytes:
    return name.encode("utf-8") if isinstance(name, str) else bytes(name)


def display_name(name: bytes) -> str:
    """Quoted, printable form of a tag name for error messages."""
    return repr(name.decode("utf-8", errors="replace"))


@dataclass
class Tag:
    """A single NBT tag."""
    type: TagType
    value: Any = None

    def type_string(self) -> str:
        return TYPE_NAMES[self.type]

    def type_byte(self) -> int:
        return int(self.type)

    def get(self, name) -> Optional["Tag"]:
        """Return the first entry called `name` in a Compound, or None."""
        if self.type != TagType.COMPOUND:
            return None
        key = _name_bytes(name)
        for entry_name, entry in self.value:
            if entry_name == key:
                return entry
        return None

    # ------------------------------------------------------------------------
    # Constructors, one per variant
    # ------------------------------------------------------------------------

    @classmethod
    def end(cls) -> "Tag":
        return cls(TagType.END)

    @classmethod
    def byte(cls, value: int) -> "Tag":
        return cls(TagType.BYTE, value)

    @classmethod
    def short(cls, value: int) -> "Tag":
        return cls(TagType.SHORT, value)

    @classmethod
    def int_(cls, value: int) -> "Tag":
        return cls(TagType.INT, value)

    @classmethod
    def long(cls, value: int) -> "Tag":
        return cls(TagType.LONG, value)

    @classmethod
    def float_(cls, value: float) -> "Tag":
        return cls(TagType.FLOAT, to_float32(value))

    @classmethod
    def double(cls, value: float) -> "Tag":
        return cls(TagType.DOUBLE, float(value))

    @classmethod
    def byte_array(cls, values) -> "Tag":
        return cls(TagType.BYTE_ARRAY, list(values))

    @classmethod
    def string(cls, value) -> "Tag":
        """Accepts bytes, or str which is stored as UTF-8."""
        return cls(TagType.STRING, _name_bytes(value))

    @classmethod
    def list_(cls, items) -> "Tag":
        return cls(TagType.LIST, list(items))

    @classmethod
    def compound(cls, entries=()) -> "Tag":
        """Build a Compound from (name, tag) pairs; names may be str or bytes."""
        return cls(TagType.COMPOUND, [(_name_bytes(name), tag) for name, tag in entries])

    @classmethod
    def int_array(cls, values) -> "Tag":
        return cls(TagType.INT_ARRAY, list(values))

    @classmethod
    def long_array(cls, values) -> "Tag":
        return cls(TagType.LONG_ARRAY, list(values))


def list_element_type(tag: Tag) -> TagType:
    """Element type of a List tag. Empty lists are always typed End."""
    items = tag.value
    if not items:
        return TagType.END
    element_type = items[0].type
    for item in items:
        if item.type != element_type:
            raise ValueError(
                f"List elements must all be {TYPE_NAMES[element_type]}, found {item.type_string()}"
            )
    return element_type


@dataclass
class NbtFile:
    """A whole NBT file: the implicit root compound and its compression envelope."""
    root: Tag = field(default_factory=Tag.compound)
    compression: Compression = Compression.NONE
