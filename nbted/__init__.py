"""
nbted: convert NBT files to an editable text format and back.

    >>> from nbted import parse_nbt, text_to_bytes
    >>> nbt_file = parse_nbt(open("level.dat", "rb"))
    >>> print(text_to_bytes(nbt_file).decode())

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

__version__ = "1.5.0"

from .binary import nbt_to_bytes, parse_nbt, write_nbt
from .compression import Compression
from .errors import (
    DuplicateCompression,
    InvalidEscape,
    InvalidLiteral,
    LengthError,
    NbtError,
    NbtIoError,
    UnexpectedEof,
    UnknownCompression,
    UnknownCompressionName,
    UnknownTagType,
    Utf8Error,
)
from .replacer import Replacer
from .tags import NbtFile, Tag, TagType, list_element_type
from .text import parse_text, text_to_bytes, write_text
from .yaml_export import dump_yaml, to_plain

__all__ = [
    "Compression",
    "DuplicateCompression",
    "InvalidEscape",
    "InvalidLiteral",
    "LengthError",
    "NbtError",
    "NbtFile",
    "NbtIoError",
    "Replacer",
    "Tag",
    "TagType",
    "UnexpectedEof",
    "UnknownCompression",
    "UnknownCompressionName",
    "UnknownTagType",
    "Utf8Error",
    "dump_yaml",
    "list_element_type",
    "nbt_to_bytes",
    "parse_nbt",
    "parse_text",
    "text_to_bytes",
    "to_plain",
    "write_nbt",
    "write_text",
]
