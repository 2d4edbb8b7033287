"""
Pretty text format: tokenizer, parser and writer.

The text form of a file is a compression header followed by the entries of
the root compound, one per line, nested constructs indented with tabs:

    None
    Compound "hello world"
    	String "name" "Bananrama"
    	End
    End

Tokens are separated by whitespace (tab, LF, VT, FF, CR, space). A token
starting with a double quote runs to the next unescaped double quote and may
contain whitespace; inside it only \\\\ and \\" are valid escapes. Any other
token is a bare word. Bare words are accepted wherever a string is expected,
but that is an unstable leniency, not part of the format: the writer always
quotes.

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
import re
from typing import BinaryIO, Iterator, Optional

from .compression import Compression
from .errors import (
    DuplicateCompression,
    InvalidEscape,
    InvalidLiteral,
    NbtError,
    NbtIoError,
    UnexpectedEof,
    UnknownTagType,
    Utf8Error,
    check_length,
)
from .replacer import Replacer
from .tags import (
    ARRAY_ELEMENT_TYPES,
    ARRAY_TYPES,
    NbtFile,
    Tag,
    TagType,
    TYPE_NAMES,
    display_name,
    list_element_type,
    to_float32,
)

# ============================================================================
# Constants
# ============================================================================

INDENT = "\t"

QUOTE = 0x22
BACKSLASH = 0x5C

_WHITESPACE = re.compile(rb"[\t\n\x0b\x0c\r ]*")
_BARE_TOKEN = re.compile(rb"[^\t\n\x0b\x0c\r ]+")
_QUOTED_SPECIAL = re.compile(rb'["\\]')
_INTEGER = re.compile(r"[+-]?[0-9]+")

INTEGER_RANGES = {
    TagType.BYTE: (-(1 << 7), (1 << 7) - 1),
    TagType.SHORT: (-(1 << 15), (1 << 15) - 1),
    TagType.INT: (-(1 << 31), (1 << 31) - 1),
    TagType.LONG: (-(1 << 63), (1 << 63) - 1),
}

# What an atomic value token is called in EOF messages
VALUE_CONSTRUCTS = {
    TagType.BYTE: "a byte",
    TagType.SHORT: "a short",
    TagType.INT: "an int",
    TagType.LONG: "a long",
    TagType.FLOAT: "a float",
    TagType.DOUBLE: "a double",
    TagType.STRING: "a string",
}


# ============================================================================
# Tokenizer
# ============================================================================

def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise Utf8Error("Token", raw, exc) from None


def _read_quoted(data: bytes, pos: int) -> tuple[Optional[bytes], int]:
    """Read a quoted string whose opening quote is just before `pos`.

    Returns the unescaped bytes and the position after the closing quote, or
    (None, len(data)) if the input ends first.
    """
    out = bytearray()
    while True:
        match = _QUOTED_SPECIAL.search(data, pos)
        if match is None:
            return None, len(data)
        special = match.start()
        out += data[pos:special]
        if data[special] == QUOTE:
            return bytes(out), special + 1

        escaped = special + 1
        if escaped >= len(data):
            return None, len(data)
        if data[escaped] in (QUOTE, BACKSLASH):
            out.append(data[escaped])
            pos = escaped + 1
        else:
            char = data[escaped:escaped + 4].decode("utf-8", errors="replace")[0]
            raise InvalidEscape(char)


def tokenize(data: bytes) -> Iterator[str]:
    """Yield the tokens of a text file, quoted strings already unescaped.

    An unterminated quoted string ends the token stream, so the parser reports
    it as running out of input while reading whatever it expected there.
    """
    pos = 0
    end = len(data)
    while True:
        pos = _WHITESPACE.match(data, pos).end()
        if pos >= end:
            return
        if data[pos] == QUOTE:
            raw, pos = _read_quoted(data, pos + 1)
            if raw is None:
                return
        else:
            match = _BARE_TOKEN.match(data, pos)
            raw, pos = match.group(), match.end()
        yield _decode(raw)


class TokenStream:
    """Token iterator with one token of lookahead."""

    _EMPTY = object()

    def __init__(self, data: bytes):
        self._tokens = tokenize(data)
        self._peeked = self._EMPTY

    def peek(self) -> Optional[str]:
        if self._peeked is self._EMPTY:
            self._peeked = next(self._tokens, None)
        return self._peeked

    def next(self, construct: str) -> str:
        """Take the next token, failing with UnexpectedEof naming `construct`."""
        token = self.peek()
        self._peeked = self._EMPTY
        if token is None:
            raise UnexpectedEof(construct)
        return token


# ============================================================================
# Parser
# ============================================================================

def parse_integer(token: str, tag_type: TagType) -> int:
    low, high = INTEGER_RANGES[tag_type]
    if _INTEGER.fullmatch(token):
        value = int(token)
        if low <= value <= high:
            return value
    raise InvalidLiteral(token, TYPE_NAMES[tag_type])


def parse_float(token: str, tag_type: TagType) -> float:
    # float() would also take digit separators and non-ASCII digits
    if token.isascii() and "_" not in token:
        try:
            value = float(token)
        except ValueError:
            pass
        else:
            return to_float32(value) if tag_type == TagType.FLOAT else value
    raise InvalidLiteral(token, TYPE_NAMES[tag_type])


class TextParser:
    """Recursive descent parser over a TokenStream."""

    def __init__(self, tokens: TokenStream, max_length: Optional[int] = None):
        self.tokens = tokens
        self.max_length = max_length

    def parse_file(self) -> NbtFile:
        compression = self.parse_header()
        if self.tokens.peek() is None:
            raise UnexpectedEof(
                "any tags", "NBT file in text format does not contain any tags at all"
            )
        root = self.parse_compound(implicit=True)
        return NbtFile(root=root, compression=compression)

    def parse_header(self) -> Compression:
        """Compression names up to the first tag type name. Defaults to None."""
        compression = None
        while True:
            token = self.tokens.peek()
            if token is None or token in TYPE_NAMES.values():
                break
            self.tokens.next("the header")
            found = Compression.from_str(token)
            if compression is not None:
                raise DuplicateCompression(compression.to_str(), found.to_str())
            compression = found
        return compression or Compression.NONE

    def parse_compound(self, implicit: bool) -> Tag:
        entries = []
        while True:
            if implicit and self.tokens.peek() is None:
                break
            tag_type = TagType.from_name(self.tokens.next("the next item in a compound"))
            if tag_type == TagType.END:
                break

            type_name = TYPE_NAMES[tag_type]
            name = self.tokens.next(f"the name of a {type_name} tag in a compound").encode("utf-8")
            try:
                tag = self.parse_value(tag_type)
            except NbtError as exc:
                raise exc.add_context(f"while reading {type_name} tag {display_name(name)}")
            entries.append((name, tag))
        return Tag(TagType.COMPOUND, entries)

    def parse_value(self, tag_type: TagType) -> Tag:
        if tag_type in INTEGER_RANGES:
            token = self.tokens.next(VALUE_CONSTRUCTS[tag_type])
            return Tag(tag_type, parse_integer(token, tag_type))
        elif tag_type in (TagType.FLOAT, TagType.DOUBLE):
            token = self.tokens.next(VALUE_CONSTRUCTS[tag_type])
            return Tag(tag_type, parse_float(token, tag_type))
        elif tag_type == TagType.STRING:
            return Tag(TagType.STRING, self.tokens.next("a string").encode("utf-8"))
        elif tag_type in ARRAY_TYPES:
            return self.parse_array(tag_type)
        elif tag_type == TagType.LIST:
            return self.parse_list()
        elif tag_type == TagType.COMPOUND:
            return self.parse_compound(implicit=False)
        # End is never a value
        raise UnknownTagType(TYPE_NAMES[tag_type])

    def parse_length(self, construct: str) -> int:
        token = self.tokens.next(f"the length of {construct}")
        return check_length(parse_integer(token, TagType.INT), construct, self.max_length)

    def parse_array(self, tag_type: TagType) -> Tag:
        type_name = TYPE_NAMES[tag_type]
        element_type = ARRAY_ELEMENT_TYPES[tag_type]
        length = self.parse_length(f"a {type_name}")
        values = []
        for index in range(length):
            try:
                token = self.tokens.next(VALUE_CONSTRUCTS[element_type])
                values.append(parse_integer(token, element_type))
            except NbtError as exc:
                raise exc.add_context(f"while reading element {index} of a {type_name}")
        return Tag(tag_type, values)

    def parse_list(self) -> Tag:
        element_type = TagType.from_name(self.tokens.next("a list type"))
        element_name = TYPE_NAMES[element_type]
        length = self.parse_length(f"a List of {element_name}")
        items = []
        for index in range(length):
            try:
                items.append(self.parse_value(element_type))
            except NbtError as exc:
                raise exc.add_context(f"while reading element {index} of a List of {element_name}")
        return Tag(TagType.LIST, items)


def parse_text(source, max_length: Optional[int] = None) -> NbtFile:
    """Parse a file in the pretty text format.

    `source` may be bytes, str or a readable binary stream. The whole input is
    read before parsing starts.
    """
    if isinstance(source, str):
        data = source.encode("utf-8")
    elif isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        try:
            data = source.read()
        except OSError as exc:
            raise NbtIoError(f"Error reading text data: {exc}") from exc
    return TextParser(TokenStream(data), max_length).parse_file()


# ============================================================================
# Writer
# ============================================================================

def escape(value: bytes) -> bytes:
    """Escape backslashes, then double quotes. The other order would double
    the backslashes added for the quotes."""
    escaped = Replacer(value, b"\\", b"\\\\")
    escaped = Replacer(escaped, b'"', b'\\"')
    return bytes(escaped)


def format_float(value: float, tag_type: TagType) -> str:
    """Shortest decimal that parses back to exactly `value`."""
    if math.isnan(value) or math.isinf(value) or tag_type == TagType.DOUBLE:
        return repr(float(value))
    for precision in range(1, 18):
        text = f"{value:.{precision}g}"
        if to_float32(float(text)) == value:
            return repr(float(text))
    return repr(float(value))


class TextWriter:
    """Writes a tree in the pretty text format to a binary stream."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write(self, text: str):
        self.stream.write(text.encode("utf-8"))

    def write_indent(self, indent: int):
        if indent:
            self.write(INDENT * indent)

    def write_quoted(self, value: bytes, what: str):
        try:
            value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise Utf8Error(what, value, exc) from None
        self.stream.write(b'"' + escape(value) + b'"')

    def write_file(self, nbt_file: NbtFile):
        self.write(nbt_file.compression.to_str())
        self.write_tag(nbt_file.root, 0, True)

    def write_tag(self, tag: Tag, indent: int, in_compound: bool):
        """Write one value.

        In a compound the value follows its type and name on the same line;
        in a list it stands on a line of its own, already indented by the list.
        """
        tag_type = tag.type
        if tag_type == TagType.END:
            raise AssertionError("Unable to write End tag")
        elif tag_type in INTEGER_RANGES or tag_type in (TagType.FLOAT, TagType.DOUBLE):
            if in_compound:
                self.write(" ")
            if tag_type in INTEGER_RANGES:
                self.write(f"{tag.value}\n")
            else:
                self.write(f"{format_float(tag.value, tag_type)}\n")
        elif tag_type == TagType.STRING:
            if in_compound:
                self.write(" ")
            self.write_quoted(tag.value, "String")
            self.write("\n")
        elif tag_type in ARRAY_TYPES:
            self.write(f" {len(tag.value)}\n")
            for value in tag.value:
                self.write_indent(indent)
                self.write(f"{value}\n")
        elif tag_type == TagType.LIST:
            self.write_list(tag, indent)
        elif tag_type == TagType.COMPOUND:
            self.write_compound(tag, indent, in_compound)

    def write_list(self, tag: Tag, indent: int):
        element_type = list_element_type(tag)
        self.write(f" {TYPE_NAMES[element_type]} {len(tag.value)}\n")
        for item in tag.value:
            # Compounds start on the header line of the list
            if item.type != TagType.COMPOUND:
                self.write_indent(indent)
            self.write_tag(item, indent + 1, False)

    def write_compound(self, tag: Tag, indent: int, in_compound: bool):
        if in_compound:
            self.write("\n")
        for name, entry in tag.value:
            self.write_indent(indent)
            self.write(f"{entry.type_string()} ")
            self.write_quoted(name, "Tag name")
            try:
                self.write_tag(entry, indent + 1, True)
            except NbtError as exc:
                raise exc.add_context(f"while writing {entry.type_string()} tag {display_name(name)}")
        self.write_indent(indent)
        self.write("End\n")


def write_text(nbt_file: NbtFile, sink: BinaryIO):
    """Write `nbt_file` in the pretty text format to a binary stream."""
    try:
        TextWriter(sink).write_file(nbt_file)
    except OSError as exc:
        raise NbtIoError(f"Error writing text data: {exc}") from exc


def text_to_bytes(nbt_file: NbtFile) -> bytes:
    buffer = io.BytesIO()
    write_text(nbt_file, buffer)
    return buffer.getvalue()
