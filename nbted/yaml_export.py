"""
Plain YAML rendering of an NBT tree.

Compounds become mappings, Lists and arrays become sequences, numbers stay
numbers and Strings become text. Tag types are not written, so this is a
read-only view: the pretty text format is the one that converts back.

Compound order is kept and so are duplicate names, which a dict would lose;
compounds are carried as ordered pairs and written as mappings by the dumper.

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

from typing import Any

import yaml

from .errors import NbtError, Utf8Error
from .tags import ARRAY_TYPES, NbtFile, Tag, TagType, display_name


class CompoundPairs(list):
    """(name, value) pairs of a compound, dumped as a YAML mapping."""


class NbtDumper(yaml.SafeDumper):
    pass


def _represent_compound(dumper: yaml.SafeDumper, pairs: CompoundPairs) -> yaml.Node:
    return dumper.represent_mapping("tag:yaml.org,2002:map", list(pairs))


NbtDumper.add_representer(CompoundPairs, _represent_compound)


def _text(value: bytes, what: str) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise Utf8Error(what, value, exc) from None


def to_plain(tag: Tag) -> Any:
    """Convert a tag to plain Python data (Compounds become CompoundPairs)."""
    tag_type = tag.type
    if tag_type == TagType.END:
        raise AssertionError("Unable to write End tag")
    if tag_type == TagType.STRING:
        return _text(tag.value, "String")
    if tag_type in (TagType.FLOAT, TagType.DOUBLE):
        return float(tag.value)
    if tag_type in ARRAY_TYPES:
        return list(tag.value)
    if tag_type == TagType.LIST:
        items = []
        for index, item in enumerate(tag.value):
            try:
                items.append(to_plain(item))
            except NbtError as exc:
                raise exc.add_context(f"while writing element {index} of a List")
        return items
    if tag_type == TagType.COMPOUND:
        pairs = CompoundPairs()
        for name, entry in tag.value:
            try:
                pairs.append((_text(name, "Tag name"), to_plain(entry)))
            except NbtError as exc:
                raise exc.add_context(f"while writing {entry.type_string()} tag {display_name(name)}")
        return pairs
    return tag.value


def dump_yaml(nbt_file: NbtFile) -> str:
    """Render a whole file as YAML."""
    output = {
        "root": to_plain(nbt_file.root),
        "compression": nbt_file.compression.to_str(),
    }

    return yaml.dump(output, Dumper=NbtDumper, allow_unicode=True, sort_keys=False,
                     default_flow_style=False, width=120)
