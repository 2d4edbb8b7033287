"""Tests for the tag model."""

import math
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nbted.compression import Compression
from nbted.errors import UnknownCompression, UnknownCompressionName, UnknownTagType
from nbted.tags import Float32NaN, NbtFile, Tag, TagType, list_element_type, to_float32


class TestClassification(unittest.TestCase):

    def test_type_bytes_and_names(self):
        expected = [
            (Tag.end(), 0, "End"),
            (Tag.byte(1), 1, "Byte"),
            (Tag.short(1), 2, "Short"),
            (Tag.int_(1), 3, "Int"),
            (Tag.long(1), 4, "Long"),
            (Tag.float_(1.0), 5, "Float"),
            (Tag.double(1.0), 6, "Double"),
            (Tag.byte_array([]), 7, "ByteArray"),
            (Tag.string(""), 8, "String"),
            (Tag.list_([]), 9, "List"),
            (Tag.compound(), 10, "Compound"),
            (Tag.int_array([]), 11, "IntArray"),
            (Tag.long_array([]), 12, "LongArray"),
        ]
        for tag, type_byte, type_string in expected:
            with self.subTest(type_string=type_string):
                self.assertEqual(tag.type_byte(), type_byte)
                self.assertEqual(tag.type_string(), type_string)
                self.assertIs(TagType.from_name(type_string), tag.type)
                self.assertIs(TagType.from_byte(type_byte), tag.type)

    def test_names_are_case_sensitive(self):
        with self.assertRaises(UnknownTagType) as ctx:
            TagType.from_name("compound")
        self.assertEqual(str(ctx.exception), "Unknown tag type compound")

    def test_unknown_type_byte(self):
        with self.assertRaises(UnknownTagType) as ctx:
            TagType.from_byte(13)
        self.assertIn("0x0d", str(ctx.exception))


class TestTag(unittest.TestCase):

    def test_string_and_names_are_bytes(self):
        tag = Tag.compound([("café", Tag.string("☃"))])
        name, value = tag.value[0]
        self.assertEqual(name, "café".encode("utf-8"))
        self.assertEqual(value.value, b"\xe2\x98\x83")

    def test_get_returns_first_match(self):
        tag = Tag.compound([("a", Tag.byte(1)), ("a", Tag.byte(2)), ("b", Tag.byte(3))])
        self.assertEqual(tag.get("a"), Tag.byte(1))
        self.assertEqual(tag.get(b"b"), Tag.byte(3))
        self.assertIsNone(tag.get("missing"))
        self.assertIsNone(Tag.int_(1).get("a"))

    def test_float_is_single_precision(self):
        self.assertNotEqual(Tag.float_(0.1).value, 0.1)
        self.assertEqual(Tag.float_(0.1).value, to_float32(0.1))
        self.assertEqual(Tag.float_(0.5).value, 0.5)

    def test_float_overflow_is_infinite(self):
        self.assertEqual(to_float32(1e39), math.inf)
        self.assertEqual(to_float32(-1e39), -math.inf)

    def test_float_nan_keeps_bits(self):
        nan = Float32NaN(0x7F800001)
        self.assertTrue(math.isnan(nan))
        self.assertIs(to_float32(nan), nan)
        self.assertEqual(Tag.float_(nan).value.bits, 0x7F800001)

    def test_list_element_type(self):
        self.assertIs(list_element_type(Tag.list_([])), TagType.END)
        self.assertIs(list_element_type(Tag.list_([Tag.short(1), Tag.short(2)])), TagType.SHORT)

    def test_mixed_list_is_rejected(self):
        with self.assertRaises(ValueError):
            list_element_type(Tag.list_([Tag.short(1), Tag.int_(2)]))

    def test_file_defaults(self):
        nbt_file = NbtFile()
        self.assertEqual(nbt_file.root, Tag.compound())
        self.assertIs(nbt_file.compression, Compression.NONE)


class TestCompressionNames(unittest.TestCase):

    def test_first_byte(self):
        self.assertIs(Compression.from_first_byte(0x0A), Compression.NONE)
        self.assertIs(Compression.from_first_byte(0x1F), Compression.GZIP)
        self.assertIs(Compression.from_first_byte(0x78), Compression.ZLIB)

    def test_unknown_first_byte(self):
        with self.assertRaises(UnknownCompression) as ctx:
            Compression.from_first_byte(0x01)
        self.assertEqual(ctx.exception.first_byte, 0x01)
        self.assertEqual(ctx.exception.code, "ERR_UNKNOWN_COMPRESSION")

    def test_names(self):
        for compression in Compression:
            self.assertIs(Compression.from_str(compression.to_str()), compression)
        self.assertEqual(Compression.GZIP.to_str(), "Gzip")

    def test_names_are_case_sensitive(self):
        with self.assertRaises(UnknownCompressionName):
            Compression.from_str("gzip")


if __name__ == "__main__":
    unittest.main()
