import numpy

from common.codec import (decode_bitmap, decode_holes, encode_bitmap,
                          encode_holes, format_memory_map, parse_memory_map)
from common.misc import pad_bits, words_for


def test_encode_holes_is_little_endian_u16():
    assert encode_holes([(0, 10), (12, 2), (20, 6)]) == \
        bytes([3, 0, 0, 0, 10, 0, 12, 0, 2, 0, 20, 0, 6, 0])
    assert encode_holes([(0x1234, 0xfffe)]) == bytes([1, 0, 0x34, 0x12, 0xfe, 0xff])
    assert encode_holes([]) == b'\x00\x00'


def test_decode_holes():
    assert decode_holes(bytes([2, 0, 1, 1, 3, 0, 9, 0, 0xff, 0xff])) == \
        [(257, 3), (9, 65535)]
    assert decode_holes(b'\x00\x00') == []


def test_encode_bitmap_packs_lsb_first():
    flags = numpy.zeros(16, dtype=numpy.uint8)
    flags[[0, 1, 2, 9]] = 1
    assert encode_bitmap(flags) == bytes([2, 0, 0x07, 0x02])


def test_decode_bitmap():
    flags = decode_bitmap(bytes([1, 0, 0x81]))
    assert list(flags) == [1, 0, 0, 0, 0, 0, 0, 1]


def test_memory_map_text():
    assert format_memory_map([(0, 10), (12, 2), (20, 6)]) == \
        "[0, 10] - [12, 2] - [20, 6]"
    assert format_memory_map([]) == "[0, 0]"
    assert parse_memory_map("[0, 10] - [12, 2] - [20, 6]") == \
        [(0, 10), (12, 2), (20, 6)]
    assert parse_memory_map("[0, 0]") == []


def test_size_helpers():
    assert words_for(1, 8) == 1
    assert words_for(8, 8) == 1
    assert words_for(9, 8) == 2
    assert pad_bits(0) == 0
    assert pad_bits(1) == 8
    assert pad_bits(16) == 16
    assert pad_bits(65535) == 65536
