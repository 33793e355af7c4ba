"""Adversarial inputs: truncation, bit flips and hostile structures.

extract_gps() must return a result value for every input and never raise.
"""

import random
import struct

import pytest

from geotrace.extractor import extract_gps, inspect_exif
from geotrace.models import Found, NotPresent, ParseError
from tests.conftest import (
    GPS_POINTER_TAG, LONG, build_gps_jpeg, build_gps_tiff, build_jpeg, build_tiff,
    jpeg_segment,
)

RESULT_TYPES = (Found, NotPresent, ParseError)


class TestTruncation:
    def test_every_jpeg_prefix(self):
        data = build_gps_jpeg(altitude=(15, 1), altitude_ref=0)
        for n in range(len(data) + 1):
            assert isinstance(extract_gps(data[:n]), RESULT_TYPES), n

    def test_every_tiff_prefix(self):
        data = build_gps_tiff(endian='>')
        for n in range(len(data) + 1):
            assert isinstance(extract_gps(data[:n]), RESULT_TYPES), n

    def test_prefix_inside_app1_is_error(self):
        data = build_gps_jpeg()
        app1_start = data.index(b'\xff\xe1')
        for n in range(app1_start + 1, app1_start + 40):
            assert isinstance(extract_gps(data[:n]), ParseError), n

    def test_prefix_before_app1_is_not_present(self):
        data = build_gps_jpeg()
        app1_start = data.index(b'\xff\xe1')
        assert isinstance(extract_gps(data[:app1_start]), NotPresent)

    def test_prefix_after_header_segments_is_found(self):
        data = build_gps_jpeg()
        sos_start = data.index(b'\xff\xda')
        assert isinstance(extract_gps(data[:sos_start]), Found)


class TestMutation:
    @pytest.mark.parametrize('seed', range(5))
    def test_random_byte_flips(self, seed):
        rng = random.Random(seed)
        original = build_gps_jpeg()
        for _ in range(200):
            data = bytearray(original)
            for _ in range(rng.randint(1, 4)):
                data[rng.randrange(len(data))] = rng.randrange(256)
            assert isinstance(extract_gps(bytes(data)), RESULT_TYPES)

    @pytest.mark.parametrize('seed', range(3))
    def test_random_tiff_flips(self, seed):
        rng = random.Random(1000 + seed)
        original = build_gps_tiff()
        for _ in range(200):
            data = bytearray(original)
            data[rng.randrange(8, len(data))] = rng.randrange(256)
            assert isinstance(extract_gps(bytes(data)), RESULT_TYPES)

    def test_random_noise(self):
        rng = random.Random(42)
        for _ in range(200):
            size = rng.randrange(0, 64)
            noise = bytes(rng.randrange(256) for _ in range(size))
            assert isinstance(extract_gps(b'\xff\xd8' + noise), RESULT_TYPES)
            assert isinstance(extract_gps(b'II*\x00' + noise), RESULT_TYPES)
            assert isinstance(extract_gps(b'MM\x00*' + noise), RESULT_TYPES)

    def test_inspect_never_raises(self):
        rng = random.Random(7)
        original = build_gps_jpeg()
        for _ in range(100):
            data = bytearray(original)
            data[rng.randrange(len(data))] = rng.randrange(256)
            info = inspect_exif(bytes(data))
            assert isinstance(info['result'], RESULT_TYPES)


class TestHostileStructures:
    def test_huge_value_count(self):
        tiff = build_tiff([(270, 2, 0xFFFFFFFF, b'x' * 8)])
        assert isinstance(extract_gps(build_jpeg(tiff)), ParseError)

    def test_gps_pointer_to_itself(self):
        tiff = build_tiff([(GPS_POINTER_TAG, LONG, 1, 8)])
        # The "GPS IFD" is IFD0 again: no coordinate tags, no recursion
        assert isinstance(extract_gps(tiff), NotPresent)

    def test_ifd_offset_past_end(self):
        tiff = b'II' + struct.pack('<HI', 42, 0xFFFFFFFF)
        result = extract_gps(tiff)
        assert isinstance(result, ParseError)
        assert result.offset == 0xFFFFFFFF

    def test_many_markers_before_app1(self):
        padding = [jpeg_segment(0xE2 + (i % 12), b'\x00' * 10) for i in range(500)]
        data = build_jpeg(build_gps_tiff(), before=padding)
        assert isinstance(extract_gps(data), Found)

    def test_zero_length_exif_block(self):
        data = build_jpeg(b'')
        assert isinstance(extract_gps(data), ParseError)
