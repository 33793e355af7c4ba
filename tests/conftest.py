"""Shared test fixtures — synthetic TIFF/EXIF/JPEG buffer generators."""

import struct
import pytest
from pathlib import Path

# Type ids used by the builders
BYTE, ASCII, SHORT, LONG, RATIONAL, UNDEFINED = 1, 2, 3, 4, 5, 7

GPS_POINTER_TAG = 0x8825

# 37°48'30" N, 122°16'12" W
SF_LATITUDE = ((37, 1), (48, 1), (30, 1))
SF_LONGITUDE = ((122, 1), (16, 1), (12, 1))

_INLINE_FORMATS = {BYTE: 'B', SHORT: 'H', LONG: 'I', 3: 'H', 8: 'h', 9: 'i'}


def _pack_entry(endian, tag_id, type_id, count, value, ool_offset):
    """Pack one 12-byte IFD entry.

    ``value`` may be an int (packed inline with the type's own width, left
    justified as TIFF requires) or bytes. Bytes of 4 or fewer are stored
    inline; longer bytes are referenced at ``ool_offset``.

    Returns (entry_bytes, out_of_line_bytes).
    """
    head = struct.pack(endian + 'HHI', tag_id, type_id, count)
    if isinstance(value, bytes):
        if len(value) <= 4:
            return head + value.ljust(4, b'\x00'), b''
        return head + struct.pack(endian + 'I', ool_offset), value
    fmt = _INLINE_FORMATS.get(type_id, 'I')
    return head + struct.pack(endian + fmt, value).ljust(4, b'\x00'), b''


def _pack_ifd(endian, entries, ifd_offset, next_ifd=0):
    """Pack an IFD at ``ifd_offset`` followed by its out-of-line data."""
    n = len(entries)
    data_start = ifd_offset + 2 + 12 * n + 4
    ifd_bytes = struct.pack(endian + 'H', n)
    data_bytes = b''
    for tag_id, type_id, count, value in entries:
        entry, ool = _pack_entry(endian, tag_id, type_id, count, value,
                                 data_start + len(data_bytes))
        ifd_bytes += entry
        data_bytes += ool
    ifd_bytes += struct.pack(endian + 'I', next_ifd)
    return ifd_bytes + data_bytes


def _ifd_size(entries):
    ool = sum(len(v) for _, _, _, v in entries if isinstance(v, bytes) and len(v) > 4)
    return 2 + 12 * len(entries) + 4 + ool


def build_tiff(entries, endian='<', extra_data=None):
    """Build a minimal TIFF block in memory with a single IFD.

    Args:
        entries: List of (tag_id, type_id, count, value_or_bytes) tuples.
        endian: '<' for little-endian, '>' for big-endian.
        extra_data: Optional bytes appended after the IFD.

    Returns:
        bytes: Complete TIFF content.
    """
    bo = b'II' if endian == '<' else b'MM'
    result = bo + struct.pack(endian + 'HI', 42, 8)
    result += _pack_ifd(endian, entries, 8)
    if extra_data:
        result += extra_data
    return result


def build_tiff_with_sub_ifd(main_entries, sub_ifd_entries, pointer_tag=GPS_POINTER_TAG,
                            endian='<'):
    """Build a TIFF block where IFD0 has a LONG pointer tag to a sub-IFD.

    Args:
        main_entries: (tag_id, type_id, count, value_or_bytes) for IFD0.
            Do NOT include the pointer tag; it is added automatically.
        sub_ifd_entries: Entries for the sub-IFD.
        pointer_tag: 0x8825 (GPS) or 0x8769 (EXIF).
        endian: '<' or '>'.

    Returns:
        bytes: Complete TIFF content.
    """
    bo = b'II' if endian == '<' else b'MM'
    all_main = list(main_entries) + [(pointer_tag, LONG, 1, 0)]
    sub_ifd_offset = 8 + _ifd_size(all_main)
    all_main[-1] = (pointer_tag, LONG, 1, sub_ifd_offset)

    result = bo + struct.pack(endian + 'HI', 42, 8)
    result += _pack_ifd(endian, all_main, 8)
    assert len(result) == sub_ifd_offset
    result += _pack_ifd(endian, sub_ifd_entries, sub_ifd_offset)
    return result


def rationals(values, endian='<'):
    """Pack (numerator, denominator) pairs as RATIONAL bytes."""
    return b''.join(struct.pack(endian + 'II', n, d) for n, d in values)


def gps_entries(latitude=SF_LATITUDE, latitude_ref=b'N\x00',
                longitude=SF_LONGITUDE, longitude_ref=b'W\x00',
                altitude=None, altitude_ref=None, endian='<'):
    """GPS sub-IFD entries. Pass None to leave a tag out."""
    entries = []
    if latitude_ref is not None:
        entries.append((1, ASCII, len(latitude_ref), latitude_ref))
    if latitude is not None:
        entries.append((2, RATIONAL, len(latitude), rationals(latitude, endian)))
    if longitude_ref is not None:
        entries.append((3, ASCII, len(longitude_ref), longitude_ref))
    if longitude is not None:
        entries.append((4, RATIONAL, len(longitude), rationals(longitude, endian)))
    if altitude_ref is not None:
        entries.append((5, BYTE, 1, altitude_ref))
    if altitude is not None:
        entries.append((6, RATIONAL, 1, rationals([altitude], endian)))
    return entries


def ifd0_entries():
    """Typical IFD0 content written by a phone camera."""
    make = b'Acme\x00'
    model = b'Phone 12\x00'
    return [
        (271, ASCII, len(make), make),                          # Make
        (272, ASCII, len(model), model),                        # Model
        (274, SHORT, 1, 1),                                     # Orientation
        (282, RATIONAL, 1, rationals([(72, 1)])),               # XResolution
    ]


def build_gps_tiff(endian='<', **gps_kwargs):
    """TIFF block with IFD0 + GPS sub-IFD."""
    main = ifd0_entries()
    if endian == '>':
        main = [(t, ty, c, rationals([(72, 1)], '>') if t == 282 else v)
                for t, ty, c, v in main]
    return build_tiff_with_sub_ifd(main, gps_entries(endian=endian, **gps_kwargs),
                                   GPS_POINTER_TAG, endian)


def jpeg_segment(marker, payload):
    """Build a JPEG marker segment with its length field."""
    return b'\xff' + bytes([marker]) + struct.pack('>H', len(payload) + 2) + payload


JFIF_APP0 = jpeg_segment(0xE0, b'JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00')
DQT = jpeg_segment(0xDB, b'\x00' + b'\x01' * 64)
SOS = jpeg_segment(0xDA, b'\x01\x01\x00\x00\x3f\x00')
SCAN_DATA = b'\x12\x34\xff\x00\x56\x78'
EOI = b'\xff\xd9'


def build_jpeg(tiff_block=None, before=(), after=()):
    """Build a JPEG with an optional APP1/Exif segment carrying ``tiff_block``.

    ``before`` and ``after`` are extra raw segments placed around APP1.
    """
    result = b'\xff\xd8' + JFIF_APP0
    for seg in before:
        result += seg
    if tiff_block is not None:
        result += jpeg_segment(0xE1, b'Exif\x00\x00' + tiff_block)
    for seg in after:
        result += seg
    return result + DQT + SOS + SCAN_DATA + EOI


def build_gps_jpeg(endian='<', **gps_kwargs):
    return build_jpeg(build_gps_tiff(endian=endian, **gps_kwargs))


# ---------------------------------------------------------------------------
# File fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_jpeg_gps(tmp_path):
    """JPEG with a GPS position (San Francisco Bay)."""
    filepath = tmp_path / 'with_gps.jpg'
    filepath.write_bytes(build_gps_jpeg())
    return filepath


@pytest.fixture
def tmp_jpeg_no_gps(tmp_path):
    """JPEG with EXIF IFD0 but no GPS pointer."""
    filepath = tmp_path / 'no_gps.jpg'
    filepath.write_bytes(build_jpeg(build_tiff(ifd0_entries())))
    return filepath


@pytest.fixture
def tmp_jpeg_plain(tmp_path):
    """JPEG without any APP1 segment."""
    filepath = tmp_path / 'plain.jpg'
    filepath.write_bytes(build_jpeg())
    return filepath


@pytest.fixture
def tmp_tiff_gps(tmp_path):
    """Big-endian bare TIFF with a GPS position."""
    filepath = tmp_path / 'scan.tif'
    filepath.write_bytes(build_gps_tiff(endian='>'))
    return filepath


@pytest.fixture
def tmp_jpeg_corrupt(tmp_path):
    """JPEG whose APP1 segment claims more bytes than the file has."""
    data = b'\xff\xd8' + b'\xff\xe1' + struct.pack('>H', 5000) + b'Exif\x00\x00II*\x00'
    filepath = tmp_path / 'corrupt.jpg'
    filepath.write_bytes(data)
    return filepath


@pytest.fixture
def image_dir(tmp_path):
    """Directory tree with a mix of GPS, non-GPS, corrupt and ignored files."""
    root = tmp_path / 'photos'
    (root / 'trip').mkdir(parents=True)
    (root / '.cache').mkdir()
    (root / 'a_gps.jpg').write_bytes(build_gps_jpeg())
    (root / 'b_plain.jpeg').write_bytes(build_jpeg())
    (root / 'trip' / 'c_gps.tif').write_bytes(build_gps_tiff(endian='>'))
    (root / 'trip' / 'd_broken.JPG').write_bytes(b'\xff\xd8\xff')
    (root / 'notes.txt').write_text('not an image')
    (root / '.cache' / 'thumb.jpg').write_bytes(build_gps_jpeg())
    return root
