"""Container detection and EXIF block location for JPEG and TIFF files."""

import struct
from typing import Iterator, Optional, Tuple

from geotrace.exif.parser import ExifFormatError

JPEG_SOI = b'\xff\xd8'
EXIF_HEADER = b'Exif\x00\x00'

MARKER_APP1 = 0xE1
MARKER_SOS = 0xDA
MARKER_EOI = 0xD9

# TEM and RST0-RST7 carry no length field
_STANDALONE_MARKERS = frozenset([0x01] + list(range(0xD0, 0xD8)))

MIN_BUFFER_SIZE = 4


def detect_container(data: bytes) -> str:
    """Return "jpeg" or "tiff" for the buffer, or raise ExifFormatError."""
    if len(data) < MIN_BUFFER_SIZE:
        raise ExifFormatError(
            0, f'buffer is {len(data)} byte(s), need at least {MIN_BUFFER_SIZE}')
    head = bytes(data[:2])
    if head == JPEG_SOI:
        return 'jpeg'
    if head in (b'II', b'MM'):
        return 'tiff'
    raise ExifFormatError(
        0, f'expected JPEG start-of-image {JPEG_SOI!r} or TIFF byte order, '
           f'found {head!r}')


def iter_jpeg_segments(data: bytes) -> Iterator[Tuple[int, int, bytes]]:
    """Yield (marker, marker_offset, payload) for each JPEG header segment.

    Scanning starts after SOI and stops at start-of-scan, end-of-image, or
    when the buffer ends on a segment boundary. The payload excludes the
    2-byte length field.
    """
    if bytes(data[:2]) != JPEG_SOI:
        raise ExifFormatError(
            0, f'expected JPEG start-of-image {JPEG_SOI!r}, found {bytes(data[:2])!r}')

    size = len(data)
    offset = 2
    while offset < size:
        marker_offset = offset
        if data[offset] != 0xFF:
            raise ExifFormatError(
                offset, f'expected marker prefix 0xFF, found {data[offset]:#04x}')
        # Any number of 0xFF fill bytes may precede the marker code
        while offset < size and data[offset] == 0xFF:
            offset += 1
        if offset >= size:
            raise ExifFormatError(marker_offset, 'truncated marker at end of buffer')
        marker = data[offset]
        offset += 1

        if marker in (MARKER_SOS, MARKER_EOI):
            return
        if marker in _STANDALONE_MARKERS:
            continue

        if offset + 2 > size:
            raise ExifFormatError(
                offset, f'truncated length field for marker 0xFF{marker:02X}')
        length = struct.unpack_from('>H', data, offset)[0]
        if length < 2:
            raise ExifFormatError(
                offset, f'segment length {length} for marker 0xFF{marker:02X} '
                        f'is below the minimum of 2')
        end = offset + length
        if end > size:
            raise ExifFormatError(
                offset, f'segment 0xFF{marker:02X} of length {length} runs past '
                        f'end of buffer ({size} bytes)')
        yield marker, marker_offset, bytes(data[offset + 2:end])
        offset = end


def find_exif_segment(data: bytes) -> Optional[bytes]:
    """Return the TIFF block embedded in the first APP1/Exif segment, if any."""
    for marker, _, payload in iter_jpeg_segments(data):
        if marker == MARKER_APP1 and payload[:len(EXIF_HEADER)] == EXIF_HEADER:
            return payload[len(EXIF_HEADER):]
    return None


def find_tiff_block(data: bytes) -> Tuple[str, Optional[bytes]]:
    """Locate the TIFF-structured metadata block.

    Returns (container, block). ``block`` is None when a JPEG carries no
    Exif segment. A bare TIFF file is its own block.
    """
    container = detect_container(data)
    if container == 'tiff':
        return container, bytes(data)
    return container, find_exif_segment(data)
