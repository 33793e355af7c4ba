"""TIFF header and IFD parsing over an in-memory EXIF block.

All offsets are relative to the start of the TIFF block (the byte-order
marker). Every read is bounds-checked against the block size; violations
raise ExifFormatError instead of struct.error or IndexError.
"""

import struct
from typing import Dict, Iterable, List, Optional, Tuple

# TIFF type definitions: {type_id: (element_size_bytes, struct_format_char)}
TIFF_TYPES: Dict[int, Tuple[int, str]] = {
    1: (1, 'B'),    # BYTE
    2: (1, 's'),    # ASCII
    3: (2, 'H'),    # SHORT
    4: (4, 'I'),    # LONG
    5: (8, 'II'),   # RATIONAL (num/denom)
    6: (1, 'b'),    # SBYTE
    7: (1, 's'),    # UNDEFINED
    8: (2, 'h'),    # SSHORT
    9: (4, 'i'),    # SLONG
    10: (8, 'ii'),  # SRATIONAL
    11: (4, 'f'),   # FLOAT
    12: (8, 'd'),   # DOUBLE
    13: (4, 'I'),   # IFD (sub-directory offset)
}

ASCII = 2
UNDEFINED = 7
RATIONAL = 5
SRATIONAL = 10

# IFD0 tags commonly written by cameras and phones
TAG_NAMES: Dict[int, str] = {
    256: 'ImageWidth', 257: 'ImageLength', 258: 'BitsPerSample',
    259: 'Compression', 262: 'PhotometricInterpretation',
    270: 'ImageDescription', 271: 'Make', 272: 'Model',
    273: 'StripOffsets', 274: 'Orientation', 277: 'SamplesPerPixel',
    278: 'RowsPerStrip', 279: 'StripByteCounts',
    282: 'XResolution', 283: 'YResolution', 296: 'ResolutionUnit',
    305: 'Software', 306: 'DateTime', 315: 'Artist',
    513: 'JPEGInterchangeFormat', 514: 'JPEGInterchangeFormatLength',
    531: 'YCbCrPositioning', 33432: 'Copyright',
    34665: 'ExifIFDPointer', 34853: 'GPSInfoIFDPointer',
}

GPS_IFD_POINTER_TAG = 0x8825

TIFF_MAGIC = 42
TIFF_HEADER_SIZE = 8
IFD_ENTRY_SIZE = 12
INLINE_VALUE_SIZE = 4

# Real EXIF directories hold a few dozen tags; a count far beyond this means
# the IFD pointer landed in image data.
MAX_IFD_ENTRIES = 1000


class ExifFormatError(ValueError):
    """Malformed or truncated EXIF/TIFF structure."""

    def __init__(self, offset: int, reason: str):
        super().__init__(f'{reason} (offset {offset})')
        self.offset = offset
        self.reason = reason


class IFDEntry:
    """A single IFD (Image File Directory) entry."""
    __slots__ = ('tag_id', 'dtype', 'count', 'value_offset', 'entry_offset',
                 'is_inline')

    def __init__(self, tag_id: int, dtype: int, count: int,
                 value_offset: int, entry_offset: int, is_inline: bool):
        self.tag_id = tag_id
        self.dtype = dtype
        self.count = count
        self.value_offset = value_offset
        self.entry_offset = entry_offset
        self.is_inline = is_inline

    @property
    def tag_name(self) -> str:
        return TAG_NAMES.get(self.tag_id, f'Tag_{self.tag_id}')

    @property
    def total_size(self) -> int:
        elem_size = TIFF_TYPES.get(self.dtype, (1, 'B'))[0]
        return elem_size * self.count

    def __repr__(self) -> str:
        return (f'IFDEntry(tag={self.tag_id:#06x}, type={self.dtype}, '
                f'count={self.count}, value_offset={self.value_offset})')


class TIFFHeader:
    """Parsed TIFF header."""
    __slots__ = ('endian', 'first_ifd_offset')

    def __init__(self, endian: str, first_ifd_offset: int):
        self.endian = endian
        self.first_ifd_offset = first_ifd_offset

    @property
    def byte_order(self) -> str:
        return 'II' if self.endian == '<' else 'MM'


def check_bounds(data: bytes, offset: int, length: int, what: str):
    """Raise ExifFormatError unless data[offset:offset + length] is in range."""
    if offset < 0 or length < 0 or offset + length > len(data):
        raise ExifFormatError(
            offset, f'{what} needs {length} byte(s) but block ends at {len(data)}')


def unpack_from(fmt: str, data: bytes, offset: int, what: str) -> tuple:
    """Bounds-checked struct.unpack_from."""
    check_bounds(data, offset, struct.calcsize(fmt), what)
    return struct.unpack_from(fmt, data, offset)


def read_header(data: bytes) -> TIFFHeader:
    """Read and validate a standard TIFF header at the start of ``data``."""
    check_bounds(data, 0, TIFF_HEADER_SIZE, 'TIFF header')
    bo = bytes(data[:2])
    if bo == b'II':
        endian = '<'
    elif bo == b'MM':
        endian = '>'
    else:
        raise ExifFormatError(0, f"expected byte order b'II' or b'MM', found {bo!r}")

    magic, ifd_offset = struct.unpack_from(endian + 'HI', data, 2)
    if magic != TIFF_MAGIC:
        raise ExifFormatError(2, f'expected TIFF magic {TIFF_MAGIC}, found {magic}')
    return TIFFHeader(endian, ifd_offset)


def read_ifd(data: bytes, header: TIFFHeader,
             ifd_offset: int) -> Tuple[List[IFDEntry], int]:
    """Read all entries from an IFD. Returns (entries, next_ifd_offset).

    The entry count and the entry table must lie inside the block. The
    trailing next-IFD pointer is optional; a missing one reads as 0.
    """
    endian = header.endian
    num_entries = unpack_from(endian + 'H', data, ifd_offset, 'IFD entry count')[0]
    if num_entries > MAX_IFD_ENTRIES:
        raise ExifFormatError(
            ifd_offset, f'IFD claims {num_entries} entries (max {MAX_IFD_ENTRIES})')

    table_offset = ifd_offset + 2
    check_bounds(data, table_offset, IFD_ENTRY_SIZE * num_entries,
                 f'IFD with {num_entries} entries')

    entries = []
    for i in range(num_entries):
        entry_offset = table_offset + i * IFD_ENTRY_SIZE
        tag_id, dtype, count, raw_value = struct.unpack_from(
            endian + 'HHII', data, entry_offset)
        elem_size = TIFF_TYPES.get(dtype, (1, 'B'))[0]
        if elem_size * count <= INLINE_VALUE_SIZE:
            value_offset = entry_offset + 8
            is_inline = True
        else:
            value_offset = raw_value
            is_inline = False
        entries.append(IFDEntry(tag_id, dtype, count, value_offset,
                                entry_offset, is_inline))

    next_ptr = table_offset + IFD_ENTRY_SIZE * num_entries
    if next_ptr + 4 <= len(data):
        next_offset = struct.unpack_from(endian + 'I', data, next_ptr)[0]
    else:
        next_offset = 0
    return entries, next_offset


def read_tag_value_bytes(data: bytes, entry: IFDEntry) -> bytes:
    """Read the raw bytes of a tag value."""
    check_bounds(data, entry.value_offset, entry.total_size,
                 f'value of tag {entry.tag_id:#06x}')
    return bytes(data[entry.value_offset:entry.value_offset + entry.total_size])


def read_tag_string(data: bytes, entry: IFDEntry) -> str:
    """Read a tag value as an ASCII string, up to the first NUL."""
    raw = read_tag_value_bytes(data, entry)
    return raw.split(b'\x00', 1)[0].decode('ascii', errors='replace')


def read_tag_value(data: bytes, header: TIFFHeader, entry: IFDEntry) -> object:
    """Decode a tag value.

    ASCII becomes ``str``, UNDEFINED stays ``bytes``, rationals become
    ``(numerator, denominator)`` tuples, everything else plain numbers.
    A count of 1 yields a scalar, larger counts a list.
    """
    _check_type(entry)
    _, fmt_char = TIFF_TYPES[entry.dtype]
    if entry.dtype == ASCII:
        return read_tag_string(data, entry)
    raw = read_tag_value_bytes(data, entry)
    if fmt_char == 's':
        return raw

    if entry.dtype in (RATIONAL, SRATIONAL):
        values = list(struct.iter_unpack(header.endian + fmt_char, raw))
    else:
        values = [v for (v,) in struct.iter_unpack(header.endian + fmt_char, raw)]
    if entry.count == 1:
        return values[0]
    return values


def _check_type(entry: IFDEntry):
    if entry.dtype not in TIFF_TYPES:
        raise ExifFormatError(
            entry.entry_offset,
            f'unknown data type {entry.dtype} for tag {entry.tag_id:#06x}')


def check_ifd_values(data: bytes, entries: Iterable[IFDEntry]):
    """Validate every entry's type and value range without decoding it."""
    for entry in entries:
        _check_type(entry)
        check_bounds(data, entry.value_offset, entry.total_size,
                     f'value of tag {entry.tag_id:#06x}')


def find_entry(entries: Iterable[IFDEntry], tag_id: int) -> Optional[IFDEntry]:
    """Return the first entry with ``tag_id``, or None."""
    for entry in entries:
        if entry.tag_id == tag_id:
            return entry
    return None
