"""GPS extraction entry points -- pure functions over an in-memory buffer.

Neither function logs, reads files, or keeps state between calls.
"""

from typing import Dict, Union

from geotrace.exif import (
    ExifFormatError,
    check_ifd_values,
    decode_gps,
    find_tiff_block,
    gps_tag_name,
    read_gps_sub_ifd,
    read_header,
    read_ifd,
)
from geotrace.models import ExtractionResult, Found, NotPresent, ParseError


def extract_gps(data: bytes) -> ExtractionResult:
    """Locate and decode the GPS coordinate embedded in an image buffer.

    Pipeline: container scan -> IFD0 -> GPS sub-IFD -> coordinate decode.
    Each stage either advances or short-circuits; malformed input of any
    kind comes back as a ParseError value rather than an exception.

    Args:
        data: Complete file contents (or a prefix holding the header
              segments) of a JPEG or TIFF-based image.

    Returns:
        Found with the coordinate, NotPresent for well-formed input without
        GPS coordinates, or ParseError describing where parsing failed.
    """
    try:
        return _extract(data)
    except ExifFormatError as e:
        return ParseError(offset=e.offset, reason=e.reason)


def _extract(data: bytes) -> Union[Found, NotPresent]:
    _, block = find_tiff_block(data)
    if block is None:
        return NotPresent('no APP1/Exif segment')

    header = read_header(block)
    entries, _ = read_ifd(block, header, header.first_ifd_offset)
    # Every IFD0 entry must have a known type and an in-bounds value
    check_ifd_values(block, entries)

    gps_ifd = read_gps_sub_ifd(block, header, entries)
    if gps_ifd is None:
        return NotPresent('no GPS IFD')

    _, gps_entries = gps_ifd
    coordinate = decode_gps(block, header, gps_entries)
    if coordinate is None:
        return NotPresent('GPS IFD has no latitude or longitude')
    return Found(coordinate)


def inspect_exif(data: bytes) -> Dict:
    """Describe the EXIF structure of a buffer for display.

    Returns a dict with ``container``, ``byte_order``, ``ifd0_tags`` and
    ``gps_tags`` (tag names in directory order) plus ``result``, the
    extract_gps() outcome. Keys that could not be determined are None.
    """
    info = {
        'container': None,
        'byte_order': None,
        'ifd0_tags': None,
        'gps_tags': None,
        'result': extract_gps(data),
    }
    try:
        container, block = find_tiff_block(data)
        info['container'] = container
        if block is None:
            return info
        header = read_header(block)
        info['byte_order'] = header.byte_order
        entries, _ = read_ifd(block, header, header.first_ifd_offset)
        info['ifd0_tags'] = [e.tag_name for e in entries]
        gps_ifd = read_gps_sub_ifd(block, header, entries)
        if gps_ifd is not None:
            info['gps_tags'] = [gps_tag_name(e.tag_id) for e in gps_ifd[1]]
    except ExifFormatError:
        # The failure itself is already reported through info['result']
        pass
    return info
