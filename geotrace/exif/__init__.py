"""Minimal EXIF reader: JPEG/TIFF container scanning, IFD parsing, GPS decoding.

Re-exports the public names so callers can use ``from geotrace.exif import X``.
"""

# --- parser.py: types, constants, header/IFD reading, tag value reading ---
from geotrace.exif.parser import (  # noqa: F401
    TIFF_TYPES,
    TAG_NAMES,
    GPS_IFD_POINTER_TAG,
    ExifFormatError,
    IFDEntry,
    TIFFHeader,
    check_bounds,
    check_ifd_values,
    find_entry,
    read_header,
    read_ifd,
    read_tag_string,
    read_tag_value,
    read_tag_value_bytes,
)

# --- container.py: JPEG segment scanning, TIFF block location ---
from geotrace.exif.container import (  # noqa: F401
    EXIF_HEADER,
    JPEG_SOI,
    detect_container,
    find_exif_segment,
    find_tiff_block,
    iter_jpeg_segments,
)

# --- gps.py: GPS sub-IFD traversal and coordinate decoding ---
from geotrace.exif.gps import (  # noqa: F401
    GPS_TAG_NAMES,
    GPS_COORDINATE_TAGS,
    GPS_LATITUDE,
    GPS_LATITUDE_REF,
    GPS_LONGITUDE,
    GPS_LONGITUDE_REF,
    GPS_ALTITUDE,
    GPS_ALTITUDE_REF,
    decode_gps,
    dms_to_decimal,
    gps_tag_name,
    rational_to_float,
    read_gps_sub_ifd,
)
