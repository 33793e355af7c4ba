"""GPS sub-IFD traversal and coordinate decoding."""

from typing import Dict, List, Optional, Tuple

from geotrace.exif.parser import (
    GPS_IFD_POINTER_TAG,
    RATIONAL,
    ExifFormatError,
    IFDEntry,
    TIFFHeader,
    find_entry,
    read_ifd,
    read_tag_value,
    read_tag_value_bytes,
)
from geotrace.models import DMS, GPSCoordinate, Rational

# GPS tag names (tags 0-31)
GPS_TAG_NAMES: Dict[int, str] = {
    0: 'GPSVersionID', 1: 'GPSLatitudeRef', 2: 'GPSLatitude',
    3: 'GPSLongitudeRef', 4: 'GPSLongitude', 5: 'GPSAltitudeRef',
    6: 'GPSAltitude', 7: 'GPSTimeStamp', 8: 'GPSSatellites',
    9: 'GPSStatus', 10: 'GPSMeasureMode', 11: 'GPSDOP',
    12: 'GPSSpeedRef', 13: 'GPSSpeed', 14: 'GPSTrackRef',
    15: 'GPSTrack', 16: 'GPSImgDirectionRef', 17: 'GPSImgDirection',
    18: 'GPSMapDatum', 19: 'GPSDestLatitudeRef', 20: 'GPSDestLatitude',
    21: 'GPSDestLongitudeRef', 22: 'GPSDestLongitude', 23: 'GPSDestBearingRef',
    24: 'GPSDestBearing', 25: 'GPSDestDistanceRef', 26: 'GPSDestDistance',
    27: 'GPSProcessingMethod', 28: 'GPSAreaInformation', 29: 'GPSDateStamp',
    30: 'GPSDifferential', 31: 'GPSHPositioningError',
}

GPS_LATITUDE_REF = 0x0001
GPS_LATITUDE = 0x0002
GPS_LONGITUDE_REF = 0x0003
GPS_LONGITUDE = 0x0004
GPS_ALTITUDE_REF = 0x0005
GPS_ALTITUDE = 0x0006

# The only GPS tags whose values are ever resolved
GPS_COORDINATE_TAGS = frozenset([
    GPS_LATITUDE_REF, GPS_LATITUDE, GPS_LONGITUDE_REF, GPS_LONGITUDE,
    GPS_ALTITUDE_REF, GPS_ALTITUDE,
])

# ref tag -> (positive hemisphere, negative hemisphere)
HEMISPHERES: Dict[int, Tuple[str, str]] = {
    GPS_LATITUDE_REF: ('N', 'S'),
    GPS_LONGITUDE_REF: ('E', 'W'),
}

# Pointer tags are LONG in the standard; some writers use SHORT or IFD
_POINTER_TYPES = (3, 4, 13)


def gps_tag_name(tag_id: int) -> str:
    return GPS_TAG_NAMES.get(tag_id, f'GPSTag_{tag_id}')


def read_gps_sub_ifd(data: bytes, header: TIFFHeader,
                     entries: List[IFDEntry]) -> Optional[Tuple[int, List[IFDEntry]]]:
    """Find tag 0x8825 (GPSInfoIFDPointer) and read the sub-IFD it points to.

    Returns (sub_ifd_offset, sub_entries), or None if the tag is absent, the
    pointer is zero, or the sub-IFD is empty. A malformed pointer or an
    out-of-bounds sub-IFD raises ExifFormatError.
    """
    entry = find_entry(entries, GPS_IFD_POINTER_TAG)
    if entry is None:
        return None
    if entry.dtype not in _POINTER_TYPES or entry.count != 1:
        raise ExifFormatError(
            entry.entry_offset,
            f'GPS IFD pointer has type {entry.dtype} and count {entry.count}, '
            f'expected a single LONG')
    sub_offset = read_tag_value(data, header, entry)
    if sub_offset == 0:
        return None
    sub_entries, _ = read_ifd(data, header, sub_offset)
    if not sub_entries:
        return None
    return sub_offset, sub_entries


def rational_to_float(rational: Rational, offset: int) -> float:
    """Divide an EXIF rational, rejecting a zero denominator."""
    numerator, denominator = rational
    if denominator == 0:
        raise ExifFormatError(offset, f'rational {numerator}/0 has a zero denominator')
    return numerator / denominator


def read_dms(data: bytes, header: TIFFHeader, entry: IFDEntry) -> DMS:
    """Read a latitude/longitude value: three unsigned rationals."""
    if entry.dtype != RATIONAL or entry.count != 3:
        raise ExifFormatError(
            entry.entry_offset,
            f'{gps_tag_name(entry.tag_id)} has type {entry.dtype} and count '
            f'{entry.count}, expected 3 RATIONAL values')
    degrees, minutes, seconds = read_tag_value(data, header, entry)
    return degrees, minutes, seconds


def read_hemisphere(data: bytes, entry: Optional[IFDEntry], ref_tag: int) -> Optional[str]:
    """Read a hemisphere reference letter and validate it for its axis.

    Returns None when the reference tag is absent.
    """
    if entry is None:
        return None
    valid = HEMISPHERES[ref_tag]
    raw = read_tag_value_bytes(data, entry).rstrip(b'\x00 ')
    ref = raw.decode('ascii', errors='replace')
    if ref not in valid:
        raise ExifFormatError(
            entry.value_offset,
            f'{gps_tag_name(ref_tag)} is {raw!r}, expected one of {"/".join(valid)}')
    return ref


def dms_to_decimal(dms: DMS, ref: Optional[str], offset: int = 0) -> float:
    """Convert degrees/minutes/seconds to signed decimal degrees.

    Without a ref the value stays unsigned.
    """
    degrees = rational_to_float(dms[0], offset)
    minutes = rational_to_float(dms[1], offset + 8)
    seconds = rational_to_float(dms[2], offset + 16)
    value = degrees + minutes / 60 + seconds / 3600
    if ref in ('S', 'W'):
        return -value
    return value


def read_altitude(data: bytes, header: TIFFHeader,
                  by_tag: Dict[int, IFDEntry]) -> Optional[float]:
    """Read GPSAltitude in metres, negated when GPSAltitudeRef is 1."""
    entry = by_tag.get(GPS_ALTITUDE)
    if entry is None:
        return None
    if entry.dtype != RATIONAL or entry.count != 1:
        raise ExifFormatError(
            entry.entry_offset,
            f'GPSAltitude has type {entry.dtype} and count {entry.count}, '
            f'expected 1 RATIONAL')
    altitude = rational_to_float(read_tag_value(data, header, entry), entry.value_offset)

    ref_entry = by_tag.get(GPS_ALTITUDE_REF)
    if ref_entry is None:
        return altitude
    raw = read_tag_value_bytes(data, ref_entry)
    ref = raw[0] if raw else 0
    if ref not in (0, 1):
        raise ExifFormatError(
            ref_entry.value_offset, f'GPSAltitudeRef is {ref}, expected 0 or 1')
    return -altitude if ref == 1 else altitude


def decode_gps(data: bytes, header: TIFFHeader,
               entries: List[IFDEntry]) -> Optional[GPSCoordinate]:
    """Decode a GPS sub-IFD into a coordinate.

    Returns None when neither latitude nor longitude is present. A single
    axis, or an axis without its ref, still yields a (partial) coordinate.
    Tags outside GPS_COORDINATE_TAGS are never read.
    """
    by_tag = {}
    for entry in entries:
        if entry.tag_id in GPS_COORDINATE_TAGS and entry.tag_id not in by_tag:
            by_tag[entry.tag_id] = entry

    if GPS_LATITUDE not in by_tag and GPS_LONGITUDE not in by_tag:
        return None

    latitude, lat_dms, lat_ref = _read_axis(data, header, by_tag,
                                            GPS_LATITUDE, GPS_LATITUDE_REF)
    longitude, lon_dms, lon_ref = _read_axis(data, header, by_tag,
                                             GPS_LONGITUDE, GPS_LONGITUDE_REF)

    return GPSCoordinate(
        latitude=latitude,
        longitude=longitude,
        latitude_dms=lat_dms,
        latitude_ref=lat_ref,
        longitude_dms=lon_dms,
        longitude_ref=lon_ref,
        altitude=read_altitude(data, header, by_tag),
    )


def _read_axis(data: bytes, header: TIFFHeader, by_tag: Dict[int, IFDEntry],
               value_tag: int, ref_tag: int):
    """Returns (decimal, dms, ref); all None when the axis tag is absent."""
    entry = by_tag.get(value_tag)
    if entry is None:
        return None, None, None
    dms = read_dms(data, header, entry)
    ref = read_hemisphere(data, by_tag.get(ref_tag), ref_tag)
    return dms_to_decimal(dms, ref, entry.value_offset), dms, ref
