"""Data models for geotrace extraction and scan results."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

# (numerator, denominator) as stored in an EXIF RATIONAL
Rational = Tuple[int, int]
# degrees, minutes, seconds
DMS = Tuple[Rational, Rational, Rational]


@dataclass(frozen=True)
class GPSCoordinate:
    """A decoded GPS position.

    The raw degree/minute/second rationals and hemisphere letters are kept
    next to the signed decimal values they were converted to.

    A partial fix is still a location leak: either axis may be None when its
    tag is absent, and a ref may be None when the axis has no reference tag
    (the decimal value is then left unsigned).
    """
    latitude: Optional[float]
    longitude: Optional[float]
    latitude_dms: Optional[DMS]
    latitude_ref: Optional[str]   # "N" | "S"
    longitude_dms: Optional[DMS]
    longitude_ref: Optional[str]  # "E" | "W"
    altitude: Optional[float] = None  # metres, negative below sea level

    @property
    def is_complete(self) -> bool:
        """Both axes present, each with its hemisphere reference."""
        return (self.latitude is not None and self.longitude is not None
                and self.latitude_ref is not None and self.longitude_ref is not None)

    @property
    def position(self) -> str:
        """Human-readable position string built from the discrete tags."""
        return (f'{_format_dms(self.latitude, self.latitude_ref)}, '
                f'{_format_dms(self.longitude, self.longitude_ref)}')

    def as_tuple(self) -> Tuple[Optional[float], Optional[float]]:
        return self.latitude, self.longitude


def _format_dms(value: Optional[float], ref: Optional[str]) -> str:
    if value is None:
        return 'unknown'
    total = round(abs(value) * 3600, 2)
    degrees, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    text = f'{int(degrees)} deg {int(minutes)}\' {seconds:.2f}"'
    return f'{text} {ref}' if ref else f'{text} (no ref)'


@dataclass(frozen=True)
class Found:
    """The buffer carries a complete GPS coordinate."""
    coordinate: GPSCoordinate


@dataclass(frozen=True)
class NotPresent:
    """Well-formed input without GPS coordinates."""
    reason: str = ''


@dataclass(frozen=True)
class ParseError:
    """Malformed or truncated input. ``offset`` is relative to the TIFF block
    once one has been located, otherwise to the start of the buffer."""
    offset: int
    reason: str

    def __str__(self) -> str:
        return f'{self.reason} (offset {self.offset})'


ExtractionResult = Union[Found, NotPresent, ParseError]


@dataclass
class ScanResult:
    """Result of scanning a single file for GPS metadata."""
    filepath: Path
    status: str  # "found" | "not_present" | "error"
    coordinate: Optional[GPSCoordinate] = None
    detail: str = ''
    scan_time_ms: float = 0.0
    file_size: int = 0
    error: Optional[str] = None

    @property
    def has_gps(self) -> bool:
        return self.status == 'found'


@dataclass
class BatchResult:
    """Result of a batch scan run."""
    results: List[ScanResult] = field(default_factory=list)
    total_files: int = 0
    files_with_gps: int = 0
    files_without_gps: int = 0
    files_errored: int = 0
    total_time_seconds: float = 0.0
