"""geotrace -- find images that carry GPS location metadata."""

__version__ = "1.0.0"

from geotrace.models import (
    BatchResult,
    ExtractionResult,
    Found,
    GPSCoordinate,
    NotPresent,
    ParseError,
    ScanResult,
)
from geotrace.extractor import extract_gps, inspect_exif
from geotrace.scanner import ScanConfig, collect_image_files, scan_batch, scan_file
from geotrace.report import generate_scan_report, write_json_report

__all__ = [
    "__version__",
    "GPSCoordinate",
    "Found",
    "NotPresent",
    "ParseError",
    "ExtractionResult",
    "ScanResult",
    "BatchResult",
    "extract_gps",
    "inspect_exif",
    "ScanConfig",
    "collect_image_files",
    "scan_file",
    "scan_batch",
    "generate_scan_report",
    "write_json_report",
]
