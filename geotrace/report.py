"""Scan reports (JSON + PDF)."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from fpdf import FPDF

import geotrace
from geotrace.models import BatchResult, ScanResult


def result_to_dict(result: ScanResult) -> Dict:
    """Serialize one ScanResult to JSON-compatible types."""
    entry = {
        'file': str(result.filepath),
        'status': result.status,
        'latitude': None,
        'longitude': None,
        'altitude': None,
        'position': None,
        'complete': None,
        'file_size': result.file_size,
        'scan_time_ms': round(result.scan_time_ms, 1),
        'error': result.error,
    }
    coord = result.coordinate
    if coord is not None:
        entry['latitude'] = coord.latitude
        entry['longitude'] = coord.longitude
        entry['altitude'] = coord.altitude
        entry['position'] = coord.position
        entry['complete'] = coord.is_complete
    return entry


def batch_to_dict(batch: BatchResult) -> Dict:
    """Serialize a BatchResult with a summary block."""
    return {
        'geotrace_version': geotrace.__version__,
        'generated_at': datetime.now(timezone.utc).isoformat(),
        'summary': {
            'total_files': batch.total_files,
            'with_gps': batch.files_with_gps,
            'without_gps': batch.files_without_gps,
            'errors': batch.files_errored,
            'total_time_seconds': round(batch.total_time_seconds, 2),
        },
        'files': [result_to_dict(r) for r in batch.results],
    }


def write_json_report(batch: BatchResult, output_path: Path) -> Path:
    """Write batch_to_dict() output as indented JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(batch_to_dict(batch), f, indent=2)
    return output_path


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

_STATUS_LABELS = {
    'found': 'GPS FOUND',
    'not_present': 'NO GPS',
    'error': 'ERROR',
}

_STATUS_COLORS = {
    'GPS FOUND': (200, 130, 0),   # orange
    'NO GPS':    (30, 122, 46),   # green
    'ERROR':     (192, 48, 48),   # red
}


def _trunc(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if it exceeds max_len."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + '...'


def _sanitize_for_pdf(text: str) -> str:
    """Replace characters the built-in Helvetica font cannot render.

    Core PDF fonts only cover Latin-1; anything outside printable ASCII is
    replaced with '?'.
    """
    return ''.join(c if 0x20 <= ord(c) <= 0x7E else '?' for c in text)


def _pdf_kv_table(pdf: FPDF, rows: list):
    """Render a 2-column key-value table with alternating row shading."""
    col_w = [65, 115]
    for i, (key, value) in enumerate(rows):
        fill = i % 2 == 0
        if fill:
            pdf.set_fill_color(240, 240, 245)
        pdf.set_font('Helvetica', 'B', 9)
        pdf.cell(col_w[0], 7, key, border=0, fill=fill,
                 new_x='RIGHT', new_y='TOP')
        pdf.set_font('Helvetica', '', 9)
        pdf.cell(col_w[1], 7, str(value), border=0, fill=fill,
                 new_x='LMARGIN', new_y='NEXT')
    pdf.ln(3)


def _pdf_file_table(pdf: FPDF, results: list):
    """Render the per-file table (5 columns)."""
    col_w = [8, 52, 22, 28, 80]  # total = 190
    headers = ['#', 'Filename', 'Status', 'Lat, Lon', 'Position / Error']

    pdf.set_font('Helvetica', 'B', 7)
    pdf.set_fill_color(60, 60, 80)
    pdf.set_text_color(255, 255, 255)
    for j, hdr in enumerate(headers):
        nx = 'RIGHT' if j < len(headers) - 1 else 'LMARGIN'
        ny = 'TOP' if j < len(headers) - 1 else 'NEXT'
        pdf.cell(col_w[j], 6, hdr, border=0, fill=True, new_x=nx, new_y=ny)
    pdf.set_text_color(0, 0, 0)

    for i, result in enumerate(results):
        fill = i % 2 == 0
        if fill:
            pdf.set_fill_color(245, 245, 248)

        status = _STATUS_LABELS.get(result.status, result.status.upper())
        coord = result.coordinate
        if coord is not None:
            latlon = ', '.join('?' if v is None else f'{v:.5f}'
                               for v in coord.as_tuple())
            detail = coord.position
        elif result.error:
            latlon = '-'
            detail = result.error
        else:
            latlon = '-'
            detail = result.detail or '-'

        pdf.set_font('Helvetica', '', 7)
        pdf.cell(col_w[0], 5.5, str(i + 1), border=0, fill=fill,
                 new_x='RIGHT', new_y='TOP')
        pdf.cell(col_w[1], 5.5, _sanitize_for_pdf(_trunc(result.filepath.name, 36)),
                 border=0, fill=fill, new_x='RIGHT', new_y='TOP')
        r, g, b = _STATUS_COLORS.get(status, (0, 0, 0))
        pdf.set_text_color(r, g, b)
        pdf.set_font('Helvetica', 'B', 7)
        pdf.cell(col_w[2], 5.5, status, border=0, fill=fill,
                 new_x='RIGHT', new_y='TOP')
        pdf.set_text_color(0, 0, 0)
        pdf.set_font('Helvetica', '', 7)
        pdf.cell(col_w[3], 5.5, latlon, border=0, fill=fill,
                 new_x='RIGHT', new_y='TOP')
        pdf.cell(col_w[4], 5.5, _sanitize_for_pdf(_trunc(detail, 60)), border=0,
                 fill=fill, new_x='LMARGIN', new_y='NEXT')
    pdf.ln(3)


def generate_scan_report(batch: BatchResult, output_path: Path,
                         title: Optional[str] = None) -> Path:
    """Generate a PDF report of a GPS scan.

    Args:
        batch: Result of scan_batch().
        output_path: Path where the PDF file will be written.
        title: Optional subtitle (e.g. the scanned directory).

    Returns:
        The output_path.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    pdf = FPDF(orientation='P', unit='mm', format='A4')
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    # --- Header ---
    pdf.set_font('Helvetica', 'B', 16)
    pdf.cell(0, 10, 'geotrace GPS Scan Report', new_x='LMARGIN', new_y='NEXT')
    if title:
        pdf.set_font('Helvetica', 'B', 12)
        pdf.set_text_color(30, 60, 120)
        pdf.cell(0, 7, _sanitize_for_pdf(_trunc(title, 90)),
                 new_x='LMARGIN', new_y='NEXT')
        pdf.set_text_color(0, 0, 0)
    pdf.set_font('Helvetica', '', 9)
    pdf.set_text_color(120, 120, 120)
    pdf.cell(0, 5, f'geotrace v{geotrace.__version__}  |  '
             f'{datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")}',
             new_x='LMARGIN', new_y='NEXT')
    pdf.set_text_color(0, 0, 0)
    pdf.line(10, pdf.get_y() + 1, 200, pdf.get_y() + 1)
    pdf.ln(5)

    # --- Summary ---
    pdf.set_font('Helvetica', 'B', 11)
    pdf.cell(0, 7, 'Summary', new_x='LMARGIN', new_y='NEXT')
    _pdf_kv_table(pdf, [
        ('Total scanned', str(batch.total_files)),
        ('With GPS location', str(batch.files_with_gps)),
        ('Without GPS location', str(batch.files_without_gps)),
        ('Errors', str(batch.files_errored)),
        ('Scan time', f'{batch.total_time_seconds:.1f}s'),
    ])

    # --- File results ---
    if batch.results:
        pdf.set_font('Helvetica', 'B', 11)
        pdf.cell(0, 7, 'File Results', new_x='LMARGIN', new_y='NEXT')
        _pdf_file_table(pdf, batch.results)

    # --- Footer ---
    pdf.line(10, pdf.get_y() + 1, 200, pdf.get_y() + 1)
    pdf.ln(4)
    pdf.set_font('Helvetica', 'I', 8)
    pdf.set_text_color(100, 100, 100)
    pdf.multi_cell(0, 4,
        'Coordinates are decoded from the EXIF GPS directory (GPSLatitude, '
        'GPSLongitude and their hemisphere references) and shown in signed '
        'decimal degrees. Files listed as ERROR have malformed or truncated '
        'metadata and were skipped.'
    )
    pdf.set_text_color(0, 0, 0)

    pdf.output(str(output_path))
    return output_path
