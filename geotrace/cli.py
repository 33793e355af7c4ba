"""CLI interface for geotrace — scan and info subcommands."""

import sys
import time
from pathlib import Path

import click

import geotrace
from geotrace import log
from geotrace.extractor import inspect_exif
from geotrace.models import Found, NotPresent
from geotrace.report import generate_scan_report, write_json_report
from geotrace.scanner import ScanConfig, collect_image_files, read_image_bytes, scan_batch


@click.group()
@click.version_option(version=geotrace.__version__, prog_name='geotrace')
def main():
    """geotrace — find images that carry GPS location metadata.

    Reads EXIF GPS tags from JPEG and TIFF files without external tools.
    """
    pass


def _format_axis(value):
    return 'unknown' if value is None else f'{value:.6f}'


def _format_coordinate_lines(coord):
    lines = [
        f'  - Latitude: {_format_axis(coord.latitude)}',
        f'  - Longitude: {_format_axis(coord.longitude)}',
        f'  - Position: {coord.position}',
    ]
    if coord.altitude is not None:
        lines.append(f'  - Altitude: {coord.altitude:.1f} m')
    return lines


@main.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--verbose', '-v', is_flag=True,
              help='Also list files without GPS and timing.')
@click.option('--json-out', type=click.Path(), help='Write results as JSON to file.')
@click.option('--pdf-out', type=click.Path(), help='Write a PDF scan report to file.')
@click.option('--workers', '-w', type=int, default=None,
              help='Number of parallel workers (default: 1, sequential).')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='JSON settings file (extensions, max_read_bytes, workers).')
@click.option('--log', 'log_path', type=click.Path(), help='Write log to file.')
@click.option('--strict', is_flag=True,
              help='Exit with status 1 if any file could not be parsed.')
def scan(path, verbose, json_out, pdf_out, workers, config_path, log_path, strict):
    """Scan images for GPS coordinates (read-only).

    PATH can be a single file or a directory to scan recursively.
    """
    try:
        config = ScanConfig.from_json(config_path) if config_path else ScanConfig.default()
    except (OSError, ValueError) as e:
        click.echo(log.cli_error(f'Error: invalid config: {e}'), err=True)
        sys.exit(2)
    if workers is not None:
        config.workers = max(1, workers)

    input_path = Path(path)
    log_file = open(log_path, 'w') if log_path else None

    def log_msg(msg, line=None, styled=None):
        click.echo(styled if styled is not None else msg)
        if log_file:
            log_file.write((line or log.log_info(msg)) + '\n')
            log_file.flush()

    try:
        files = collect_image_files(input_path, config)
        if not files:
            log_msg(f'No image files found in {input_path}')
            return

        workers_str = f', {config.workers} workers' if config.workers > 1 else ''
        header = f'Scanning {len(files)} file(s) in {input_path}{workers_str}...'
        log_msg(header, styled=log.cli_header(header))

        t0 = time.time()

        def progress(i, total, filepath, result):
            if result.error:
                msg = f'[ERROR] {filepath.name}: {result.error}'
                log_msg(msg, line=log.log_error(msg), styled=log.cli_error(msg))
            elif result.has_gps:
                msg = f'[FOUND GPS] {filepath.name}'
                log_msg(msg, line=log.log_warn(msg), styled=log.cli_found(msg))
                for detail in _format_coordinate_lines(result.coordinate):
                    log_msg(detail, styled=log.cli_detail(detail))
            elif verbose:
                msg = f'[NO GPS] {filepath.name}'
                if result.detail:
                    msg += f' ({result.detail})'
                log_msg(msg, styled=log.cli_clean(msg))
            if verbose:
                elapsed = time.time() - t0
                click.echo(log.cli_dim(f'  [{i}/{total}] {elapsed:.1f}s elapsed'))

        batch = scan_batch(input_path, config=config, progress_callback=progress)

        summary = (f'Summary: {batch.total_files} files scanned, '
                   f'{batch.files_with_gps} with GPS, '
                   f'{batch.files_without_gps} without, '
                   f'{batch.files_errored} unreadable '
                   f'({batch.total_time_seconds:.1f}s)')
        click.echo(log.cli_separator())
        log_msg(summary, styled=log.cli_bold(summary))

        if json_out:
            write_json_report(batch, Path(json_out))
            msg = f'Results written to {json_out}'
            log_msg(msg, styled=log.cli_info(msg))
        if pdf_out:
            generate_scan_report(batch, Path(pdf_out), title=str(input_path))
            msg = f'PDF report written to {pdf_out}'
            log_msg(msg, styled=log.cli_info(msg))
    finally:
        if log_file:
            log_file.close()

    if strict and batch.files_errored > 0:
        sys.exit(1)


@main.command()
@click.argument('path', type=click.Path(exists=True))
def info(path):
    """Show EXIF structure and GPS details for a single image."""
    filepath = Path(path)

    if filepath.is_dir():
        click.echo(log.cli_error('Error: info command requires a single file, '
                                 'not a directory.'), err=True)
        sys.exit(1)

    try:
        data = read_image_bytes(filepath)
    except OSError as e:
        click.echo(log.cli_error(f'Error: cannot read {filepath}: {e}'), err=True)
        sys.exit(1)

    details = inspect_exif(data)

    click.echo(log.cli_header(f'File: {filepath.name}'))
    click.echo(f'Size: {len(data)} bytes')
    click.echo(f'Container: {details["container"] or "unknown"}')
    if details['byte_order']:
        click.echo(f'Byte order: {details["byte_order"]}')
    if details['ifd0_tags'] is not None:
        click.echo(f'IFD0 tags ({len(details["ifd0_tags"])}): '
                   f'{", ".join(details["ifd0_tags"]) or "-"}')
    if details['gps_tags'] is not None:
        click.echo(f'GPS tags ({len(details["gps_tags"])}): '
                   f'{", ".join(details["gps_tags"])}')

    result = details['result']
    if isinstance(result, Found):
        click.echo(log.cli_found('\nGPS: FOUND'))
        for line in _format_coordinate_lines(result.coordinate):
            click.echo(log.cli_detail(line))
    elif isinstance(result, NotPresent):
        click.echo(log.cli_clean(f'\nGPS: not present ({result.reason})'))
    else:
        click.echo(log.cli_error(f'\nGPS: parse error: {result}'))
        sys.exit(1)


if __name__ == '__main__':
    main()
