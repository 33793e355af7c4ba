"""File enumeration and batch GPS scanning.

Reads each file, hands its bytes to extract_gps(), and aggregates the
results. Supports both sequential and parallel (thread pool) batches.
"""

import json
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Set

from geotrace.extractor import extract_gps
from geotrace.models import BatchResult, Found, NotPresent, ScanResult

logger = logging.getLogger(__name__)

# File extensions considered for directory scans
IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.jpe', '.jfif', '.tif', '.tiff', '.dng'}


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if not ext.startswith('.'):
        ext = '.' + ext
    return ext


@dataclass
class ScanConfig:
    """Settings for a scan run.

    Attributes:
        extensions: File suffixes (lower-case, with leading dot) to collect.
        max_read_bytes: Read at most this many bytes per file. EXIF lives in
            the leading header segments, so a prefix is usually enough.
            0 reads the whole file.
        workers: Parallel workers. 1 = sequential.
        include_hidden: Also collect dot-files and descend into dot-dirs.
    """

    extensions: Set[str] = field(default_factory=lambda: set(IMAGE_EXTENSIONS))
    max_read_bytes: int = 0
    workers: int = 1
    include_hidden: bool = False

    @classmethod
    def default(cls) -> 'ScanConfig':
        """Return the built-in defaults."""
        return cls()

    @classmethod
    def from_json(cls, path) -> 'ScanConfig':
        """Load settings from a JSON file on top of the defaults.

        JSON format::

            {
              "extensions": [".jpg", "heic"],
              "max_read_bytes": 131072,
              "workers": 4,
              "include_hidden": false
            }

        All keys are optional; omitted keys keep their defaults.
        ``extensions`` replaces the default set.
        """
        with open(str(path), 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f'{path}: expected a JSON object')

        config = cls.default()
        if 'extensions' in data:
            exts = data['extensions']
            if not isinstance(exts, list) or not all(isinstance(e, str) for e in exts):
                raise ValueError(f'{path}: "extensions" must be a list of strings')
            config.extensions = {_normalize_extension(e) for e in exts}
        if 'max_read_bytes' in data:
            config.max_read_bytes = _non_negative_int(data, 'max_read_bytes', path)
        if 'workers' in data:
            config.workers = max(1, _non_negative_int(data, 'workers', path))
        if 'include_hidden' in data:
            config.include_hidden = bool(data['include_hidden'])
        return config


def _non_negative_int(data: dict, key: str, path) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f'{path}: "{key}" must be a non-negative integer')
    return value


def collect_image_files(path: Path, config: Optional[ScanConfig] = None) -> List[Path]:
    """Collect all image files from a path (file or directory).

    A single file is returned as-is regardless of its extension.
    """
    path = Path(path)
    if path.is_file():
        return [path]
    if config is None:
        config = ScanConfig.default()

    files = []
    for root, dirnames, filenames in os.walk(path):
        if not config.include_hidden:
            dirnames[:] = [d for d in dirnames if not d.startswith('.')]
        for fname in sorted(filenames):
            if not config.include_hidden and fname.startswith('.'):
                continue
            if Path(fname).suffix.lower() in config.extensions:
                files.append(Path(root) / fname)
    files.sort()
    return files


def read_image_bytes(filepath: Path, max_bytes: int = 0) -> bytes:
    """Read a file, or only its first ``max_bytes`` bytes when non-zero."""
    with open(filepath, 'rb') as f:
        if max_bytes > 0:
            return f.read(max_bytes)
        return f.read()


def scan_file(filepath: Path, config: Optional[ScanConfig] = None) -> ScanResult:
    """Scan a single file for GPS metadata.

    I/O failures and malformed metadata are reported in ``error``; they are
    never raised.
    """
    filepath = Path(filepath)
    if config is None:
        config = ScanConfig.default()
    t0 = time.monotonic()

    try:
        file_size = filepath.stat().st_size
        data = read_image_bytes(filepath, config.max_read_bytes)
    except OSError as e:
        logger.debug('Cannot read %s: %s', filepath, e)
        return ScanResult(
            filepath=filepath, status='error',
            scan_time_ms=(time.monotonic() - t0) * 1000,
            error=f'Cannot read file: {e}',
        )

    outcome = extract_gps(data)
    elapsed = (time.monotonic() - t0) * 1000

    if isinstance(outcome, Found):
        return ScanResult(
            filepath=filepath, status='found', coordinate=outcome.coordinate,
            scan_time_ms=elapsed, file_size=file_size,
        )
    if isinstance(outcome, NotPresent):
        return ScanResult(
            filepath=filepath, status='not_present', detail=outcome.reason,
            scan_time_ms=elapsed, file_size=file_size,
        )
    return ScanResult(
        filepath=filepath, status='error', scan_time_ms=elapsed,
        file_size=file_size, error=str(outcome),
    )


def scan_batch(
    input_path: Path,
    config: Optional[ScanConfig] = None,
    progress_callback: Optional[Callable] = None,
    workers: Optional[int] = None,
) -> BatchResult:
    """Scan a batch of image files for GPS metadata.

    Args:
        input_path: File or directory containing images.
        config: Scan settings. None uses the defaults.
        progress_callback: Called with (index, total, filepath, result) after
            each file, in completion order.
        workers: Overrides config.workers. 1 = sequential.

    Returns:
        BatchResult with per-file results in submission order.
    """
    input_path = Path(input_path)
    if config is None:
        config = ScanConfig.default()
    if workers is None:
        workers = config.workers
    t0 = time.monotonic()

    files = collect_image_files(input_path, config)
    total = len(files)
    batch = BatchResult(total_files=total)

    if workers > 1 and total > 1:
        results = _batch_parallel(files, config, workers, progress_callback, batch)
    else:
        results = _batch_sequential(files, config, progress_callback, batch)

    batch.results = results
    batch.total_time_seconds = time.monotonic() - t0
    return batch


def _batch_sequential(
    files: List[Path],
    config: ScanConfig,
    progress_callback: Optional[Callable],
    batch: BatchResult,
) -> List[ScanResult]:
    """Process files sequentially."""
    results = []
    total = len(files)

    for i, filepath in enumerate(files):
        result = scan_file(filepath, config)
        results.append(result)
        _update_batch_stats(batch, result)

        if progress_callback:
            progress_callback(i + 1, total, filepath, result)

    return results


def _batch_parallel(
    files: List[Path],
    config: ScanConfig,
    workers: int,
    progress_callback: Optional[Callable],
    batch: BatchResult,
) -> List[ScanResult]:
    """Process files in parallel using a thread pool.

    Progress is reported as files complete; the returned list keeps
    submission order.
    """
    total = len(files)
    results = [None] * total
    lock = threading.Lock()
    completed_count = [0]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {}
        for i, filepath in enumerate(files):
            future = executor.submit(scan_file, filepath, config)
            futures[future] = (i, filepath)

        for future in as_completed(futures):
            index, filepath = futures[future]
            result = future.result()
            results[index] = result

            with lock:
                _update_batch_stats(batch, result)
                completed_count[0] += 1
                if progress_callback:
                    progress_callback(completed_count[0], total, filepath, result)

    return results


def _update_batch_stats(batch: BatchResult, result: ScanResult):
    """Update batch statistics from a single result."""
    if result.error:
        batch.files_errored += 1
    elif result.has_gps:
        batch.files_with_gps += 1
    else:
        batch.files_without_gps += 1
