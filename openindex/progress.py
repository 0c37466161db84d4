"""Terminal status output and run statistics"""

import threading
from dataclasses import dataclass, fields
from datetime import datetime

from tqdm import tqdm


@dataclass
class Stats:
    files_found: int = 0
    recorded: int = 0
    intact: int = 0
    damaged: int = 0
    downloaded: int = 0
    bytes_downloaded: int = 0
    errors: int = 0
    listing_errors: int = 0


def format_bytes(bytes_size):
    """Format bytes to human readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.1f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.1f} TB"


class Reporter:
    """Writes prefixed status lines and keeps the run counters.

    Every line goes through ``tqdm.write`` so output from many threads
    stays whole and does not tear the progress bar.
    """

    def __init__(self, progress=False, stream=None):
        self.stream = stream
        self.start_time = datetime.now()
        self._stats = Stats()
        self._lock = threading.Lock()
        self._pbar = None
        if progress:
            self._pbar = tqdm(
                total=0,
                desc="Files",
                unit="files",
                leave=True,
                file=stream,
                bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} files [{elapsed}]"
            )

    def _write(self, line):
        tqdm.write(line, file=self.stream)

    def info(self, message):
        self._write(f"[*] {message}")

    def success(self, message):
        self._write(f"[+] {message}")

    def warning(self, message):
        self._write(f"[!] {message}")

    def error(self, message):
        self.count('errors')
        self._write(f"[!] Error: {message}")

    def status(self, label, target, active=0):
        self._write(f"[{active:03d}] {label:<13} # {target}")

    def count(self, name, amount=1):
        with self._lock:
            setattr(self._stats, name, getattr(self._stats, name) + amount)

    def discovered(self, files):
        """Grow the bar total as a listing reveals new files"""
        self.count('files_found', files)
        if self._pbar is not None and files:
            with self._lock:
                self._pbar.total += files
                self._pbar.refresh()

    def finished(self):
        """Advance the bar by one handled file"""
        if self._pbar is not None:
            with self._lock:
                self._pbar.update(1)

    @property
    def stats(self):
        with self._lock:
            return Stats(**{f.name: getattr(self._stats, f.name) for f in fields(Stats)})

    def close(self):
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None

    def print_statistics(self, base_url, output_dir):
        """Print the end-of-run summary"""
        stats = self.stats
        duration = datetime.now() - self.start_time
        avg_speed = stats.bytes_downloaded / max(1, duration.total_seconds())

        self._write("=" * 60)
        self._write("DOWNLOAD STATISTICS")
        self._write("=" * 60)
        self._write(f"Base URL: {base_url}")
        self._write(f"Output Directory: {output_dir}")
        self._write(f"Duration: {str(duration).split('.')[0]}")
        self._write(f"Files Found: {stats.files_found:,}")
        self._write(f"URLs Recorded: {stats.recorded:,}")
        self._write(f"Intact: {stats.intact:,}")
        self._write(f"Damaged: {stats.damaged:,}")
        self._write(f"Downloaded: {stats.downloaded:,}")
        self._write(f"Total Size Downloaded: {format_bytes(stats.bytes_downloaded)}")
        self._write(f"Average Speed: {format_bytes(avg_speed)}/s")
        self._write(f"Listing Errors: {stats.listing_errors:,}")
        self._write(f"Errors: {stats.errors:,}")
        self._write("=" * 60)
