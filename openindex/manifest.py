"""Append-only log of every file URL the crawl visits"""

import threading
from pathlib import Path

from .errors import ManifestError
from .progress import Reporter


class UrlManifest:
    """One URL per line, safe to append to from many threads.

    Writing is best effort: a failed append is reported and the crawl
    carries on.
    """

    def __init__(self, sink, reporter=None):
        self.sink = sink
        self.reporter = reporter or Reporter()
        self._lock = threading.Lock()
        self._count = 0

    @classmethod
    def create(cls, path, reporter=None):
        """Create (or truncate) the manifest file at ``path``"""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            sink = open(path, 'w', encoding='utf-8')
        except OSError as e:
            raise ManifestError(f"Failed to create {str(path)!r}: {e}") from e
        return cls(sink, reporter=reporter)

    def record(self, url):
        """Append ``url`` as a single complete line"""
        line = url + '\n'
        with self._lock:
            try:
                self.sink.write(line)
                self.sink.flush()
            except (OSError, ValueError) as e:
                self.reporter.error(f"manifest write failed for {url}: {e}")
                return
            self._count += 1

    @property
    def count(self):
        with self._lock:
            return self._count

    def close(self):
        with self._lock:
            self.sink.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
