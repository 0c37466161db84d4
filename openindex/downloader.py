"""Per-file download with size based integrity checks"""

import enum

import requests

from .errors import FetchError, PathDecodeError, PersistenceError
from .paths import download_url, local_path
from .progress import Reporter

CHUNK_SIZE = 4096


class Outcome(enum.Enum):
    RECORDED = 'recorded'
    INTACT = 'intact'
    DOWNLOADED = 'downloaded'
    FAILED = 'failed'


class Downloader:
    """Records a file's URL and, unless in URL-only mode, brings the local copy up to date.

    A local file whose size agrees with the listing is left alone, so an
    interrupted run can simply be started again. Anything else is removed
    and fetched afresh. A download that fails part way never leaves a file
    behind.
    """

    def __init__(self, session, manifest, base_url, output_dir='downloads', url_only=False,
                 reporter=None, gate=None, timeout=30, chunk_size=CHUNK_SIZE):
        self.session = session
        self.manifest = manifest
        self.base_url = base_url
        self.output_dir = output_dir
        self.url_only = url_only
        self.reporter = reporter or Reporter()
        self.gate = gate
        self.timeout = timeout
        self.chunk_size = chunk_size

    def _active(self):
        return self.gate.active if self.gate is not None else 0

    def fetch(self, entry):
        url = download_url(self.base_url, entry.location)
        self.manifest.record(url)
        self.reporter.count('recorded')

        if self.url_only:
            self.reporter.finished()
            return Outcome.RECORDED

        try:
            outcome = self._download(entry, url)
        except (FetchError, PersistenceError, PathDecodeError) as e:
            self.reporter.status('ERROR', e, self._active())
            self.reporter.count('errors')
            outcome = Outcome.FAILED
        self.reporter.finished()
        return outcome

    def _download(self, entry, url):
        path = local_path(self.output_dir, entry.location)
        nthreads = self._active()

        # Verify file integrity
        if path.is_file():
            if entry.size is not None and entry.size.matches(path.stat().st_size):
                self.reporter.status('Intact', path, nthreads)
                self.reporter.count('intact')
                return Outcome.INTACT
            self.reporter.status('Damaged', path, nthreads)
            self.reporter.count('damaged')
            self._remove(path)

        self.reporter.status('Downloading', url, nthreads)
        response = self._open(url)
        with response:
            self.reporter.status('Saving', path, nthreads)
            written = self._save(response, path)

        self.reporter.count('downloaded')
        self.reporter.count('bytes_downloaded', written)
        return Outcome.DOWNLOADED

    def _open(self, url):
        response = None
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            if response is not None:
                response.close()
            raise FetchError(f"{url}: {e}") from e
        return response

    def _save(self, response, path):
        """Stream the body to ``path``; the file is removed on any failure"""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            f = open(path, 'wb')
        except OSError as e:
            self._discard(path)
            raise PersistenceError(f"{path}: {e}") from e

        written = 0
        try:
            with f:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
        except (requests.RequestException, OSError) as e:
            self._discard(path)
            raise PersistenceError(f"{path}: {e}") from e
        return written

    def _remove(self, path):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(f"could not remove {path}: {e}") from e

    def _discard(self, path):
        """Best effort removal on an error path that is already failing"""
        try:
            self._remove(path)
        except PersistenceError as e:
            self.reporter.warning(str(e))
