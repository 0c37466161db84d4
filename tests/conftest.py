import io
import threading

import pytest

from openindex.errors import ListingError
from openindex.progress import Reporter


class StubLister:
    """Serves canned listings; a value that is an exception is raised instead"""

    def __init__(self, tree):
        self.tree = tree
        self.calls = []
        self._lock = threading.Lock()

    def list(self, location):
        with self._lock:
            self.calls.append(location)
        result = self.tree.get(location)
        if result is None:
            raise ListingError(location, "404 Not Found")
        if isinstance(result, Exception):
            raise result
        return list(result)


class RecordingDownloader:
    def __init__(self):
        self.fetched = []
        self._lock = threading.Lock()

    def fetch(self, entry):
        with self._lock:
            self.fetched.append(entry.location)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def reporter(output):
    return Reporter(stream=output)
