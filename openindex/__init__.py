"""OpenIndex - recursive directory index downloader"""

from .crawler import Crawler
from .downloader import Downloader, Outcome
from .errors import (
    FetchError,
    ListingError,
    ManifestError,
    OpenIndexError,
    PathDecodeError,
    PersistenceError,
)
from .gate import ConcurrencyGate, Decision, TaskPool, WaitGroup
from .listing import Entry, EntryKind, H5aiLister, HtmlTableLister, ReportedSize, make_lister
from .manifest import UrlManifest
from .openindex import OpenIndexDownloader

__version__ = '1.0.0'
