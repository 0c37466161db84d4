"""Recursive traversal of a directory index"""

from .errors import ListingError
from .listing import EntryKind
from .paths import is_descendant
from .progress import Reporter


class Crawler:
    """Lists a directory and dispatches every child through the task pool.

    Sub-directories are crawled and files are handed to the downloader.
    A listing failure stops that directory only; branches that were already
    dispatched carry on.
    """

    def __init__(self, lister, downloader, pool, reporter=None):
        self.lister = lister
        self.downloader = downloader
        self.pool = pool
        self.reporter = reporter or Reporter()

    def children(self, location, entries):
        """Entries that are real children of ``location``"""
        for entry in entries:
            if entry.kind is EntryKind.PARENT:
                continue
            # Listings may echo the directory itself or point outside it
            if not is_descendant(location, entry.location):
                continue
            yield entry

    def crawl(self, location):
        try:
            entries = self.lister.list(location)
        except ListingError as e:
            self.reporter.warning(f"Error crawling {e}")
            self.reporter.count('listing_errors')
            return

        entries = list(self.children(location, entries))
        self.reporter.discovered(sum(1 for entry in entries if entry.is_file))

        for entry in entries:
            if entry.is_directory:
                self.pool.submit(self.crawl, entry.location)
            else:
                self.pool.submit(self.downloader.fetch, entry)
