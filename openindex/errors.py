"""Exceptions raised while crawling and downloading an open directory"""


class OpenIndexError(Exception):
    """Base class for every error raised by openindex"""


class ListingError(OpenIndexError):
    """A directory listing could not be fetched or decoded"""

    def __init__(self, location, reason):
        super().__init__(f"{location}: {reason}")
        self.location = location
        self.reason = reason


class FetchError(OpenIndexError):
    """A file download could not be started"""


class PersistenceError(OpenIndexError):
    """A local file or directory could not be written"""


class PathDecodeError(OpenIndexError):
    """A remote path has a malformed or unsafe encoding"""


class ManifestError(OpenIndexError):
    """The URL manifest could not be opened"""
