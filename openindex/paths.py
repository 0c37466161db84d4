"""Mapping remote locations to download URLs and local file paths"""

import re
import urllib.parse
from pathlib import Path

from .errors import PathDecodeError

# A '%' that does not start a two-digit hex escape
_BAD_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')


def decode_component(component):
    """Strictly percent-decode one path component"""
    if _BAD_ESCAPE.search(component):
        raise PathDecodeError(f"malformed escape in {component!r}")
    try:
        return urllib.parse.unquote(component, errors='strict')
    except UnicodeDecodeError as e:
        raise PathDecodeError(f"undecodable bytes in {component!r}: {e}") from e


def local_parts(location):
    """Decoded, trimmed, non-empty components of a location"""
    parts = []
    for component in location.split('/'):
        name = decode_component(component).strip()
        if not name:
            continue
        # Avoid path traversal
        if name in ('.', '..') or '/' in name or '\\' in name:
            raise PathDecodeError(f"unsafe path component {name!r} in {location!r}")
        parts.append(name)
    return parts


def local_path(root, location):
    """Local artifact path for ``location`` under ``root``"""
    return Path(root).joinpath(*local_parts(location))


def download_url(base_url, location):
    """Absolute URL of ``location`` on the host of ``base_url``"""
    parts = urllib.parse.urlsplit(base_url)
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, location, '', ''))


def split_root(url):
    """Split a user supplied URL into the host base URL and the root location"""
    parts = urllib.parse.urlsplit(url)
    base_url = urllib.parse.urlunsplit((parts.scheme, parts.netloc, '', '', ''))
    location = parts.path or '/'
    if not location.endswith('/'):
        location += '/'
    return base_url, location


def is_descendant(parent, child):
    """True if ``child`` lies strictly below the directory ``parent``"""
    if not parent.endswith('/'):
        parent += '/'
    return child != parent and child.startswith(parent)
