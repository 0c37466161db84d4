"""Directory listing backends.

A lister turns one directory location into its immediate entries. Two
backends are provided:

- ``H5aiLister`` talks to the JSON API of an h5ai index. Sizes are exact
  byte counts.
- ``HtmlTableLister`` scrapes a rendered index table (Apache autoindex
  and look-alikes) through a declarative row schema. Sizes are whatever
  the page prints: bytes for bare numbers, powers of 1024 for ``K``/``M``/
  ``G``/``T`` suffixes, at the precision shown. Pages print times in the
  server's local zone without saying which, so these timestamps are naive
  unless the lister is given a ``tz``.

Both raise ``ListingError`` for network, HTTP status and decode failures.
"""

import enum
import re
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional

import requests
from bs4 import BeautifulSoup

from .errors import ListingError
from .paths import download_url


class EntryKind(enum.Enum):
    FILE = 'file'
    DIRECTORY = 'directory'
    PARENT = 'parent'


@dataclass(frozen=True)
class ReportedSize:
    """A size as a listing reports it, in the listing's own unit"""
    value: Decimal
    unit: int = 1
    precision: Decimal = Decimal(1)

    @classmethod
    def exact(cls, nbytes):
        return cls(Decimal(int(nbytes)))

    @property
    def is_exact(self):
        return self.unit == 1 and self.precision == 1

    def matches(self, nbytes):
        """Does a local file of ``nbytes`` bytes agree with this size?"""
        if self.is_exact:
            return Decimal(nbytes) == self.value
        local = Decimal(nbytes) / self.unit
        return abs(local - self.value) <= self.precision / 2

    def __str__(self):
        if self.is_exact:
            return f"{self.value} B"
        return f"~{self.value}x{self.unit} B"


@dataclass(frozen=True)
class Entry:
    """One listed item; ``modified_at`` is UTC for h5ai and server-local for HTML listings"""
    location: str
    kind: EntryKind
    size: Optional[ReportedSize] = None
    modified_at: Optional[datetime] = None

    @property
    def is_file(self):
        return self.kind is EntryKind.FILE

    @property
    def is_directory(self):
        return self.kind is EntryKind.DIRECTORY


def is_ancestor(location, href):
    """True if ``href`` names a directory strictly above ``location``"""
    return href.endswith('/') and href != location and location.startswith(href)


class H5aiLister:
    """Lists directories through the h5ai JSON API"""

    def __init__(self, session, base_url, timeout=30):
        self.session = session
        self.base_url = base_url
        self.timeout = timeout

    def request_body(self, location):
        return {'action': 'get', 'items': {'href': location, 'what': 1}}

    def list(self, location):
        try:
            response = self.session.post(
                download_url(self.base_url, '/'),
                json=self.request_body(location),
                timeout=self.timeout
            )
            response.raise_for_status()
            items = response.json()['items']
            return [self._entry(location, item) for item in items]
        except requests.RequestException as e:
            raise ListingError(location, e) from e
        except (ValueError, KeyError, TypeError) as e:
            raise ListingError(location, f"bad h5ai response: {e!r}") from e

    def _entry(self, location, item):
        href = item['href']
        if is_ancestor(location, href):
            kind = EntryKind.PARENT
        elif href.endswith('/'):
            kind = EntryKind.DIRECTORY
        else:
            kind = EntryKind.FILE

        size = item.get('size')
        modified = item.get('time')
        return Entry(
            location=href,
            kind=kind,
            size=ReportedSize.exact(size) if size is not None else None,
            # h5ai reports milliseconds since the epoch
            modified_at=datetime.fromtimestamp(modified / 1000, tz=timezone.utc) if modified else None
        )


# HTML table backend

_SIZE_RE = re.compile(r'^(\d+(?:\.\d+)?)\s*([KMGT]?)B?$', re.IGNORECASE)
_UNITS = {'': 1, 'K': 1024, 'M': 1024 ** 2, 'G': 1024 ** 3, 'T': 1024 ** 4}
TIMESTAMP_FORMATS = ('%Y-%m-%d %H:%M', '%Y-%m-%d %H:%M:%S', '%d-%b-%Y %H:%M')


def parse_size(text):
    """Parse a printed size such as ``123``, ``1.2K`` or ``-``"""
    text = text.strip()
    match = _SIZE_RE.match(text)
    if not match:
        return None
    number, suffix = match.groups()
    try:
        value = Decimal(number)
    except InvalidOperation:
        return None
    unit = _UNITS[suffix.upper()]
    if unit == 1 and value == value.to_integral_value():
        return ReportedSize(value)
    # The printed digits bound how far the real size can be from the value
    exponent = value.as_tuple().exponent
    return ReportedSize(value, unit=unit, precision=Decimal(1).scaleb(exponent))


def parse_timestamp(text):
    text = text.strip()
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def cell_text(cell):
    return cell.get_text(' ', strip=True)


def icon_alt(cell):
    img = cell.find('img')
    return img.get('alt', '') if img else ''


def link(cell):
    a = cell.find('a', href=True)
    if a is None:
        return None
    return a['href'], a.get_text().strip()


@dataclass(frozen=True)
class Column:
    index: int
    extract: Callable


@dataclass(frozen=True)
class RowSchema:
    """Which table column holds which part of an entry.

    ``path`` is required; ``kind``, ``modified`` and ``size`` are optional.
    """
    columns: Dict[str, Column] = field(default_factory=dict)

    def extract(self, cells):
        needed = max(col.index for col in self.columns.values()) + 1
        if len(cells) < needed:
            return None
        return {role: col.extract(cells[col.index]) for role, col in self.columns.items()}


# Apache autoindex with HTMLTable: icon, name, last modified, size, description
APACHE_TABLE = RowSchema({
    'kind': Column(0, icon_alt),
    'path': Column(1, link),
    'modified': Column(2, lambda cell: parse_timestamp(cell_text(cell))),
    'size': Column(3, lambda cell: parse_size(cell_text(cell))),
})

PARENT_LABELS = ('parent directory', '..', '../')


class HtmlTableLister:
    """Lists directories by scraping a rendered index table"""

    def __init__(self, session, base_url, timeout=30, schema=APACHE_TABLE, tz=None):
        self.session = session
        self.base_url = base_url
        self.timeout = timeout
        self.schema = schema
        # Zone the server prints its times in; None keeps them naive
        self.tz = tz

    def list(self, location):
        url = download_url(self.base_url, location)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ListingError(location, e) from e
        return self.parse(location, response.text)

    def parse(self, location, html):
        soup = BeautifulSoup(html, 'html.parser')
        table = soup.find('table')
        if table is None:
            raise ListingError(location, "no listing table found")

        directory_url = download_url(self.base_url, location)
        entries = []
        for row in table.find_all('tr'):
            # Header and separator rows use <th>
            values = self.schema.extract(row.find_all('td', recursive=False))
            if not values or not values.get('path'):
                continue
            entry = self._entry(location, directory_url, values)
            if entry is not None:
                entries.append(entry)
        return entries

    def _entry(self, location, directory_url, values):
        href, label = values['path']
        if href.startswith(('?', '#', 'mailto:', 'javascript:')):
            return None
        resolved = urllib.parse.urlsplit(urllib.parse.urljoin(directory_url, href))
        if resolved.netloc != urllib.parse.urlsplit(self.base_url).netloc:
            return None
        path = resolved.path

        alt = (values.get('kind') or '').upper()
        if alt == '[PARENTDIR]' or label.lower() in PARENT_LABELS or is_ancestor(location, path):
            kind = EntryKind.PARENT
        elif alt == '[DIR]' or path.endswith('/'):
            kind = EntryKind.DIRECTORY
        else:
            kind = EntryKind.FILE

        modified = values.get('modified')
        if modified is not None and self.tz is not None:
            modified = modified.replace(tzinfo=self.tz)

        if kind is EntryKind.DIRECTORY and not path.endswith('/'):
            path += '/'
        return Entry(
            location=path,
            kind=kind,
            size=values.get('size') if kind is EntryKind.FILE else None,
            modified_at=modified
        )


BACKENDS = {
    'h5ai': H5aiLister,
    'html': HtmlTableLister,
}


def make_lister(backend, session, base_url, timeout=30):
    """Build the lister registered under ``backend``"""
    try:
        cls = BACKENDS[backend]
    except KeyError:
        raise ValueError(f"unknown listing backend {backend!r}, expected one of {sorted(BACKENDS)}")
    return cls(session, base_url, timeout=timeout)
