import io

import pytest
import requests
import responses

from openindex.crawler import Crawler
from openindex.downloader import Downloader
from openindex.errors import ListingError
from openindex.gate import ConcurrencyGate, TaskPool
from openindex.listing import Entry, EntryKind, ReportedSize
from openindex.manifest import UrlManifest

from .conftest import RecordingDownloader, StubLister

BASE = 'http://example.com'


def f(location, size=None):
    return Entry(location, EntryKind.FILE, size=ReportedSize.exact(size) if size is not None else None)


def d(location):
    return Entry(location, EntryKind.DIRECTORY)


def parent(location):
    return Entry(location, EntryKind.PARENT)


DOCS_TREE = {
    '/docs/': [f('/docs/a.txt', 100), d('/docs/sub/'), parent('/')],
    '/docs/sub/': [f('/docs/sub/b.txt', 3)],
}


def run(tree, limit, reporter, downloader=None):
    lister = StubLister(tree)
    downloader = downloader or RecordingDownloader()
    pool = TaskPool(ConcurrencyGate(limit), reporter=reporter)
    crawler = Crawler(lister, downloader, pool, reporter=reporter)
    crawler.crawl(next(iter(tree)))
    assert pool.join(timeout=10)
    assert pool.gate.active == 0
    return lister, downloader


@pytest.mark.parametrize('limit', [0, 1, 4])
def test_docs_scenario(limit, reporter):
    lister, downloader = run(DOCS_TREE, limit, reporter)

    assert sorted(lister.calls) == ['/docs/', '/docs/sub/']
    assert sorted(downloader.fetched) == ['/docs/a.txt', '/docs/sub/b.txt']
    assert reporter.stats.files_found == 2


def test_self_and_escaping_entries_are_ignored(reporter):
    tree = {
        '/docs/': [
            d('/docs/'),
            d('/'),
            f('/other/x.txt'),
            f('/docsearch/y.txt'),
            f('/docs/keep.txt'),
        ],
    }
    lister, downloader = run(tree, 2, reporter)

    assert lister.calls == ['/docs/']
    assert downloader.fetched == ['/docs/keep.txt']


@pytest.mark.parametrize('limit', [0, 3, 16])
def test_every_entry_visited_exactly_once(limit, reporter):
    tree = {'/': [d(f'/d{i}/') for i in range(5)] + [f(f'/root-{i}.bin') for i in range(3)]}
    for i in range(5):
        tree[f'/d{i}/'] = [f(f'/d{i}/f{j}.bin') for j in range(7)] + [d(f'/d{i}/deep/'), parent('/')]
        tree[f'/d{i}/deep/'] = [f(f'/d{i}/deep/z.bin')]

    lister, downloader = run(tree, limit, reporter)

    expected_files = [e.location for entries in tree.values() for e in entries if e.is_file]
    assert sorted(downloader.fetched) == sorted(expected_files)
    assert len(downloader.fetched) == len(set(downloader.fetched))
    assert sorted(lister.calls) == sorted(tree)


@pytest.mark.parametrize('limit', [0, 4])
def test_listing_failure_is_isolated(limit, reporter, output):
    tree = {
        '/': [d('/bad/'), d('/good/'), f('/top.txt')],
        '/bad/': ListingError('/bad/', 'decode error'),
        '/good/': [f('/good/g.txt')],
    }
    lister, downloader = run(tree, limit, reporter)

    assert sorted(downloader.fetched) == ['/good/g.txt', '/top.txt']
    assert reporter.stats.listing_errors == 1
    assert '/bad/' in output.getvalue()


def test_root_listing_failure_dispatches_nothing(reporter):
    tree = {'/': ListingError('/', 'connection refused')}
    lister, downloader = run(tree, 2, reporter)
    assert downloader.fetched == []


@responses.activate
def test_second_run_downloads_nothing(tmp_path, reporter):
    tree = {
        '/docs/': [f('/docs/a.txt', 100), d('/docs/sub/'), parent('/')],
        '/docs/sub/': [f('/docs/sub/b.txt', 3)],
    }
    responses.add(responses.GET, BASE + '/docs/a.txt', body=b'a' * 100)
    responses.add(responses.GET, BASE + '/docs/sub/b.txt', body=b'bbb')
    downloads = tmp_path / 'downloads'

    def crawl_once():
        sink = io.StringIO()
        gate = ConcurrencyGate(2)
        downloader = Downloader(
            requests.Session(), UrlManifest(sink, reporter=reporter), BASE,
            output_dir=downloads, reporter=reporter, gate=gate,
        )
        run(tree, 2, reporter, downloader=downloader)
        return sorted(sink.getvalue().splitlines())

    expected = [BASE + '/docs/a.txt', BASE + '/docs/sub/b.txt']
    assert crawl_once() == expected
    assert len(responses.calls) == 2
    assert (downloads / 'docs' / 'sub' / 'b.txt').read_bytes() == b'bbb'

    assert crawl_once() == expected
    assert len(responses.calls) == 2
    assert reporter.stats.intact == 2
