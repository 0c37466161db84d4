"""Top level run: open the manifest, crawl from the root, wait for every branch"""

from pathlib import Path

from .config import build_session
from .crawler import Crawler
from .downloader import Downloader
from .errors import ManifestError
from .gate import ConcurrencyGate, TaskPool
from .listing import make_lister
from .manifest import UrlManifest
from .paths import split_root
from .progress import Reporter


class OpenIndexDownloader:
    def __init__(self, settings, session=None, reporter=None):
        self.settings = settings.validate()
        self.base_url, self.root = split_root(settings.url)
        self.output_dir = Path(settings.output_dir)
        self.session = session or build_session(settings)
        self.reporter = reporter or Reporter(progress=settings.progress)
        self.gate = ConcurrencyGate(settings.workers)
        self.pool = TaskPool(self.gate, reporter=self.reporter)

    def start_download(self):
        """Crawl the whole tree and return the final statistics"""
        settings = self.settings
        self.reporter.success(f"Starting recursive crawl from: {self.base_url}{self.root}")
        self.reporter.success(f"Output directory: {self.output_dir}")
        self.reporter.success(f"Manifest: {settings.manifest_path}")
        self.reporter.success(f"Workers: {settings.workers}")
        if settings.url_only:
            self.reporter.info("URL-only mode, files will not be downloaded")

        # Fatal: nothing is crawled without a manifest
        try:
            manifest = UrlManifest.create(settings.manifest_path, reporter=self.reporter)
        except ManifestError:
            self.reporter.close()
            raise

        with manifest:
            lister = make_lister(settings.backend, self.session, self.base_url, timeout=settings.timeout)
            downloader = Downloader(
                self.session,
                manifest,
                self.base_url,
                output_dir=self.output_dir,
                url_only=settings.url_only,
                reporter=self.reporter,
                gate=self.gate,
                timeout=settings.timeout,
                chunk_size=settings.chunk_size
            )
            crawler = Crawler(lister, downloader, self.pool, reporter=self.reporter)

            try:
                crawler.crawl(self.root)
                self.reporter.info("Discovery dispatched, waiting for running branches...")
                self.pool.join()
            finally:
                self.reporter.close()

        self.reporter.print_statistics(self.base_url + self.root, self.output_dir)
        return self.reporter.stats
