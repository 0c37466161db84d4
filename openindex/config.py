"""Run settings and HTTP session construction"""

import os
from dataclasses import dataclass, field

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .listing import BACKENDS

DEFAULT_USER_AGENT = 'openindex/1.0 (+directory index downloader)'


def default_workers():
    return os.cpu_count() or 1


@dataclass
class Settings:
    url: str
    url_only: bool = False
    workers: int = field(default_factory=default_workers)
    output_dir: str = 'downloads'
    manifest_path: str = 'urls.txt'
    backend: str = 'h5ai'
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    chunk_size: int = 4096
    progress: bool = True

    def validate(self):
        if not self.url.startswith(('http://', 'https://')):
            raise ValueError("URL must start with http:// or https://")
        if self.workers < 0:
            raise ValueError(f"workers must be >= 0, got {self.workers}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk size must be positive, got {self.chunk_size}")
        if self.backend not in BACKENDS:
            raise ValueError(f"unknown backend {self.backend!r}, expected one of {sorted(BACKENDS)}")
        return self


def build_session(settings):
    """Session for connection reuse across all branches"""
    session = requests.Session()
    session.headers.update({
        'User-Agent': settings.user_agent,
        'Accept': '*/*',
    })

    # Follow redirects, but a failed request is never retried
    retry_strategy = Retry(total=None, connect=0, read=0, status=0, other=0, redirect=10)
    pool_size = max(1, settings.workers) + 1
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session
