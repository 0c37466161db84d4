"""Command line entry point"""

import argparse
import sys

from .config import Settings, default_workers
from .errors import ManifestError
from .listing import BACKENDS
from .openindex import OpenIndexDownloader


def build_parser():
    parser = argparse.ArgumentParser(
        prog='openindex',
        description="OpenIndex - Recursive Directory Index Downloader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  openindex http://example.com/files/
  openindex http://example.com/files/ --url-only
  openindex http://example.com/files/ -w 8 -o mirror
  openindex http://example.com/pub/ --backend html --timeout 60

Running the same command again skips every file that is already complete.

WARNING: Only use on systems you own or have explicit permission to access.
        """
    )

    parser.add_argument('url', help='URL of the directory index to crawl')
    parser.add_argument('--url-only', action='store_true',
                       help='Only record file URLs in the manifest, do not download')
    parser.add_argument('-w', '--workers', type=int, default=default_workers(),
                       help='Concurrency limit (default: CPU count)')
    parser.add_argument('-o', '--output', default='downloads',
                       help='Output directory (default: downloads)')
    parser.add_argument('-m', '--manifest', default='urls.txt',
                       help='URL manifest file (default: urls.txt)')
    parser.add_argument('-b', '--backend', choices=sorted(BACKENDS), default='h5ai',
                       help='Directory listing backend (default: h5ai)')
    parser.add_argument('--timeout', type=float, default=30.0,
                       help='Request timeout in seconds (default: 30)')
    parser.add_argument('--user-agent', default=None,
                       help='Custom User-Agent string')
    parser.add_argument('--no-progress', action='store_true',
                       help='Disable the progress bar')
    return parser


def settings_from_args(args):
    settings = Settings(
        url=args.url,
        url_only=args.url_only,
        workers=args.workers,
        output_dir=args.output,
        manifest_path=args.manifest,
        backend=args.backend,
        timeout=args.timeout,
        progress=not args.no_progress
    )
    if args.user_agent:
        settings.user_agent = args.user_agent
    return settings


def main(argv=None):
    args = build_parser().parse_args(argv)

    print("=" * 60)
    print("WARNING: AUTHORIZED USE ONLY")
    print("=" * 60)
    print("This tool downloads files from web directories recursively.")
    print("Only use on systems you own or have explicit permission to access.")
    print("=" * 60)
    print()

    try:
        downloader = OpenIndexDownloader(settings_from_args(args))
        downloader.start_download()
    except KeyboardInterrupt:
        print("\n[!] Download interrupted by user")
        return 1
    except (ValueError, ManifestError) as e:
        print(f"[!] Error: {e}")
        return 1

    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
