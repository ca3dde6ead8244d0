"""Command-line entry point for asset analysis, upload and rewriting."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .config import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_GITHUB_BRANCH,
    CdnConfig,
    GithubConfig,
    parse_url_list,
)
from .fetcher import render_page
from .service import analyze_store, rewrite_response, upload_assets
from .uploader import GithubUploader

logger = logging.getLogger("asset_cdn.cli")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--disabled",
        action="store_true",
        help="Treat the integration as disabled (useful for dry runs of the flow)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_analyze_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("store_url", help="Storefront page to scan for asset URLs")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_FETCH_TIMEOUT,
        help="Request timeout in seconds",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Render the page in headless Chromium before scanning",
    )
    _add_common_arguments(parser)


def _add_upload_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "urls",
        nargs="*",
        help="Asset URLs to upload (e.g. /static/frontend/.../app.js)",
    )
    parser.add_argument(
        "--urls-file",
        type=Path,
        help="File holding a JSON array or one URL per line",
    )
    parser.add_argument(
        "--static-dir",
        type=Path,
        default=Path("pub/static"),
        help="Local directory served under /static/",
    )
    parser.add_argument(
        "--media-dir",
        type=Path,
        default=Path("pub/media"),
        help="Local directory served under /media/",
    )
    parser.add_argument("--repository", help="GitHub repository as owner/name")
    parser.add_argument("--branch", default=None, help="Target branch")
    parser.add_argument("--token", default=None, help="GitHub token (defaults to GITHUB_TOKEN)")
    _add_common_arguments(parser)


def _add_rewrite_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="HTML file to rewrite")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the rewritten HTML (defaults to STDOUT)",
    )
    parser.add_argument("--cdn-base-url", default=None, help="CDN base URL")
    parser.add_argument("--site-url", default=None, help="Unsecure storefront base URL")
    parser.add_argument("--secure-site-url", default=None, help="Secure storefront base URL")
    parser.add_argument(
        "--custom-url",
        action="append",
        default=[],
        help="Asset URL to move to the CDN; repeat in load order",
    )
    parser.add_argument(
        "--custom-urls-file",
        type=Path,
        help="File holding a JSON array or one URL per line",
    )
    parser.add_argument(
        "--request-path",
        default="",
        help="Request path of the response; admin paths are left untouched",
    )
    parser.add_argument(
        "--ledger",
        action="store_true",
        help="Print the rewrite ledger as JSON to STDERR",
    )
    _add_common_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Discover storefront assets, mirror them to GitHub and point HTML at a CDN.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    _add_analyze_arguments(
        subparsers.add_parser("analyze", help="List asset URLs referenced by a page")
    )
    _add_upload_arguments(
        subparsers.add_parser("upload", help="Upload local assets to the GitHub CDN origin")
    )
    _add_rewrite_arguments(
        subparsers.add_parser("rewrite", help="Rewrite asset URLs in an HTML file")
    )
    return parser.parse_args(list(sys.argv[1:] if argv is None else argv))


def _load_config(args: argparse.Namespace) -> CdnConfig:
    config = CdnConfig.from_env()
    if args.disabled:
        config.enabled = False
    config.debug = config.debug or args.verbose
    return config


def _emit(payload: dict) -> None:
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    sys.stdout.flush()


def _run_analyze(args: argparse.Namespace) -> int:
    config = _load_config(args)
    config.fetch_timeout = args.timeout

    fetch = None
    if args.render:
        def fetch(url: str) -> str:
            return asyncio.run(render_page(url, timeout=config.fetch_timeout))

    start = time.perf_counter()
    response = analyze_store(args.store_url, config, fetch=fetch)
    logger.debug("Analysis finished in %.2fs", time.perf_counter() - start)
    _emit(response.to_dict())
    return 0 if response.success else 1


def _run_upload(args: argparse.Namespace) -> int:
    config = _load_config(args)
    urls = list(args.urls)
    if args.urls_file:
        urls.extend(parse_url_list(args.urls_file.read_text(encoding="utf-8")))

    github = config.github
    if args.repository or args.token:
        token = args.token or (github.token if github else "")
        repository = args.repository or (github.repository if github else "")
        if token and repository:
            github = GithubConfig(
                token=token,
                repository=repository,
                branch=args.branch or (github.branch if github else DEFAULT_GITHUB_BRANCH),
            )
    elif github and args.branch:
        github.branch = args.branch

    uploader = GithubUploader(github) if github else None
    response = upload_assets(urls, config, uploader, args.static_dir, args.media_dir)
    _emit(response.to_dict())
    return 0 if response.success else 1


def _run_rewrite(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if args.cdn_base_url is not None:
        config.cdn_base_url = args.cdn_base_url
    if args.site_url is not None:
        config.site_base_url = args.site_url
    if args.secure_site_url is not None:
        config.site_secure_base_url = args.secure_site_url
    custom_urls = list(args.custom_url)
    if args.custom_urls_file:
        custom_urls.extend(parse_url_list(args.custom_urls_file.read_text(encoding="utf-8")))
    if custom_urls:
        config.custom_urls = custom_urls

    html = args.input.read_text(encoding="utf-8")
    result = rewrite_response(html, config, request_path=args.request_path)

    if args.output:
        args.output.write_text(result.html, encoding="utf-8")
        logger.info("Saved rewritten HTML to %s", args.output)
    else:
        sys.stdout.write(result.html)
        sys.stdout.flush()
    if args.ledger:
        sys.stderr.write(json.dumps(result.ledger.as_dict(), indent=2) + "\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    if args.command == "analyze":
        return _run_analyze(args)
    if args.command == "upload":
        return _run_upload(args)
    return _run_rewrite(args)


if __name__ == "__main__":
    sys.exit(main())
