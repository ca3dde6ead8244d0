"""MCP server exposing asset analysis and HTML rewrite tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .config import CdnConfig
from .service import analyze_store, rewrite_response

logger = logging.getLogger("asset_cdn.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="asset-cdn")


@mcp.tool()
def analyze(store_url: str) -> List[str]:
    """Fetch a storefront page and return the local asset URLs it references."""
    response = analyze_store(store_url, CdnConfig.from_env())
    if not response.success:
        raise RuntimeError(response.message)
    return response.urls or []


@mcp.tool()
def rewrite(
    path: str,
    cdn_base_url: str,
    custom_urls: List[str],
    site_base_url: Optional[str] = None,
) -> str:
    """Rewrite asset URLs in an HTML file to point at ``cdn_base_url``."""
    source = Path(path).expanduser()
    if not source.exists():
        raise FileNotFoundError(f"HTML file does not exist: {source}")

    config = CdnConfig.from_env()
    config.cdn_base_url = cdn_base_url
    config.custom_urls = list(custom_urls)
    if site_base_url is not None:
        config.site_base_url = site_base_url
    result = rewrite_response(source.read_text(encoding="utf-8"), config)
    return result.html


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
