"""MCP server exposing the image hunt as a tool."""

from __future__ import annotations

import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import HuntConfig
from .hunter import run_hunt
from .report import compose_report

logger = logging.getLogger("image_hunt.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="image-hunt")


@mcp.tool()
async def hunt(
    search_term: str,
    count: int = 10,
    download_dir: str = "downloads",
    fallback_to_thumbnails: bool = False,
) -> str:
    """Download up to ``count`` quality-checked images for a term and return the report."""

    config = HuntConfig(
        download_dir=Path(download_dir).expanduser().resolve(),
        max_results=count,
        fallback_to_thumbnails=fallback_to_thumbnails,
    )
    outcome = await run_hunt(search_term, config, target=count)
    return compose_report(outcome)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
