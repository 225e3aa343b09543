"""Module executed when running ``python -m channelcycle``."""

from __future__ import annotations

import argparse
import asyncio
import logging

import uvicorn

from app.client.runner import run_viewer
from app.config import settings


def main(argv: list[str] | None = None) -> None:
    """Start the status proxy, or the rotation viewer with ``viewer``."""

    parser = argparse.ArgumentParser(prog="channelcycle")
    parser.add_argument(
        "command",
        nargs="?",
        choices=("serve", "viewer"),
        default="serve",
        help="run the status proxy (default) or the headless rotation viewer",
    )
    args = parser.parse_args(argv)

    if args.command == "viewer":
        logging.basicConfig(level=logging.INFO)
        try:
            asyncio.run(run_viewer(settings))
        except KeyboardInterrupt:  # pragma: no cover - interactive shutdown
            pass
        return

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
