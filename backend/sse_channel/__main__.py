"""Entry point: python -m sse_channel"""

from __future__ import annotations

import argparse
import asyncio
import signal
from typing import TYPE_CHECKING

import uvicorn

from .config import settings

if TYPE_CHECKING:
    from fastapi import FastAPI


async def run_server(app: FastAPI, host: str, port: int) -> None:
    """Run the server, ending open streams before uvicorn shuts down."""
    config = uvicorn.Config(app, host=host, port=port, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)

    loop = asyncio.get_running_loop()

    def handle_exit() -> None:
        # Open streams would otherwise keep uvicorn waiting forever
        app.state.hub.close_all()
        server.should_exit = True

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_exit)

    await server.serve()


def main() -> None:
    parser = argparse.ArgumentParser(description="SSE channel demo server")
    parser.add_argument("--host", type=str, default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument(
        "--no-providers",
        action="store_true",
        help="Do not feed the demo channels with generated data",
    )
    args = parser.parse_args()

    from .main import create_app

    app = create_app(start_providers=not args.no_providers)
    asyncio.run(run_server(app, args.host, args.port))


if __name__ == "__main__":
    main()
