"""
Control server entrypoint.

Resolves configuration, initialises logging and serves the control API for a
headless player.  ``run()`` is the console script target.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from . import PlayerConfig
from .api.server import create_app
from .api.state import PlayerState
from .utils.logging import configure_logging

LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(state: PlayerState) -> AsyncIterator[None]:
    """
    Mount the player for the lifetime of the server and tear it down on exit.
    """

    LOG.info("Player lifespan starting")
    state.ensure_mounted()
    try:
        yield
    finally:
        try:
            state.close()
        finally:
            LOG.info("Player lifespan shutting down")


async def serve(config: PlayerConfig, log_level: str = "info") -> None:
    """
    Run the control API inside an asyncio loop.

    Parameters
    ----------
    config:
        Top level server configuration, including the bind address.
    log_level:
        Level passed to both the package logger and uvicorn.
    """

    import uvicorn

    configure_logging(log_level.upper())
    player_state = PlayerState(config)

    @asynccontextmanager
    async def app_lifespan(_app) -> AsyncIterator[None]:
        async with lifespan(player_state):
            yield

    app = create_app(state=player_state, config=config, lifespan=app_lifespan)
    server_config = uvicorn.Config(
        app=app,
        host=config.host,
        port=config.port,
        log_config=None,
        log_level=log_level.lower(),
        reload=False,
    )
    server = uvicorn.Server(config=server_config)

    def _handle_signal(signum: int, frame: Optional[object]) -> None:
        LOG.info("Received signal %s, shutting down server...", signum)
        server.should_exit = True

    for signame in ("SIGINT", "SIGTERM"):
        signal.signal(getattr(signal, signame), _handle_signal)

    await server.serve()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="wavesync headless player server")
    parser.add_argument("--profile", default="default", help="engine option profile to load")
    parser.add_argument("--host", default="127.0.0.1", help="bind host for the API server")
    parser.add_argument("--port", type=int, default=8080, help="bind port for the API server")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="log level for the server and player",
    )
    return parser.parse_args(argv)


def run(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    config = PlayerConfig(profile=args.profile, host=args.host, port=args.port)

    try:
        asyncio.run(serve(config=config, log_level=args.log_level))
    except KeyboardInterrupt:
        LOG.info("Server interrupted by user.")


if __name__ == "__main__":
    run()
