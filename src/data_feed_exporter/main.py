import asyncio
import signal
import sys

import uvicorn

from .app import create_app
from .settings import get_settings

SETTINGS = get_settings()


async def run_server() -> None:
    """Serve metrics and health endpoints until a termination signal arrives.

    Shutdown runs the FastAPI lifespan cleanup, which stops the polling jobs.
    """
    config = uvicorn.Config(
        create_app(),
        host="0.0.0.0",
        port=SETTINGS.server.metrics_port,
        log_config=None,
    )

    server = uvicorn.Server(config)

    await server.serve()


def run() -> None:
    """Run the exporter with graceful SIGTERM/SIGINT handling."""

    def _signal_handler(signum: int, frame: object) -> None:
        raise KeyboardInterrupt(f"Received signal {signum}")

    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
