import asyncio
import logging
import sys

import uvicorn

from .config import settings
from .console import OperatorConsole
from .logging_config import configure_logging
from .main import app

logger = logging.getLogger(__name__)


async def serve() -> bool:
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
    )
    serve_task = asyncio.create_task(server.serve())

    console_task = None
    if settings.CONSOLE_CONTROL:
        while not server.started and not serve_task.done():
            await asyncio.sleep(0.05)
        if server.started:
            console = OperatorConsole(app.state.quiz, on_quit=lambda: setattr(server, "should_exit", True))
            console_task = asyncio.create_task(console.run())

    try:
        await serve_task
    finally:
        if console_task is not None:
            console_task.cancel()
    return server.started


def main() -> int:
    configure_logging(settings.LOG_LEVEL)
    started = asyncio.run(serve())
    if not started:
        logger.error("Server did not start")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
