#!/usr/bin/env python3
"""ACS demographics MCP server entry point with graceful startup/shutdown."""

import asyncio
import signal
import sys
import time
from typing import Optional

from mcp.server import NotificationOptions
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server

from . import __version__
from .client import close_census_client
from .config import settings
from .server import app, get_server_status
from .utils.logger import get_logger, setup_logging

_shutdown_event: Optional[asyncio.Event] = None
_startup_time: Optional[float] = None


async def startup() -> None:
    """Perform startup tasks."""
    global _startup_time
    _startup_time = time.time()

    logger = get_logger("main")
    logger.info(
        "Starting ACS Demographics MCP Server",
        extra={
            "version": __version__,
            "environment": settings.environment,
            "debug": settings.debug,
        },
    )

    status = await get_server_status()
    if status["api_key_source"] is None:
        # Loads still answer with the sample dataset; lookups will fail
        logger.warning(
            "No Census API key configured; set CENSUS_API_KEY or use validate_api_key"
        )
    else:
        logger.info(
            "Census API key found", extra={"api_key_source": status["api_key_source"]}
        )


async def shutdown() -> None:
    """Perform graceful shutdown tasks."""
    logger = get_logger("main")
    logger.info("Starting graceful shutdown...")

    try:
        await close_census_client()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)

    if _startup_time:
        uptime = time.time() - _startup_time
        logger.info(f"Server shutdown completed. Uptime: {uptime:.2f} seconds")
    else:
        logger.info("Server shutdown completed")


def signal_handler(signum: int, frame: Optional[object]) -> None:
    """Handle shutdown signals."""
    logger = get_logger("main")
    logger.info(f"Received {signal.Signals(signum).name} signal, initiating shutdown...")
    if _shutdown_event is not None:
        _shutdown_event.set()


async def main() -> None:
    """Start the ACS demographics MCP server."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    logger = setup_logging(
        level=settings.log_level,
        format_type=settings.log_format,
        include_extra=settings.log_include_extra,
    )

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await startup()

        async with stdio_server() as (read_stream, write_stream):
            logger.info("MCP server started, waiting for connections...")

            server_task = asyncio.create_task(
                app.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name="acs-demographics-server",
                        server_version=__version__,
                        capabilities=app.get_capabilities(
                            notification_options=NotificationOptions(),
                            experimental_capabilities={},
                        ),
                    ),
                )
            )
            shutdown_task = asyncio.create_task(_shutdown_event.wait())

            done, pending = await asyncio.wait(
                [server_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED,
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if server_task in done:
                try:
                    await server_task
                except Exception as e:
                    logger.error(f"Server task failed: {e}", exc_info=True)
                    raise

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server crashed: {e}", exc_info=True)
        raise
    finally:
        await shutdown()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[INFO] Server stopped by user", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"[ERROR] Server crashed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
