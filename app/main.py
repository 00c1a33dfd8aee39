#!/usr/bin/env python3
"""
Main / entry point for the Connect Box monitor.

"""
import asyncio
import signal
import sys

import structlog
from connectbox.demo import DemoRouter
from connectbox.poller import run
from connectbox.retry import Throttle
from connectbox.router import Router
from connectbox.session import SessionClient
from err.exceptions import AuthenticationRejectedError, ConfigError, ConnectBoxError
from prometheus_client import start_http_server
from util.config import Settings

log = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    # stdout belongs to the diff output / dashboard
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level.value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _stop_on_signals() -> asyncio.Event:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    return stop


async def _poll(router: Router, settings: Settings) -> None:
    stop = _stop_on_signals()
    await run(router, Throttle(settings.refresh_seconds), settings.tui, stop)


async def main(settings: Settings) -> int:
    """Main entry point."""
    log.info("Starting up", demo=settings.demo, tui=settings.tui)

    if settings.metrics_port is not None:
        server, _ = start_http_server(port=settings.metrics_port)
        log.info("Metrics server started", server=server.server_address)

    try:
        if settings.demo:
            await _poll(DemoRouter(), settings)
        elif settings.password is None:
            log.error("No password configured. Set CONNECTBOX_PASSWORD.")
            return 2
        else:
            log.debug("Setting up connection to router...", host=settings.host)
            async with SessionClient(
                settings.host,
                settings.password,
                timeout=settings.timeout_seconds,
                throttle=Throttle(settings.throttle_seconds),
            ) as router:
                await _poll(router, settings)
    except AuthenticationRejectedError as e:
        # Retrying won't fix a wrong password
        log.error(
            "Caught AuthenticationRejectedError. Check CONNECTBOX_PASSWORD.",
            error=str(e),
        )
        return 1
    except ConnectBoxError as e:
        log.error("Caught ConnectBoxError", error=str(e), status_code=e.status_code)
        return 1

    return 0


def cli() -> None:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)
    configure_logging(settings)
    sys.exit(asyncio.run(main(settings)))


if __name__ == "__main__":
    cli()
