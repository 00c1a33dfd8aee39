"""
Error classification and the throttle used both between retries and between polls.

The router's HTTP server is flaky: it refuses connections while rebooting, stalls for
10+ seconds when building the device list and sometimes drops the socket half way
through a reply.
None of that is worth giving up over so those failures are TRANSIENT and retried
forever.
Anything else means the router said something we don't understand (PROTOCOL) or
refused the password (AUTH) and retrying would just loop on the same answer.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

import structlog
from aiohttp import (
    ClientConnectionResetError,
    ClientOSError,
    ClientPayloadError,
    ServerDisconnectedError,
    ServerTimeoutError,
)
from err.exceptions import AuthenticationRejectedError

log = structlog.get_logger(__name__)


class ErrorKind(Enum):
    """Closed set of outcomes the retry loop dispatches on."""

    TRANSIENT = "transient"
    PROTOCOL = "protocol"
    AUTH = "auth"


# Connection refused or unreachable (ClientConnectorError is a ClientOSError), socket
#   timeouts, the server hanging up mid-reply and a reply body cut short.
_TRANSIENT_ERRORS = (
    # A kept-alive connection the router already closed; not a ClientOSError
    ClientConnectionResetError,
    ClientOSError,
    ServerTimeoutError,
    ServerDisconnectedError,
    ClientPayloadError,
    # ClientTimeout(total=...) expiring surfaces as a bare timeout
    asyncio.TimeoutError,
)


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised at the transport boundary onto an ErrorKind."""
    if isinstance(error, AuthenticationRejectedError):
        return ErrorKind.AUTH
    if isinstance(error, _TRANSIENT_ERRORS):
        return ErrorKind.TRANSIENT
    return ErrorKind.PROTOCOL


@dataclass(frozen=True)
class Throttle:
    """Fixed wait, no backoff growth.

    The wait is the cancellation point for retry loops and poll loops.
    """

    interval: float

    async def wait(self) -> None:
        log.debug("Throttling...", seconds=self.interval)
        await asyncio.sleep(self.interval)
