"""
Session-managed client for the Connect Box web interface.

The web UI is a pile of XHR calls against two endpoints, getter.xml and setter.xml,
each taking a numeric 'fun' command code and a token.
The token rides along in a `sessionToken` cookie and the router hands out a new one on
EVERY reply, so the one we send next must always be the one we got last.
Get the order wrong and the router quietly answers with its login page instead of XML.
"""

import asyncio
from types import TracebackType
from typing import Awaitable, Callable, TypeVar

import structlog
from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout, CookieJar
from err.exceptions import (
    AuthenticationRejectedError,
    ConnectBoxError,
    ProtocolViolationError,
)
from util.const import REQUEST_HEADERS

from connectbox import metrics, parse
from connectbox.models import CmState, LanUserTable
from connectbox.retry import ErrorKind, Throttle, classify_error
from connectbox.router import Router

log = structlog.get_logger(__name__)

LOGIN_PAGE_ENDPOINT = "/common_page/login.html"
GETTER_ENDPOINT = "/xml/getter.xml"
SETTER_ENDPOINT = "/xml/setter.xml"

SESSION_COOKIE = "sessionToken"

# Agreed with the firmware; not negotiable
CMD_LOGIN = 15
CMD_LOGOUT = 16
CMD_DEVICES = 123
CMD_TEMPERATURE = 136

T = TypeVar("T")


class SessionClient(Router):
    """Talks to one router over one session.

    Requests are strictly sequential; the router only tracks a single live token so two
    requests in flight would race each other for it.

    Usage:
        async with SessionClient("192.168.0.1", password) as router:
            table = await router.devices()
    """

    def __init__(
        self,
        host: str,
        password: str,
        timeout: float = 10,
        throttle: Throttle | None = None,
    ):
        self._base_url = f"http://{host}"
        self._password = password
        self._timeout = ClientTimeout(total=timeout)
        self._throttle = throttle if throttle is not None else Throttle(3)
        self._session: ClientSession | None = None
        # None means Unauthenticated
        self._token: str | None = None

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    async def __aenter__(self) -> "SessionClient":
        try:
            await self.reset()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Drop the token and the HTTP session.

        Does NOT log out; that is the caller's call.
        """
        self._token = None
        if self._session is not None:
            await self._session.close()
            self._session = None

    ##
    # Router
    ##
    async def devices(self) -> LanUserTable:
        xml = await self._get(CMD_DEVICES)
        log.debug("Devices XML", xml=xml)
        return self._decode("devices", parse.parse_lan_user_table, xml)

    async def temperature(self) -> CmState:
        xml = await self._get(CMD_TEMPERATURE)
        log.debug("Temperature XML", xml=xml)
        return self._decode("temperature", parse.parse_cm_state, xml)

    async def logout(self) -> None:
        if self._token is None:
            log.debug("Not logged in; nothing to log out of.")
            return
        log.info("Logging out...")
        await self._set(CMD_LOGOUT, {})
        self._token = None

    ##
    # Handshake
    ##
    async def reset(self) -> None:
        """(Re-)establish the session.

        Fetch the login page for a first token, then log in with it.
        """
        log.debug("Resetting state...")
        self._token = None
        await self._index()
        await self._login()

    async def _index(self) -> None:
        log.debug("Fetching login page...")
        await self._with_retry(LOGIN_PAGE_ENDPOINT, self._index_once)

    async def _index_once(self) -> None:
        with metrics.s_meta_request_time.labels(LOGIN_PAGE_ENDPOINT).time():
            async with self._http().get(LOGIN_PAGE_ENDPOINT) as resp:
                self._update_token(resp, LOGIN_PAGE_ENDPOINT)

    async def _login(self) -> None:
        log.debug("Logging in...")
        text = await self._set(
            CMD_LOGIN, {"Username": "NULL", "Password": self._password}
        )

        if parse.is_login_incorrect(text):
            self._token = None
            raise AuthenticationRejectedError(
                "Router rejected the password.", payload=text
            )

        if not parse.is_login_successful(text):
            self._token = None
            raise ProtocolViolationError(
                f"Unexpected login result! Received: {text!r}", payload=text
            )

        log.info("Logged in.")

    ##
    # RPCs
    ##
    async def _get(self, function: int) -> str:
        if self._token is None:
            await self.reset()

        while True:
            text = await self._with_retry(
                GETTER_ENDPOINT, lambda: self._get_once(function)
            )
            if not parse.is_login_page(text):
                return text
            # The router forgot about us and sent the login page instead.
            # Log in again and re-ask.
            log.debug("HTML", html=text)
            log.warning("Received an HTML page. Resetting...", function=function)
            metrics.c_meta_session_resets.inc()
            await self.reset()

    async def _get_once(self, function: int) -> str:
        form = {"token": self._token or "", "fun": str(function)}
        with metrics.s_meta_request_time.labels(GETTER_ENDPOINT).time():
            async with self._http().post(GETTER_ENDPOINT, data=form) as resp:
                self._update_token(resp, GETTER_ENDPOINT)
                # Decoded lossily; hostnames are whatever the devices announce
                return await resp.text(errors="replace")

    async def _set(self, function: int, params: dict[str, str]) -> str:
        return await self._with_retry(
            SETTER_ENDPOINT, lambda: self._set_once(function, params)
        )

    async def _set_once(self, function: int, params: dict[str, str]) -> str:
        # token and fun must come first; the web UI always sends them that way
        form = {"token": self._token or "", "fun": str(function), **params}
        with metrics.s_meta_request_time.labels(SETTER_ENDPOINT).time():
            async with self._http().post(SETTER_ENDPOINT, data=form) as resp:
                self._update_token(resp, SETTER_ENDPOINT)
                return await resp.text(errors="replace")

    ##
    # Plumbing
    ##
    async def _with_retry(
        self, endpoint: str, operation: Callable[[], Awaitable[T]]
    ) -> T:
        """Run `operation` until it succeeds or fails with something not worth retrying.

        There is no retry limit; callers that want one wrap this in their own timeout
        and cancel. The throttle wait is where that cancellation lands.
        """
        while True:
            try:
                return await self._exchange(operation)
            except (ClientError, asyncio.TimeoutError, ConnectBoxError) as e:
                if classify_error(e) is not ErrorKind.TRANSIENT:
                    if isinstance(e, ConnectBoxError):
                        raise
                    raise ProtocolViolationError(
                        f"Request to {endpoint} failed: {e!r}"
                    ) from e

                metrics.c_meta_retries.labels(endpoint).inc()
                log.warning(
                    "Connect error. Retrying...",
                    endpoint=endpoint,
                    error=repr(e),
                    retry_in=self._throttle.interval,
                )
                await self._throttle.wait()

    @staticmethod
    async def _exchange(operation: Callable[[], Awaitable[T]]) -> T:
        """Run one request/response cycle to completion even if our caller is cancelled.

        Abandoning a request half way would leave us holding a token the router has
        already replaced.
        The cancellation is re-raised once the reply (and its token) has been dealt
        with.
        """
        task = asyncio.ensure_future(operation())
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait({task})
            # Caller is leaving either way; collect the outcome so it isn't reported as
            #   never retrieved
            if not task.cancelled():
                task.exception()
            raise

    def _update_token(self, resp: ClientResponse, endpoint: str) -> None:
        """Every reply carries the next token.

        No token or non 200/OK means we can't carry on.
        """
        metrics.c_meta_request_result.labels(resp.status, endpoint).inc()
        if resp.status != 200:
            raise ProtocolViolationError(
                f"Invalid response (status = {resp.status}).", status_code=resp.status
            )

        cookie = resp.cookies.get(SESSION_COOKIE)
        if cookie is None:
            raise ProtocolViolationError(
                f"Couldn't find a {SESSION_COOKIE} cookie in the response.",
                status_code=resp.status,
            )
        log.debug("Session token", token=cookie.value)
        self._token = cookie.value

    def _decode(self, target: str, decoder: Callable[[str], T], xml: str) -> T:
        try:
            result = decoder(xml)
        except ProtocolViolationError:
            metrics.c_meta_parse_result.labels(target, False).inc()
            log.error("Failed to decode router reply.", target=target)
            raise
        metrics.c_meta_parse_result.labels(target, True).inc()
        return result

    def _http(self) -> ClientSession:
        if self._session is None:
            self._session = ClientSession(
                base_url=self._base_url,
                headers=REQUEST_HEADERS,
                timeout=self._timeout,
                # unsafe=True: tell aiohttp to allow cookies on IP addresses
                cookie_jar=CookieJar(unsafe=True),
            )
        return self._session
