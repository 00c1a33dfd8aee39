import asyncio
import itertools
from dataclasses import dataclass, field

import pytest
from aiohttp import web

from connectbox.retry import Throttle
from connectbox.session import (
    CMD_DEVICES,
    CMD_LOGIN,
    CMD_LOGOUT,
    CMD_TEMPERATURE,
    GETTER_ENDPOINT,
    LOGIN_PAGE_ENDPOINT,
    SESSION_COOKIE,
    SETTER_ENDPOINT,
    SessionClient,
)
from payloads import DEVICES_XML, LOGIN_HTML, TEMPERATURE_XML

PASSWORD = "hunter2"


@dataclass(frozen=True)
class CountingThrottle(Throttle):
    """Records every wait; pair with interval=0 to keep tests fast."""

    waits: list = field(default_factory=list)

    async def wait(self) -> None:
        self.waits.append(self.interval)
        await super().wait()


@dataclass(frozen=True)
class BlockingThrottle(Throttle):
    """Never comes back from wait(); lets a test cancel at the throttle boundary."""

    entered: asyncio.Event = field(default_factory=asyncio.Event)

    async def wait(self) -> None:
        self.entered.set()
        await asyncio.Event().wait()


class FakeRouter:
    """Just enough of the Connect Box web server to exercise the session handling.

    Knobs:
        expire_sessions: the next N getter calls answer with the login page
        stall_next: the next N requests hang for `stall_seconds`, token never rotates
        delay: every request takes this long but otherwise behaves
        fail_status: the next getter call answers with this status
        drop_cookie: the next getter call answers without a session cookie
        login_reply: override the body of a successful login
        devices_xml: devices reply; bytes are sent without a charset
    """

    def __init__(self, password: str = PASSWORD):
        self.password = password
        self._counter = itertools.count(1)
        self.token: str | None = None
        self.authenticated = False

        self.login_page_hits = 0
        self.logins = 0
        self.logouts = 0
        self.getter_calls: list[int] = []

        self.expire_sessions = 0
        self.stall_next = 0
        self.stall_seconds = 0.5
        self.delay = 0.0
        self.fail_status: int | None = None
        self.drop_cookie = False
        self.login_reply: str | None = None
        self.devices_xml = DEVICES_XML

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(LOGIN_PAGE_ENDPOINT, self.login_page)
        app.router.add_post(GETTER_ENDPOINT, self.getter)
        app.router.add_post(SETTER_ENDPOINT, self.setter)
        return app

    def _issue(self, response: web.Response) -> web.Response:
        self.token = str(next(self._counter))
        response.set_cookie(SESSION_COOKIE, self.token)
        return response

    async def _stalled(self) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.stall_next > 0:
            self.stall_next -= 1
            await asyncio.sleep(self.stall_seconds)
            return True
        return False

    async def login_page(self, request: web.Request) -> web.Response:
        if await self._stalled():
            return web.Response(text="too late")
        self.login_page_hits += 1
        self.authenticated = False
        return self._issue(web.Response(text=LOGIN_HTML, content_type="text/html"))

    async def setter(self, request: web.Request) -> web.Response:
        if await self._stalled():
            return web.Response(text="too late")
        form = await request.post()
        if form["token"] != self.token:
            return self._issue(web.Response(text=LOGIN_HTML, content_type="text/html"))

        fun = int(form["fun"])
        if fun == CMD_LOGIN:
            self.logins += 1
            if form.get("Password") != self.password:
                return self._issue(web.Response(text="idloginincorrect"))
            self.authenticated = True
            reply = self.login_reply or "successful;SID=1234567"
            return self._issue(web.Response(text=reply))
        if fun == CMD_LOGOUT:
            self.logouts += 1
            self.authenticated = False
            return self._issue(web.Response(text=""))
        return web.Response(status=400)

    async def getter(self, request: web.Request) -> web.Response:
        if await self._stalled():
            return web.Response(text="too late")
        form = await request.post()
        fun = int(form["fun"])
        self.getter_calls.append(fun)

        if self.fail_status is not None:
            status, self.fail_status = self.fail_status, None
            return web.Response(status=status)
        if self.drop_cookie:
            self.drop_cookie = False
            return web.Response(text=self.devices_xml, content_type="text/xml")

        valid = self.authenticated and form["token"] == self.token
        if self.expire_sessions > 0:
            self.expire_sessions -= 1
            valid = False
        if not valid:
            self.authenticated = False
            return self._issue(web.Response(text=LOGIN_HTML, content_type="text/html"))

        body = {CMD_DEVICES: self.devices_xml, CMD_TEMPERATURE: TEMPERATURE_XML}[fun]
        if isinstance(body, bytes):
            # Raw bytes go out as-is, with no charset in the Content-Type
            return self._issue(web.Response(body=body, content_type="text/xml"))
        return self._issue(web.Response(text=body, content_type="text/xml"))


@pytest.fixture
def fake_router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
async def router_server(aiohttp_server, fake_router):
    return await aiohttp_server(fake_router.app())


@pytest.fixture
def throttle() -> CountingThrottle:
    return CountingThrottle(0)


@pytest.fixture
async def make_client(router_server, throttle):
    """Factory for clients pointed at the fake router. Closed at teardown."""
    clients = []

    def factory(password: str = PASSWORD, timeout: float = 5) -> SessionClient:
        client = SessionClient(
            f"{router_server.host}:{router_server.port}",
            password,
            timeout=timeout,
            throttle=throttle,
        )
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.close()
