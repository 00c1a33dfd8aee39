"""
Canned router for trying out the diff output and the dashboard without a Connect Box
on the network.
"""

from dataclasses import replace

from connectbox.models import ClientInfo, CmState, LanUserTable
from connectbox.router import Router


def _client(
    mac: str,
    hostname: str,
    ipv4: str | None,
    ipv6: str | None,
    lease_time: str,
    speed: int,
) -> ClientInfo:
    return ClientInfo(
        mac=mac,
        hostname=hostname,
        index=0,
        ipv4=ipv4,
        ipv6=ipv6,
        interface="foo",
        interfaceid=0,
        method=0,
        lease_time=lease_time,
        speed=speed,
    )


def _table(clients: list[ClientInfo]) -> LanUserTable:
    return LanUserTable(
        customer="Customer", total_client=len(clients), clients=tuple(clients)
    )


def _tick(clients: list[ClientInfo], *leases: str) -> list[ClientInfo]:
    return [replace(c, lease_time=lease) for c, lease in zip(clients, leases)]


def demo_states() -> list[LanUserTable]:
    """Eight polls worth of churn.

    Leases tick, speeds move, addresses come and go, a client leaves and one joins.
    """
    states = []

    clients = [
        _client("AB:CD:EF:01:23:45", "laptop", "192.168.0.1", None, "00:00:47:57", 1),
        _client(
            "CD:EF:01:23:45:AB",
            "My Super Phone",
            "192.168.0.42",
            "2001:2345:6789:abcd:ef01:1010:3564:2",
            "00:00:38:18",
            123,
        ),
        _client(
            "EF:01:23:45:AB:CD",
            "Desktop",
            None,
            "2001:2345:6789:abcd:ef01:1010:3564:5",
            "00:00:52:45",
            42,
        ),
    ]
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:54", "00:00:38:15", "00:00:52:42")
    clients[1] = replace(clients[1], speed=234)
    clients[2] = replace(clients[2], speed=23)
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:51", "00:00:38:12", "00:00:52:39")
    clients[0] = replace(
        clients[0], speed=17, ipv6="2001:2345:6789:abcd:ef01:1010:3564:888"
    )
    clients[1] = replace(clients[1], ipv4=None)
    clients[2] = replace(clients[2], speed=67)
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:48", "00:00:38:09", "00:00:52:36")
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:45", "00:00:38:09", "00:00:52:33")
    clients[2] = replace(clients[2], speed=128)
    del clients[1]
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:42", "00:00:52:30")
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:39", "00:00:52:27")
    tv = _client(
        "01:23:45:AB:CD:EF", "Connected TV", "192.168.0.123", None, "00:00:59:59", 123
    )
    clients.append(tv)
    states.append(_table(clients))

    clients = _tick(clients, "00:00:47:36", "00:00:52:24", "00:00:59:56")
    states.append(_table(clients))

    return states


class DemoRouter(Router):
    """Cycles through `demo_states()` forever, one state per devices() call."""

    def __init__(self):
        self._states = demo_states()
        self._i = 0

    async def devices(self) -> LanUserTable:
        state = self._states[self._i]
        self._i = (self._i + 1) % len(self._states)
        return state

    async def temperature(self) -> CmState:
        return CmState(
            tuner_temperature=12,
            temperature=34,
            oper_state="foo",
            wan_ipv6_addresses=("2001:2345:6789:abcd::1",),
        )

    async def logout(self) -> None:
        return None
