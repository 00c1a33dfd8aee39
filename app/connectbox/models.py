"""Snapshot types decoded from the router's XML replies.

Everything here is frozen; a poll produces a fresh set of values and nothing downstream
mutates them.
"""

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class ClientInfo:
    """One device from the router's LAN client table.

    `mac` is the only stable identity across polls; everything else can change between
    two reads.
    """

    mac: str
    hostname: str
    index: int
    ipv4: str | None
    ipv6: str | None
    interface: str
    interfaceid: int
    method: int
    lease_time: str
    speed: int


# Declaration order is the order fields are compared and reported in diffs
CLIENT_FIELDS = tuple(f.name for f in fields(ClientInfo))


@dataclass(frozen=True)
class LanUserTable:
    """The LAN client table as reported.

    `clients` keeps the router's order, which is NOT sorted.
    """

    customer: str
    total_client: int
    clients: tuple[ClientInfo, ...] = ()


@dataclass(frozen=True)
class CmState:
    """Cable modem state: temperatures, operating state and WAN side IPv6 addresses."""

    tuner_temperature: int
    temperature: int
    oper_state: str
    wan_ipv6_addresses: tuple[str, ...] = ()
