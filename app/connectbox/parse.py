"""
Parsing functions that turn the router's replies into snapshot types.
    Only tested against the Connect Box web interface; other firmwares of the same
    family probably answer with the same documents but I have no way of checking.

"""

import structlog
from bs4 import BeautifulSoup, Tag
from err.exceptions import ProtocolViolationError

from connectbox.models import ClientInfo, CmState, LanUserTable

log = structlog.get_logger(__name__)

# When the session is gone the router answers get requests with the full login page
HTML_MARKER = "<!doctype html>"

LOGIN_SUCCESS_PREFIX = "successful;"
LOGIN_INCORRECT = "idloginincorrect"


def is_login_page(text: str) -> bool:
    """Check if the reply is the HTML login page instead of the requested XML"""
    return text.lstrip()[: len(HTML_MARKER)].lower() == HTML_MARKER


def is_login_incorrect(text: str) -> bool:
    """The router has exactly one way of saying 'wrong password'"""
    return text == LOGIN_INCORRECT


def is_login_successful(text: str) -> bool:
    """Successful login replies look like `successful;SID=123456789`"""
    return text.startswith(LOGIN_SUCCESS_PREFIX)


# The XML is parsed with the same html.parser builder used elsewhere rather than
#   pulling lxml in just for this; the one side effect is that every tag name comes
#   back lower-cased.
##
def parse_lan_user_table(xml: str) -> LanUserTable:
    """Decode the reply to the 'devices' get-command.

    Only clients under <WIFI> are reported; the router also has an <Ethernet> section
    that it fills inconsistently between firmware versions.
    """
    root = _soup(xml).find("lanusertable")
    if not isinstance(root, Tag):
        raise ProtocolViolationError("No LanUserTable element in response", payload=xml)

    clients: tuple[ClientInfo, ...] = ()
    if isinstance(wifi := root.find("wifi", recursive=False), Tag):
        entries = wifi.find_all("clientinfo", recursive=False)
        clients = tuple(_parse_client(ci, xml) for ci in entries)

    table = LanUserTable(
        customer=_required_text(root, "customer", xml),
        total_client=_required_int(root, "totalclient", xml),
        clients=clients,
    )
    log.debug(
        "LanUserTable",
        customer=table.customer,
        total=table.total_client,
        parsed=len(clients),
    )
    return table


def parse_cm_state(xml: str) -> CmState:
    """Decode the reply to the 'temperature' get-command."""
    root = _soup(xml).find("cmstate")
    if not isinstance(root, Tag):
        raise ProtocolViolationError("No cmstate element in response", payload=xml)

    addresses: tuple[str, ...] = ()
    if isinstance(wan := root.find("wan_ipv6_addr", recursive=False), Tag):
        addresses = tuple(
            entry.text.strip()
            for entry in wan.find_all("wan_ipv6_addr_entry", recursive=False)
            if entry.text.strip()
        )

    return CmState(
        # Yes, "Tunner". That's what the firmware calls it.
        tuner_temperature=_required_int(root, "tunnertemperature", xml),
        temperature=_required_int(root, "temperature", xml),
        oper_state=_required_text(root, "operstate", xml),
        wan_ipv6_addresses=addresses,
    )


def _parse_client(node: Tag, xml: str) -> ClientInfo:
    return ClientInfo(
        mac=_required_text(node, "macaddr", xml),
        hostname=_required_text(node, "hostname", xml),
        index=_required_int(node, "index", xml),
        ipv4=_optional_text(node, "ipv4addr"),
        ipv6=_optional_text(node, "ipv6addr"),
        interface=_required_text(node, "interface", xml),
        interfaceid=_required_int(node, "interfaceid", xml),
        method=_required_int(node, "method", xml),
        lease_time=_required_text(node, "leasetime", xml),
        speed=_required_int(node, "speed", xml),
    )


def _soup(xml: str) -> BeautifulSoup:
    return BeautifulSoup(xml, "html.parser")


def _optional_text(node: Tag, name: str) -> str | None:
    # Missing and empty elements both mean "no address"
    if (child := node.find(name, recursive=False)) is None:
        return None
    return child.text.strip() or None


def _required_text(node: Tag, name: str, xml: str) -> str:
    if (child := node.find(name, recursive=False)) is None:
        raise ProtocolViolationError(f"Missing <{name}> in <{node.name}>", payload=xml)
    return child.text.strip()


def _required_int(node: Tag, name: str, xml: str) -> int:
    raw = _required_text(node, name, xml)
    try:
        return int(raw)
    except ValueError as e:
        raise ProtocolViolationError(
            f"<{name}> in <{node.name}> is not an integer: {raw!r}", payload=xml
        ) from e
