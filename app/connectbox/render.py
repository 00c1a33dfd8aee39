"""Plain text rendering for the non-dashboard mode. Purely a consumer of the diff."""

from connectbox.diff import DeltaKind, FieldChange, LanTableDiff
from connectbox.models import ClientInfo, CmState, LanUserTable


def format_client(client: ClientInfo) -> str:
    ipv4 = client.ipv4 or "-"
    ipv6 = client.ipv6 or "-"
    return (
        f"{client.mac}  {ipv4:<18} {ipv6:<40} {client.speed:>5}  "
        f"{client.lease_time:<12} {client.hostname}"
    )


def format_table(table: LanUserTable) -> str:
    lines = [f"Customer: {table.customer}", f"Total clients: {table.total_client}"]
    for client in sorted(table.clients, key=lambda c: c.mac):
        lines.append(f"  {format_client(client)}")
    return "\n".join(lines)


def format_cm_state(state: CmState) -> str:
    lines = [
        f"Tuner temperature: {state.tuner_temperature}",
        f"Temperature: {state.temperature}",
        f"Operating state: {state.oper_state}",
    ]
    lines.extend(f"WAN IPv6: {addr}" for addr in state.wan_ipv6_addresses)
    return "\n".join(lines)


def _arrow(change: FieldChange) -> str:
    line = f"{change.name}: {change.old!r} => {change.new!r}"
    if change.trend is not None:
        line += f" ({change.trend.value})"
    return line


def format_diff(diff: LanTableDiff) -> str:
    """Empty string when nothing changed.

        - <client>          removed
        + <client>          added
        ~ <mac> <hostname>  changed, followed by one `field: old => new` line
                            per changed field
    """
    if diff.is_empty:
        return ""

    lines = []
    for scalar in (diff.customer, diff.total_client):
        if scalar is not None:
            lines.append(_arrow(scalar))

    for entry in diff.entries:
        if entry.kind is DeltaKind.REMOVED:
            lines.append(f"- {format_client(entry.client)}")
        elif entry.kind is DeltaKind.ADDED:
            lines.append(f"+ {format_client(entry.client)}")
        elif entry.kind is DeltaKind.CHANGED:
            lines.append(f"~ {entry.mac} {entry.client.hostname}")
            lines.extend(f"    {_arrow(change)}" for change in entry.changes)

    return "\n".join(lines)
