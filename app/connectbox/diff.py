"""
What changed between two polls.

Both the plain text output and the dashboard consume the same result so the merge
logic lives here once.

Clients are matched by MAC address only, never by position: the router returns them in
whatever order it feels like and that order shuffles between reads.
Both lists are sorted by MAC and walked with two cursors (a merge join); a MAC only on
the old side was removed, one only on the new side was added, one on both sides is
compared field by field.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from connectbox.models import CLIENT_FIELDS, ClientInfo, LanUserTable


class DeltaKind(Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


class Trend(Enum):
    """Direction of a numeric change.

    The dashboard colors by direction, not just 'it changed'.
    """

    INCREASED = "increased"
    DECREASED = "decreased"


@dataclass(frozen=True)
class FieldChange:
    name: str
    old: Any
    new: Any

    @property
    def trend(self) -> Trend | None:
        """Only meaningful for numeric fields.

        None when the values can't be ordered or are equal.
        """
        if not isinstance(self.old, int) or not isinstance(self.new, int):
            return None
        return compare(self.old, self.new)


@dataclass(frozen=True)
class ClientDelta:
    """One step of the merge walk."""

    kind: DeltaKind
    old: ClientInfo | None
    new: ClientInfo | None
    # Only the fields that differ; unchanged fields are read off `new` as-is
    changes: tuple[FieldChange, ...] = ()

    @property
    def client(self) -> ClientInfo:
        """The record to display: the new one unless the client is gone."""
        if self.new is not None:
            return self.new
        if self.old is not None:
            return self.old
        raise ValueError("ClientDelta carries neither an old nor a new record")

    @property
    def mac(self) -> str:
        return self.client.mac

    def change(self, name: str) -> FieldChange | None:
        for change in self.changes:
            if change.name == name:
                return change
        return None

    @property
    def speed_trend(self) -> Trend | None:
        change = self.change("speed")
        return change.trend if change is not None else None


@dataclass(frozen=True)
class LanTableDiff:
    customer: FieldChange | None
    total_client: FieldChange | None
    # Full walk in MAC order, unchanged clients included; the dashboard needs every row
    entries: tuple[ClientDelta, ...]

    @property
    def added(self) -> list[ClientInfo]:
        return [
            e.new
            for e in self.entries
            if e.kind is DeltaKind.ADDED and e.new is not None
        ]

    @property
    def removed(self) -> list[ClientInfo]:
        return [
            e.old
            for e in self.entries
            if e.kind is DeltaKind.REMOVED and e.old is not None
        ]

    @property
    def changed(self) -> list[ClientDelta]:
        return [e for e in self.entries if e.kind is DeltaKind.CHANGED]

    @property
    def is_empty(self) -> bool:
        return (
            self.customer is None
            and self.total_client is None
            and all(e.kind is DeltaKind.UNCHANGED for e in self.entries)
        )


def compare(old: int, new: int) -> Trend | None:
    if new > old:
        return Trend.INCREASED
    if new < old:
        return Trend.DECREASED
    return None


def diff_client(old: ClientInfo, new: ClientInfo) -> tuple[FieldChange, ...]:
    """Per-field changes between two records of one client, in declaration order."""
    return tuple(
        FieldChange(name, getattr(old, name), getattr(new, name))
        for name in CLIENT_FIELDS
        if getattr(old, name) != getattr(new, name)
    )


def diff_clients(
    old: Sequence[ClientInfo], new: Sequence[ClientInfo]
) -> list[ClientDelta]:
    """Merge-join two client lists on MAC.

    Inputs are left untouched and may be in any order.
    Duplicate MACs on one side (which the router should never send) pair up in their
    received order; any surplus shows up as added or removed.
    """
    sorted_old = sorted(old, key=lambda c: c.mac)
    sorted_new = sorted(new, key=lambda c: c.mac)

    deltas: list[ClientDelta] = []
    i = j = 0
    while i < len(sorted_old) or j < len(sorted_new):
        o = sorted_old[i] if i < len(sorted_old) else None
        n = sorted_new[j] if j < len(sorted_new) else None

        if o is not None and n is not None and o.mac == n.mac:
            changes = diff_client(o, n)
            kind = DeltaKind.CHANGED if changes else DeltaKind.UNCHANGED
            deltas.append(ClientDelta(kind, o, n, changes))
            i += 1
            j += 1
        elif o is not None and (n is None or o.mac < n.mac):
            deltas.append(ClientDelta(DeltaKind.REMOVED, o, None))
            i += 1
        else:
            deltas.append(ClientDelta(DeltaKind.ADDED, None, n))
            j += 1

    return deltas


def diff_tables(old: LanUserTable, new: LanUserTable) -> LanTableDiff:
    return LanTableDiff(
        customer=_scalar("customer", old.customer, new.customer),
        total_client=_scalar("total_client", old.total_client, new.total_client),
        entries=tuple(diff_clients(old.clients, new.clients)),
    )


def _scalar(name: str, old: Any, new: Any) -> FieldChange | None:
    return FieldChange(name, old, new) if old != new else None
