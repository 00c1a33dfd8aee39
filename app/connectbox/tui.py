"""
Live terminal dashboard.

The screen is a scoped resource: `dashboard()` owns it and hands back a `Dashboard`
that can only be used inside the `with` block.
rich's Live restores the terminal on the way out whether the block returns, raises or
gets cancelled.
"""

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from connectbox.diff import ClientDelta, DeltaKind, LanTableDiff, Trend, diff_tables
from connectbox.models import ClientInfo, LanUserTable

ADDED_STYLE = "black on green"
REMOVED_STYLE = "white on red"
HIGHLIGHT_STYLE = "black on white"

# (header, width); Host takes whatever is left
COLUMNS = (
    ("MAC", 19),
    ("IPv4", 19),
    ("IPv6", 41),
    ("Speed", 7),
    ("Lease", 13),
    ("Host", None),
)


class Dashboard:
    def __init__(self, live: Live, color: bool):
        self._live = live
        self._color = color
        self._previous: LanUserTable | None = None

    def update(self, table: LanUserTable) -> None:
        """Redraw against the previous table.

        The very first frame has nothing to compare with.
        """
        previous = self._previous if self._previous is not None else table
        self._previous = table
        caption = f"{table.customer}: {table.total_client} clients"
        frame = build_table(diff_tables(previous, table), self._color, caption)
        self._live.update(frame, refresh=True)


@contextmanager
def dashboard(console: Console | None = None) -> Iterator[Dashboard]:
    console = console if console is not None else Console()
    with Live(console=console, screen=True, auto_refresh=False, transient=True) as live:
        yield Dashboard(live, color=console.color_system is not None)


def build_table(diff: LanTableDiff, color: bool, caption: str | None = None) -> Table:
    """Without color there is no way to show a removed row as removed.

    So only current clients are drawn.
    """
    table = Table(
        box=None,
        expand=True,
        pad_edge=False,
        header_style="bold reverse" if color else "bold",
        caption=caption,
    )
    for header, width in COLUMNS:
        justify = "right" if header == "Speed" else "left"
        table.add_column(header, width=width, no_wrap=True, justify=justify)

    for entry in diff.entries:
        if entry.kind is DeltaKind.REMOVED:
            if color:
                table.add_row(*_plain_cells(entry.client), style=REMOVED_STYLE)
        elif entry.kind is DeltaKind.ADDED:
            style = ADDED_STYLE if color else None
            table.add_row(*_plain_cells(entry.client), style=style)
        elif color:
            table.add_row(*_diff_cells(entry))
        else:
            table.add_row(*_plain_cells(entry.client))
    return table


def _plain_cells(client: ClientInfo) -> list[Text]:
    return [
        Text(client.mac),
        Text(client.ipv4 or ""),
        Text(client.ipv6 or ""),
        Text(str(client.speed)),
        Text(client.lease_time),
        Text(client.hostname),
    ]


def _diff_cells(entry: ClientDelta) -> list[Text]:
    old, new = entry.old, entry.new
    if old is None or new is None:
        raise ValueError(f"Expected both records for a {entry.kind.value} client")
    return [
        Text(new.mac),
        _optional_cell(old.ipv4, new.ipv4),
        _optional_cell(old.ipv6, new.ipv6),
        Text(str(new.speed), style=_trend_style(entry.speed_trend)),
        _text_cell(old.lease_time, new.lease_time),
        _text_cell(old.hostname, new.hostname),
    ]


def _trend_style(trend: Trend | None) -> str:
    if trend is Trend.INCREASED:
        return ADDED_STYLE
    if trend is Trend.DECREASED:
        return REMOVED_STYLE
    return ""


def _text_cell(old: str, new: str) -> Text:
    return Text(new, style=HIGHLIGHT_STYLE if new != old else "")


def _optional_cell(old: str | None, new: str | None) -> Text:
    # An address that went away is still shown, in red, so the change is visible
    if old is not None and new is not None:
        return _text_cell(old, new)
    if new is not None:
        return Text(new, style=ADDED_STYLE)
    if old is not None:
        return Text(old, style=REMOVED_STYLE)
    return Text("")
