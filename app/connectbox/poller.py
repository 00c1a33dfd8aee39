"""
The poll loops and the interrupt race around them.

Discipline is always "wait, then poll": one request at a time, never overlapping, with
the throttle enforcing the gap.
Whatever ends the loop (an interrupt or an error) we try to log out before leaving so
the router doesn't keep a dead session around; it only allows one at a time.
"""

import asyncio
from typing import Callable

import structlog
from err.exceptions import ConnectBoxError

from connectbox import metrics, render, tui
from connectbox.diff import LanTableDiff, diff_tables
from connectbox.models import CmState, LanUserTable
from connectbox.retry import Throttle
from connectbox.router import Router

log = structlog.get_logger(__name__)


async def diff_loop(
    router: Router, throttle: Throttle, out: Callable[[str], None] = print
) -> None:
    """Print everything once, then only what changed."""
    devices = await router.devices()
    _record_devices(devices)
    out(f"Devices:\n{render.format_table(devices)}")

    temperature = await router.temperature()
    _record_temperature(temperature)
    out(f"Temperature:\n{render.format_cm_state(temperature)}")

    while True:
        await throttle.wait()
        log.debug("Querying for devices...")
        new_devices = await router.devices()
        diff = diff_tables(devices, new_devices)
        _record_devices(new_devices, diff)
        if diff.is_empty:
            log.debug("No change since last poll.")
        else:
            out(f"Devices:\n{render.format_diff(diff)}")
        devices = new_devices


async def dashboard_loop(
    router: Router, throttle: Throttle, view: tui.Dashboard
) -> None:
    """Redraw the dashboard every poll. The first poll doesn't wait."""
    previous: LanUserTable | None = None
    while True:
        log.debug("Querying for devices...")
        devices = await router.devices()
        diff = diff_tables(previous, devices) if previous is not None else None
        _record_devices(devices, diff)
        view.update(devices)
        previous = devices
        await throttle.wait()


async def _run_dashboard(router: Router, throttle: Throttle) -> None:
    with tui.dashboard() as view:
        await dashboard_loop(router, throttle, view)


async def run(
    router: Router, throttle: Throttle, use_tui: bool, stop: asyncio.Event
) -> None:
    """Poll until `stop` is set or the loop fails, then log out.

    Errors from the loop are re-raised after the logout attempt.
    """
    if use_tui:
        main_task = asyncio.ensure_future(_run_dashboard(router, throttle))
    else:
        main_task = asyncio.ensure_future(diff_loop(router, throttle))
    stop_task = asyncio.ensure_future(stop.wait())

    try:
        await asyncio.wait({main_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        # Whichever lost the race gets cancelled and joined before anything else touches
        #   the router
        for task in (main_task, stop_task):
            task.cancel()
        await asyncio.gather(main_task, stop_task, return_exceptions=True)

    error = None
    if not main_task.cancelled():
        error = main_task.exception()
    if error is not None:
        log.error("Polling stopped on error.", error=repr(error))
    else:
        log.info("Interrupt received. Stopping.")

    try:
        await router.logout()
    except ConnectBoxError as e:
        if error is None:
            raise
        log.warning("Logout failed.", error=repr(e))

    if error is not None:
        raise error


def _record_devices(devices: LanUserTable, diff: LanTableDiff | None = None) -> None:
    metrics.g_lan_clients.set(len(devices.clients))
    if diff is None:
        return
    metrics.c_client_changes.labels("added").inc(len(diff.added))
    metrics.c_client_changes.labels("removed").inc(len(diff.removed))
    metrics.c_client_changes.labels("changed").inc(len(diff.changed))


def _record_temperature(state: CmState) -> None:
    metrics.g_tuner_temperature.set(state.tuner_temperature)
    metrics.g_modem_temperature.set(state.temperature)
    metrics.i_modem_state.info({"oper_state": state.oper_state})
