import asyncio

import pytest
from conftest import PASSWORD, BlockingThrottle
from err.exceptions import AuthenticationRejectedError, ProtocolViolationError
from payloads import DEVICES_XML

from connectbox.session import CMD_DEVICES, SessionClient


async def test_handshake_fetches_login_page_then_logs_in(
    make_client, fake_router, throttle
):
    client = make_client()
    assert not client.authenticated

    await client.reset()

    assert client.authenticated
    assert fake_router.login_page_hits == 1
    assert fake_router.logins == 1
    assert throttle.waits == []


async def test_devices_decodes_table(make_client):
    async with make_client() as client:
        table = await client.devices()

    assert table.customer == "upc"
    assert table.total_client == 3
    assert [c.hostname for c in table.clients] == ["laptop", "phone"]


async def test_temperature_decodes_state(make_client):
    async with make_client() as client:
        state = await client.temperature()

    assert state.tuner_temperature == 45
    assert state.temperature == 52
    assert state.wan_ipv6_addresses == ("2001:db8::1", "2001:db8::2")


async def test_token_is_replaced_on_every_reply(make_client, fake_router):
    # The fake only accepts the most recently issued token; a stale one gets the
    #   login page
    async with make_client() as client:
        for _ in range(3):
            await client.devices()
        await client.temperature()

    assert fake_router.logins == 1
    assert fake_router.login_page_hits == 1


async def test_first_request_performs_handshake_lazily(make_client, fake_router):
    client = make_client()

    await client.devices()

    assert fake_router.logins == 1


async def test_session_loss_triggers_exactly_one_silent_rehandshake(
    make_client, fake_router, throttle
):
    async with make_client() as client:
        fake_router.expire_sessions = 1

        table = await client.devices()

    assert table.customer == "upc"
    assert fake_router.login_page_hits == 2
    assert fake_router.logins == 2
    assert fake_router.getter_calls == [CMD_DEVICES, CMD_DEVICES]
    assert throttle.waits == []


async def test_wrong_password_is_rejected_without_retry(
    make_client, fake_router, throttle
):
    with pytest.raises(AuthenticationRejectedError):
        async with make_client(password="nope"):
            pass

    assert fake_router.logins == 1
    assert throttle.waits == []


async def test_unexpected_login_reply_is_protocol_violation(
    make_client, fake_router, throttle
):
    fake_router.login_reply = "something else entirely"
    client = make_client()

    with pytest.raises(ProtocolViolationError) as excinfo:
        await client.reset()

    assert "something else entirely" in str(excinfo.value)
    assert not client.authenticated
    assert throttle.waits == []


async def test_bad_status_is_not_retried(make_client, fake_router, throttle):
    async with make_client() as client:
        fake_router.fail_status = 500

        with pytest.raises(ProtocolViolationError) as excinfo:
            await client.devices()

    assert excinfo.value.status_code == 500
    assert throttle.waits == []


async def test_missing_session_cookie_is_protocol_violation(
    make_client, fake_router, throttle
):
    async with make_client() as client:
        fake_router.drop_cookie = True

        with pytest.raises(ProtocolViolationError, match="sessionToken"):
            await client.devices()

    assert throttle.waits == []


async def test_undecodable_payload_is_protocol_violation(make_client, fake_router):
    fake_router.devices_xml = "<?xml version='1.0'?><nothing/>"

    async with make_client() as client:
        with pytest.raises(ProtocolViolationError):
            await client.devices()


async def test_hostname_that_is_not_utf8_is_decoded_lossily(make_client, fake_router):
    fake_router.devices_xml = DEVICES_XML.replace("phone", "café").encode("latin-1")

    async with make_client() as client:
        table = await client.devices()

    laptop, phone = table.clients
    assert laptop.hostname == "laptop"
    assert phone.hostname.startswith("caf")
    assert len(phone.hostname) == 4


async def test_transient_failures_are_retried_after_one_throttle_each(
    make_client, fake_router, throttle
):
    async with make_client(timeout=0.2) as client:
        fake_router.stall_next = 3

        table = await client.devices()

    assert table.total_client == 3
    assert len(throttle.waits) == 3
    # Timed out requests never rotated the token so no re-handshake was needed
    assert fake_router.logins == 1


async def test_transient_failure_during_handshake_is_retried(
    make_client, fake_router, throttle
):
    fake_router.stall_next = 1

    async with make_client(timeout=0.2) as client:
        assert client.authenticated

    assert len(throttle.waits) == 1
    assert fake_router.login_page_hits == 1


async def test_connection_refused_retries_until_cancelled(unused_tcp_port):
    throttle = BlockingThrottle(0)
    client = SessionClient(
        f"127.0.0.1:{unused_tcp_port}", PASSWORD, timeout=1, throttle=throttle
    )
    try:
        task = asyncio.ensure_future(client.devices())
        await asyncio.wait_for(throttle.entered.wait(), timeout=5)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not client.authenticated
    finally:
        await client.close()


async def test_cancel_lets_in_flight_exchange_finish(make_client, fake_router):
    async with make_client() as client:
        fake_router.delay = 0.3
        task = asyncio.ensure_future(client.devices())
        await asyncio.sleep(0.1)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # The reply that was in flight still delivered its token, so the session is
        #   intact
        fake_router.delay = 0
        await client.devices()

    assert fake_router.logins == 1
    assert fake_router.getter_calls == [CMD_DEVICES, CMD_DEVICES]


async def test_logout(make_client, fake_router):
    async with make_client() as client:
        await client.logout()
        assert not client.authenticated
        # Second logout has nothing to do
        await client.logout()

    assert fake_router.logouts == 1
