import pytest
from err.exceptions import ConfigError
from util.config import Settings
from util.const import LogLevel


def test_defaults_with_password():
    settings = Settings.from_env({"CONNECTBOX_PASSWORD": "hunter2"})

    assert settings == Settings(password="hunter2")
    assert settings.host == "192.168.0.1"
    assert settings.metrics_port is None
    assert settings.log_level is LogLevel.INFO


def test_everything_set():
    settings = Settings.from_env(
        {
            "CONNECTBOX_HOST": "10.0.0.1",
            "CONNECTBOX_PASSWORD": "hunter2",
            "CONNECTBOX_TUI": "yes",
            "REFRESH_INTERVAL_SECONDS": "600",
            "REQUEST_TIMEOUT_SECONDS": "5",
            "THROTTLE_INTERVAL_SECONDS": "1",
            "METRICS_PORT": "9465",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.host == "10.0.0.1"
    assert settings.tui is True
    assert settings.refresh_seconds == 600
    assert settings.timeout_seconds == 5
    assert settings.throttle_seconds == 1
    assert settings.metrics_port == 9465
    assert settings.log_level is LogLevel.DEBUG


def test_demo_needs_no_password_or_valid_host():
    settings = Settings.from_env(
        {"CONNECTBOX_DEMO": "1", "CONNECTBOX_HOST": "router.lan"}
    )

    assert settings.demo is True
    assert settings.password is None


@pytest.mark.parametrize(
    "env, message",
    [
        ({}, "CONNECTBOX_PASSWORD"),
        ({"CONNECTBOX_PASSWORD": "x", "CONNECTBOX_HOST": "router.lan"}, "IPv4"),
        (
            {"CONNECTBOX_PASSWORD": "x", "REFRESH_INTERVAL_SECONDS": "0"},
            "between 1 and 600",
        ),
        (
            {"CONNECTBOX_PASSWORD": "x", "REFRESH_INTERVAL_SECONDS": "601"},
            "between 1 and 600",
        ),
        (
            {"CONNECTBOX_PASSWORD": "x", "REQUEST_TIMEOUT_SECONDS": "4"},
            "between 5 and 600",
        ),
        (
            {"CONNECTBOX_PASSWORD": "x", "THROTTLE_INTERVAL_SECONDS": "three"},
            "must be an integer",
        ),
        ({"CONNECTBOX_PASSWORD": "x", "CONNECTBOX_TUI": "maybe"}, "boolean"),
        ({"CONNECTBOX_PASSWORD": "x", "LOG_LEVEL": "LOUD"}, "LOG_LEVEL"),
        ({"CONNECTBOX_PASSWORD": "x", "METRICS_PORT": "70000"}, "METRICS_PORT"),
    ],
)
def test_invalid(env, message):
    with pytest.raises(ConfigError, match=message):
        Settings.from_env(env)
