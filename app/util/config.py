"""
Env-var driven configuration.

cfg-file/arg-parse is overkill for the handful of knobs this tool has; env-vars are
trivial to set from a shell, a systemd unit or a container spec.
The bounds mirror what the router tolerates in practice: poll it harder than once a
second and it starts dropping sessions, give up on a request in under 5s and the
device list never arrives.
"""

import ipaddress
import os
from dataclasses import dataclass
from typing import Mapping

from err.exceptions import ConfigError
from util.const import LogLevel

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Everything the entry point needs, validated once at startup."""

    host: str = "192.168.0.1"
    password: str | None = None
    demo: bool = False
    tui: bool = False
    refresh_seconds: int = 3
    timeout_seconds: int = 10
    throttle_seconds: int = 3
    metrics_port: int | None = None
    log_level: LogLevel = LogLevel.INFO

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        demo = _get_bool(env, "CONNECTBOX_DEMO", False)
        host = env.get("CONNECTBOX_HOST", cls.host)
        # Password is printed on the sticker under the router; impossible to guess so
        #   require user provides
        password = env.get("CONNECTBOX_PASSWORD") or None

        if not demo:
            if password is None:
                raise ConfigError(
                    "CONNECTBOX_PASSWORD is required unless CONNECTBOX_DEMO is set"
                )
            try:
                ipaddress.IPv4Address(host)
            except ValueError as e:
                raise ConfigError(
                    f"CONNECTBOX_HOST must be an IPv4 address, got {host!r}"
                ) from e

        metrics_port = None
        if env.get("METRICS_PORT"):
            metrics_port = _get_int(env, "METRICS_PORT", 0, 1, 65535)

        level_name = env.get("LOG_LEVEL", "INFO").upper()
        if level_name not in LogLevel.__members__:
            raise ConfigError(
                f"LOG_LEVEL must be one of {', '.join(LogLevel.__members__)}, "
                f"got {level_name!r}"
            )

        return cls(
            host=host,
            password=password,
            demo=demo,
            tui=_get_bool(env, "CONNECTBOX_TUI", False),
            refresh_seconds=_get_int(
                env, "REFRESH_INTERVAL_SECONDS", cls.refresh_seconds, 1, 600
            ),
            timeout_seconds=_get_int(
                env, "REQUEST_TIMEOUT_SECONDS", cls.timeout_seconds, 5, 600
            ),
            throttle_seconds=_get_int(
                env, "THROTTLE_INTERVAL_SECONDS", cls.throttle_seconds, 1, 600
            ),
            metrics_port=metrics_port,
            log_level=LogLevel[level_name],
        )


def _get_int(
    env: Mapping[str, str], name: str, default: int, lower: int, upper: int
) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value < lower or value > upper:
        raise ConfigError(f"{name} must be between {lower} and {upper}, got {value}")
    return value


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    if raw.strip().lower() in _TRUTHY:
        return True
    if raw.strip().lower() in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
