from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from shared.utils import DEFAULT_PATH, derive_ws_url

# The game server listens on 3030 and upgrades /chat to a websocket
DEFAULT_HOST = "localhost:3030"


@dataclass
class ClientConfig:
    host: str = DEFAULT_HOST
    path: str = DEFAULT_PATH
    secure: bool = False
    ping_interval: float = 5.0     # seconds between keep-alive pings
    ping_timeout: float = 10.0     # drop the connection if no pong by then
    open_timeout: float = 10.0
    log_level: Optional[str] = None

    @property
    def endpoint(self) -> str:
        return derive_ws_url(self.host, self.path, secure=self.secure)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """
        Build a config from BATTLER_* environment variables, falling back to
        the defaults above for anything unset.
        """
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("BATTLER_HOST", DEFAULT_HOST),
            path=env.get("BATTLER_PATH", DEFAULT_PATH),
            secure=_env_bool(env, "BATTLER_SECURE", False),
            ping_interval=_env_float(env, "BATTLER_PING_INTERVAL", 5.0),
            ping_timeout=_env_float(env, "BATTLER_PING_TIMEOUT", 10.0),
            open_timeout=_env_float(env, "BATTLER_OPEN_TIMEOUT", 10.0),
            log_level=env.get("BATTLER_LOG_LEVEL") or None,
        )


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
