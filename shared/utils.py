from __future__ import annotations
from typing import Any
from urllib.parse import urlsplit, urlunsplit

# ========================================
#           ENDPOINT HELPERS
# ========================================
"""
Helpers that turn the host a player points the client at into the
websocket endpoint of the game server.
"""

# http(s) pages upgrade to ws(s) on the same host
_SCHEME_UPGRADE = {
    "http": "ws",
    "https": "wss",
    "ws": "ws",
    "wss": "wss",
}

DEFAULT_PATH = "/chat"


def derive_ws_url(host: str, path: str = DEFAULT_PATH, secure: bool = False) -> str:
    """
    Build the websocket URL for a game server.

    Accepts 'host:port', 'http(s)://host[:port]' or 'ws(s)://host[:port]'.
    The scheme is upgraded to the websocket protocol and the path replaced.

    Examples:
        derive_ws_url("localhost:3030")            -> "ws://localhost:3030/chat"
        derive_ws_url("https://game.example.com")  -> "wss://game.example.com/chat"
    """
    host = (host or "").strip()
    if not host:
        raise ValueError("host must not be empty")

    if "://" not in host:
        host = f"{'https' if secure else 'http'}://{host}"

    parts = urlsplit(host)
    scheme = _SCHEME_UPGRADE.get(parts.scheme.lower())
    if scheme is None:
        raise ValueError(f"Unsupported scheme for game endpoint: {parts.scheme}")
    if not parts.netloc:
        raise ValueError(f"Missing host in {host!r}")

    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit((scheme, parts.netloc, path, "", ""))


def is_player_id(value: Any) -> bool:
    """
    Player ids are opaque strings or integers. bool is an int subclass
    in Python but never a valid id.
    """
    return isinstance(value, (str, int)) and not isinstance(value, bool)
