from __future__ import annotations
from typing import Tuple

from ..errors import ConfigError


def parse_listen_address(addr: str) -> Tuple[str, int]:
    """Split 'host:port', ':port' or '[v6]:port' into (host, port); no host means all interfaces."""
    addr = (addr or "").strip()
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"invalid listen address '{addr}', expected [host]:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if host in ("", "*"):
        host = "0.0.0.0"
    p = int(port)
    if not 0 < p < 65536:
        raise ConfigError(f"invalid listen port {p}")
    return host, p
