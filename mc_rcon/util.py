# mc_rcon/util.py
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Tuple

from .errors import InvalidConfig

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 25575
HISTORY_FILE = Path(os.environ.get("RCON_HISTORY", Path.home() / ".rcon_history")).expanduser()


def read_properties(path: Path) -> dict:
    """Minecraft server.properties as a plain dict; missing file gives {}."""
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                props[k.strip()] = v.strip()
    return props


def rcon_props(path: Path) -> Tuple[Optional[int], Optional[str]]:
    """(rcon.port, rcon.password) from a server.properties file, None where unset."""
    try:
        props = read_properties(path)
    except OSError as e:
        raise InvalidConfig(f"cannot read {path}: {e}") from e
    port = props.get("rcon.port")
    password = props.get("rcon.password") or None
    if not port:
        return None, password
    try:
        return int(port), password
    except ValueError:
        raise InvalidConfig(f"{path}: rcon.port '{port}' is not a number") from None


def parse_address(value: str, default_port: int = DEFAULT_PORT) -> Tuple[str, int]:
    """
    'host:port' -> (host, port). A bare host gets the default port,
    'localhost' is pinned to 127.0.0.1 and [v6]:port brackets are stripped.
    """
    value = (value or "").strip()
    if not value:
        raise ValueError("empty address")
    host, port = value, default_port
    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            raise ValueError(f"invalid address '{value}'")
        host, rest = value[1:end], value[end + 1:]
        if rest:
            if not rest.startswith(":"):
                raise ValueError(f"invalid address '{value}'")
            port = _port(rest[1:], value)
    elif value.count(":") == 1:
        host, p = value.split(":", 1)
        port = _port(p, value)
    if not host:
        raise ValueError(f"invalid address '{value}': missing host")
    if host == "localhost":
        host = "127.0.0.1"
    return host, port


def _port(text: str, whole: str) -> int:
    try:
        port = int(text)
    except ValueError:
        raise ValueError(f"invalid port in address '{whole}'") from None
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in address '{whole}'")
    return port


def env_address() -> str:
    addr = os.environ.get("RCON_ADDRESS")
    if addr:
        return addr
    port = os.environ.get("RCON_PORT")
    return f"{DEFAULT_HOST}:{port or DEFAULT_PORT}"


def env_password() -> Optional[str]:
    return os.environ.get("RCON_PASSWORD") or None


def log_level(verbosity: int) -> int:
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(verbosity: int = 0) -> None:
    logging.basicConfig(
        level=log_level(verbosity),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def ms(seconds: float) -> str:
    return f"{seconds * 1000:.2f}ms"
