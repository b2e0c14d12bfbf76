"""Local port discovery for launching worker servers."""

from __future__ import annotations

import socket
from dataclasses import dataclass

DEFAULT_SERVER_PORT = 4096
MAX_PORT_ATTEMPTS = 20
DEFAULT_HOST = "127.0.0.1"


class PortUnavailableError(RuntimeError):
    """No free port in the probed range."""


@dataclass(frozen=True)
class PortSelection:
    port: int
    was_auto_selected: bool


def is_port_available(port: int, hostname: str = DEFAULT_HOST) -> bool:
    """Return True if a listener can be bound to ``hostname:port`` right now."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((hostname, port))
        sock.listen(1)
    except OSError:
        return False
    finally:
        sock.close()
    return True


def find_available_port(
    start_port: int = DEFAULT_SERVER_PORT,
    hostname: str = DEFAULT_HOST,
    max_attempts: int = MAX_PORT_ATTEMPTS,
) -> int:
    """Probe ``start_port`` upwards and return the first free port.

    Raises:
        PortUnavailableError: If none of ``max_attempts`` ports is free.
    """
    for attempt in range(max_attempts):
        port = start_port + attempt
        if is_port_available(port, hostname):
            return port
    raise PortUnavailableError(
        f"No available port found in range {start_port}-{start_port + max_attempts - 1}"
    )


def get_available_server_port(
    preferred_port: int = DEFAULT_SERVER_PORT, hostname: str = DEFAULT_HOST
) -> PortSelection:
    """Use ``preferred_port`` if free, otherwise the next free port above it."""
    if is_port_available(preferred_port, hostname):
        return PortSelection(port=preferred_port, was_auto_selected=False)
    port = find_available_port(preferred_port + 1, hostname)
    return PortSelection(port=port, was_auto_selected=True)
