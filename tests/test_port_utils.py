"""Free-port probing."""

import socket

import pytest

from omcm.lib.port_utils import (
    PortUnavailableError,
    find_available_port,
    get_available_server_port,
    is_port_available,
)


@pytest.fixture
def occupied_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


def test_occupied_port_is_unavailable(occupied_port):
    assert is_port_available(occupied_port) is False


def test_preferred_port_used_when_free():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    free_port = sock.getsockname()[1]
    sock.close()

    selection = get_available_server_port(free_port)

    assert selection.port == free_port
    assert selection.was_auto_selected is False


def test_busy_preferred_port_moves_up(occupied_port):
    selection = get_available_server_port(occupied_port)

    assert selection.port > occupied_port
    assert selection.was_auto_selected is True


def test_find_available_port_exhausted(occupied_port):
    with pytest.raises(PortUnavailableError):
        find_available_port(occupied_port, max_attempts=1)
