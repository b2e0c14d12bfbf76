"""Stdin capture for hook processes.

The host spawns each hook fresh and pipes exactly one JSON request on stdin.
The request must be drained by the entry point before anything else gets a
chance to touch the stream, then handed on explicitly as a string.

Two strategies:

- ``capture_stdin``: one blocking ``read()`` of the whole stream. Use this when
  the continuation is imported after capture (deferred loading).
- ``capture_stdin_with_deadline``: chunked reads of the raw descriptor,
  resolved by end-of-stream or by the deadline, whichever comes first. Use
  this for self-contained hooks where the host may leave the pipe open.

Neither raises. Absence of input is an empty string.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import time
from typing import BinaryIO

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_TIMEOUT_MS = 3000
TIMEOUT_ENV_VAR = "OMCM_STDIN_TIMEOUT_MS"
CHUNK_SIZE = 65536


def _binary_stream(stream) -> BinaryIO | None:
    """Return the byte-level view of ``stream`` (``sys.stdin`` by default)."""
    if stream is None:
        stream = sys.stdin
    if stream is None:
        return None
    return getattr(stream, "buffer", stream)


def _is_interactive(stream) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, OSError, ValueError):
        return False


def _decode(data: bytes | str | None) -> str:
    if not data:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


def resolve_timeout_ms(timeout_ms: int | None = None) -> int:
    """Capture deadline in milliseconds.

    Explicit argument wins, then ``$OMCM_STDIN_TIMEOUT_MS``, then the default.
    """
    if timeout_ms is not None:
        return max(0, int(timeout_ms))
    env_value = os.environ.get(TIMEOUT_ENV_VAR)
    if env_value:
        try:
            return max(0, int(env_value))
        except ValueError:
            logger.debug("Ignoring invalid %s=%r", TIMEOUT_ENV_VAR, env_value)
    return DEFAULT_CAPTURE_TIMEOUT_MS


def capture_stdin(stream=None) -> str:
    """Drain ``stream`` in a single blocking read.

    Args:
        stream: Text or binary stream. Defaults to ``sys.stdin``.

    Returns:
        The full payload as text, or ``""`` if the stream is a TTY, closed,
        missing, or unreadable.
    """
    binary = _binary_stream(stream)
    if binary is None or _is_interactive(binary):
        return ""
    try:
        data = binary.read()
    except Exception as e:
        logger.debug("stdin read failed: %s", e)
        return ""
    return _decode(data)


def _fileno(stream) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def capture_stdin_with_deadline(stream=None, timeout_ms: int | None = None) -> str:
    """Drain ``stream`` until end-of-stream or until the deadline passes.

    Waits on the raw descriptor with ``select()`` and reads it with
    ``os.read()``, so nothing is left blocked on (or holding the lock of)
    ``sys.stdin.buffer`` once the deadline fires and the process exits.
    Streams without a descriptor are in memory and cannot block; they are
    read in one go.

    Args:
        stream: Text or binary stream. Defaults to ``sys.stdin``.
        timeout_ms: Deadline in milliseconds (see ``resolve_timeout_ms``).

    Returns:
        Captured text, possibly partial or empty. Never raises.
    """
    binary = _binary_stream(stream)
    if binary is None or _is_interactive(binary):
        return ""

    fd = _fileno(binary)
    if fd is None:
        return capture_stdin(binary)

    chunks: list[bytes] = []
    deadline = time.monotonic() + resolve_timeout_ms(timeout_ms) / 1000.0
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            ready, _, _ = select.select([fd], [], [], remaining)
            if not ready:
                break
            chunk = os.read(fd, CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
    except Exception as e:
        logger.debug("stdin chunk read failed: %s", e)
    return _decode(b"".join(chunks))
