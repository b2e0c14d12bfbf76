"""
Hook dispatch: captured text in, exactly one JSON line out.

Pipeline for every hook process:

    raw = capture(stdin)            # omcm.lib.stdin_capture
    handler = load_handler()        # optional, deferred until after capture
    response = dispatch(raw, handler)
    safe_output(response)           # one line, flushed
    exit 0

Fail-open: empty input, malformed JSON, non-object JSON, a handler that
raises, and a collaborator that fails to load all produce the default-allow
response. A hook that breaks internally looks exactly like a hook that had
nothing to say.
"""

import json
import logging
import os
import sys
from typing import Any, Callable, Optional

from omcm.hooks.schemas import HookRequest, HookResponse, default_allow
from omcm.lib.stdin_capture import capture_stdin

logger = logging.getLogger(__name__)

MAX_DISPLAY_LENGTH = 220
ELLIPSIS = "..."
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

HookHandler = Callable[[HookRequest], Optional[HookResponse]]


def configure_logging() -> None:
    """Send logs to stderr (stdout is reserved for the response line)."""
    level_name = os.environ.get("OMCM_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def truncate(text: str, limit: int = MAX_DISPLAY_LENGTH) -> str:
    """First ``limit`` characters of ``text`` plus an ellipsis when it is longer."""
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def _normalize_json_field(value: Any) -> Any:
    """Normalize a field that may be a JSON string to its parsed form."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def normalize_request(payload: dict[str, Any]) -> HookRequest:
    """Fold the host's field-name variants into a HookRequest."""
    tool_input = _normalize_json_field(_first(payload, "tool_input", "toolInput"))
    if not isinstance(tool_input, dict):
        tool_input = {}

    return HookRequest(
        hook_event=_optional_str(_first(payload, "hook_event_name", "hookEventName")),
        tool_name=_optional_str(_first(payload, "tool_name", "toolName")) or "",
        tool_input=tool_input,
        session_id=_optional_str(_first(payload, "session_id", "sessionId")),
        cwd=_optional_str(_first(payload, "directory", "cwd")),
        raw_input=payload,
    )


def parse_payload(raw: str) -> dict[str, Any] | None:
    """Parse captured text as a JSON object; None if empty, malformed or not an object."""
    if not raw or not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.debug("Hook input is not valid JSON")
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def dispatch(
    raw: str, handler: HookHandler, *, require_payload: bool = True
) -> HookResponse:
    """Turn captured stdin text into a response. Never raises.

    With ``require_payload`` (the default) a missing or unusable payload is
    answered with the default-allow response without consulting the handler.
    Hooks whose decision does not depend on the request (Stop) pass False and
    receive an empty request instead.
    """
    try:
        payload = parse_payload(raw)
        if payload is None:
            if require_payload:
                return default_allow()
            payload = {}

        response = handler(normalize_request(payload))
        if response is None:
            return default_allow()
        return response
    except Exception as e:
        logger.debug("Hook dispatch failed: %s", e, exc_info=True)
        return default_allow()


def safe_output(response: HookResponse, stream=None) -> None:
    """Write ``response`` as one UTF-8 line and flush, swallowing write errors."""
    stream = stream or sys.stdout
    if stream is None:
        return
    try:
        line = response.to_json_line()
        buffer = getattr(stream, "buffer", None)
        if buffer is not None:
            stream.flush()
            buffer.write(line.encode("utf-8"))
            buffer.flush()
        else:
            stream.write(line)
            stream.flush()
    except (OSError, ValueError):
        pass


def run_hook(
    handler: HookHandler | None = None,
    *,
    load_handler: Callable[[], HookHandler] | None = None,
    capture: Callable[..., str] = capture_stdin,
    require_payload: bool = True,
    stdin=None,
    stdout=None,
) -> int:
    """Run one hook invocation end to end.

    Args:
        handler: Decision function for a normalized request.
        load_handler: Factory called only after stdin has been captured, for
            hooks whose collaborators must not load before capture. Used when
            ``handler`` is None.
        capture: Capture strategy from ``omcm.lib.stdin_capture``.
        require_payload: See ``dispatch``.
        stdin: Input stream (defaults to ``sys.stdin``).
        stdout: Output stream (defaults to ``sys.stdout``).

    Returns:
        Process exit code (always 0).
    """
    try:
        raw = capture(stdin)
        active_handler = handler if handler is not None else load_handler()
        response = dispatch(raw, active_handler, require_payload=require_payload)
    except Exception as e:
        logger.debug("Hook failed before dispatch: %s", e, exc_info=True)
        response = default_allow()

    safe_output(response, stdout)
    return 0
