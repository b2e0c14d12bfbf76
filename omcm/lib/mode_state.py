"""Mode and handoff state files.

One JSON file per mode under the state directory (``<mode>-state.json``),
plus a pending-handoff marker inside the project. Writes go through a temp
file and rename while holding a file lock, so concurrent hook processes never
observe half-written state.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from omcm.lib.paths import get_fusion_state_path, get_handoff_dir, get_state_dir
from omcm.lib.usage_model import UsageRecord

logger = logging.getLogger(__name__)

KNOWN_MODES = (
    "ralph",
    "autopilot",
    "ultrawork",
    "ecomode",
    "hulw",
    "swarm",
    "pipeline",
    "ultrapilot",
    "ultraqa",
)
CANCEL_MODE = "cancel"
LOCK_TIMEOUT_SECONDS = 5
PENDING_HANDOFF_FILE = "pending-handoff.json"


class ModeState(BaseModel):
    """Persisted state of one working mode."""

    model_config = ConfigDict(extra="allow")

    active: bool = False
    startedAt: str | None = None
    projectDir: str | None = None
    iterations: int = 0
    cancelledAt: str | None = None
    lastVerification: dict[str, Any] | None = None
    blockers: list[str] = Field(default_factory=list)

    @field_validator("iterations", mode="before")
    @classmethod
    def iterations_or_zero(cls, value: Any) -> int:
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0

    @field_validator("blockers", mode="before")
    @classmethod
    def blockers_as_text(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]

    @field_validator("lastVerification", mode="before")
    @classmethod
    def verification_mapping(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None


class ActiveMode(BaseModel):
    mode: str
    state: ModeState


class HandoffState(BaseModel):
    timestamp: str
    reason: str
    usage: UsageRecord | None = None
    triggered: bool = True


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_mode_state_path(mode: str, state_dir: Path | None = None) -> Path:
    return (state_dir or get_state_dir()) / f"{mode}-state.json"


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(path) + ".lock", timeout=LOCK_TIMEOUT_SECONDS)
    with lock:
        fd, temp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp", text=True)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            Path(temp_path).replace(path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise


def read_mode_state(mode: str, state_dir: Path | None = None) -> ModeState | None:
    path = get_mode_state_path(mode, state_dir)
    if not path.exists():
        return None
    try:
        return ModeState.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        logger.debug("Ignoring unreadable mode state %s: %s", path, e)
        return None


def write_mode_state(mode: str, state: ModeState, state_dir: Path | None = None) -> Path:
    path = get_mode_state_path(mode, state_dir)
    _atomic_write(path, state.model_dump_json(indent=2, exclude_none=True))
    return path


def cancel_all_modes(state_dir: Path | None = None) -> list[str]:
    """Mark every known mode that has a state file inactive.

    Returns:
        Names of the modes that were cancelled.
    """
    cancelled = []
    for mode in KNOWN_MODES:
        state = read_mode_state(mode, state_dir)
        if state is None:
            continue
        state.active = False
        state.cancelledAt = _now_iso()
        try:
            write_mode_state(mode, state, state_dir)
            cancelled.append(mode)
        except (OSError, Timeout) as e:
            logger.debug("Failed to cancel mode %s: %s", mode, e)
    return cancelled


def save_mode_state(
    mode: str, project_dir: str | Path, state_dir: Path | None = None
) -> None:
    """Activate ``mode`` for ``project_dir``; ``cancel`` deactivates all modes.

    Write failures are logged and swallowed.
    """
    if mode == CANCEL_MODE:
        cancel_all_modes(state_dir)
        return

    state = ModeState(
        active=True,
        startedAt=_now_iso(),
        projectDir=str(project_dir),
        iterations=0,
    )
    try:
        write_mode_state(mode, state, state_dir)
    except (OSError, Timeout) as e:
        logger.debug("Failed to save mode state %s: %s", mode, e)


def check_active_states(state_dir: Path | None = None) -> list[ActiveMode]:
    """All known modes whose state file says ``active``."""
    active = []
    for mode in KNOWN_MODES:
        state = read_mode_state(mode, state_dir)
        if state is not None and state.active:
            active.append(ActiveMode(mode=mode, state=state))
    return active


def check_verification_status(state: ModeState) -> tuple[bool, list[str]]:
    """Check ralph-style verification results.

    Returns:
        (complete, missing item names)
    """
    verification = state.lastVerification
    if not verification:
        return False, ["모든 항목"]

    missing = []
    if not verification.get("build"):
        missing.append("BUILD")
    if not verification.get("test"):
        missing.append("TEST")
    if not verification.get("lint"):
        missing.append("LINT")
    if verification.get("functionality") is not True:
        missing.append("FUNCTIONALITY")
    if not verification.get("todo"):
        missing.append("TODO")
    return not missing, missing


def save_handoff_state(
    reason: str, usage: UsageRecord | None, project_dir: str | Path
) -> Path | None:
    """Write the pending-handoff marker for ``project_dir``.

    Returns:
        Path written, or None if the write failed.
    """
    path = get_handoff_dir(project_dir) / PENDING_HANDOFF_FILE
    state = HandoffState(timestamp=_now_iso(), reason=reason, usage=usage)
    try:
        _atomic_write(path, state.model_dump_json(indent=2))
    except (OSError, Timeout) as e:
        logger.debug("Failed to save handoff state: %s", e)
        return None
    return path


def get_session_input_tokens(path: Path | None = None) -> int:
    """Cumulative Claude input tokens recorded in the fusion state file (0 if unknown)."""
    fusion_path = path or get_fusion_state_path()
    try:
        state = json.loads(fusion_path.read_text(encoding="utf-8"))
        tokens = state["actualTokens"]["claude"]["input"]
        return int(tokens or 0)
    except (OSError, ValueError, KeyError, TypeError):
        return 0
