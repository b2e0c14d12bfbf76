#!/usr/bin/env python3
"""
Version-agnostic HUD wrapper.

Installed once into the host's HUD slot. Finds the newest installed plugin
version and relays the host's stdin to that version's HUD entry point, so
plugin upgrades never require reinstalling the wrapper.

Exit codes:
    0: HUD not installed (a hint is printed instead)
    n: Exit code of the HUD entry point
"""

import os
import re
import subprocess
import sys
from pathlib import Path

from omcm.lib.paths import get_marketplace_dir, get_plugin_cache_dir
from omcm.lib.stdin_capture import capture_stdin_with_deadline

ENTRY_RELATIVE_PATH = Path("omcm") / "hud" / "entry.py"
ENTRY_MODULE = "omcm.hud.entry"
RELAY_CAPTURE_TIMEOUT_MS = 500
NOT_FOUND_MESSAGE = "[OMCM] HUD not found - run /omcm:fusion-setup"

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


def _version_key(name: str) -> tuple[int, ...]:
    return tuple(int(part) for part in name.split("."))


def find_hud_root(
    cache_dir: Path | None = None, marketplace_dir: Path | None = None
) -> Path | None:
    """Plugin root (the directory containing ``omcm/``) of the newest install."""
    cache_dir = cache_dir or get_plugin_cache_dir()
    marketplace_dir = marketplace_dir or get_marketplace_dir()

    if cache_dir.is_dir():
        versions = sorted(
            (p.name for p in cache_dir.iterdir() if _VERSION_RE.match(p.name)),
            key=_version_key,
            reverse=True,
        )
        if versions:
            root = cache_dir / versions[0]
            if (root / ENTRY_RELATIVE_PATH).exists():
                return root

    if (marketplace_dir / ENTRY_RELATIVE_PATH).exists():
        return marketplace_dir

    return None


def relay(root: Path, stdin_data: str) -> int:
    """Run the HUD entry point under ``root`` with ``stdin_data`` on its stdin."""
    env = dict(os.environ)
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = str(root) + (os.pathsep + existing if existing else "")

    completed = subprocess.run(
        [sys.executable, "-m", ENTRY_MODULE],
        input=stdin_data.encode("utf-8"),
        env=env,
        check=False,
    )
    return completed.returncode


def main(stdin=None) -> int:
    root = find_hud_root()
    if root is None:
        print(NOT_FOUND_MESSAGE)
        return 0

    stdin_data = capture_stdin_with_deadline(stdin, timeout_ms=RELAY_CAPTURE_TIMEOUT_MS)
    return relay(root, stdin_data)


if __name__ == "__main__":
    sys.exit(main())
