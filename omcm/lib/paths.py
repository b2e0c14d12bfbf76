"""
Path resolution for the omcm plugin.

All locations derive from the user's home directory so that tests can
redirect them with ``HOME``. Individual roots can be overridden:

- $OMCM_HOME: state root (default ~/.omcm)
- $OMCM_CONFIG_DIR: plugin config directory (default ~/.claude/plugins/omcm)
- $OMCM_USAGE_CACHE: HUD usage cache file
"""

from __future__ import annotations

import os
from pathlib import Path


def get_claude_dir() -> Path:
    return Path.home() / ".claude"


def get_omcm_home() -> Path:
    """State root for mode and fusion files."""
    override = os.environ.get("OMCM_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".omcm"


def get_state_dir() -> Path:
    return get_omcm_home() / "state"


def get_fusion_state_path() -> Path:
    return get_omcm_home() / "fusion-state.json"


def get_config_dir() -> Path:
    override = os.environ.get("OMCM_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return get_claude_dir() / "plugins" / "omcm"


def get_usage_cache_path() -> Path:
    override = os.environ.get("OMCM_USAGE_CACHE")
    if override:
        return Path(override).expanduser()
    return get_claude_dir() / "plugins" / "oh-my-claudecode" / ".usage-cache.json"


def get_plugin_cache_dir() -> Path:
    """Versioned install cache: <dir>/<X.Y.Z>/omcm/..."""
    return get_claude_dir() / "plugins" / "cache" / "omcm" / "omcm"


def get_marketplace_dir() -> Path:
    return get_claude_dir() / "plugins" / "marketplaces" / "omcm"


def get_handoff_dir(project_dir: str | Path) -> Path:
    return Path(project_dir) / ".omcm" / "handoff"
