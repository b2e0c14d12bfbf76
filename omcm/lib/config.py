"""
Plugin configuration.

User settings live in the plugin config directory as ``config.yaml``,
``config.yml`` or ``config.json`` (first match wins) and are deep-merged over
``DEFAULT_CONFIG``. A missing or broken file yields the defaults.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from omcm.lib.paths import get_config_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("config.yaml", "config.yml", "config.json")

# Mode name -> trigger keywords (matched as lowercase substrings of the prompt)
DEFAULT_MODE_KEYWORDS: dict[str, list[str]] = {
    "ecomode": ["eco:", "ecomode:", "eco ", "효율", "절약", "budget", "save-tokens"],
    "ralph": ["ralph:", "ralph ", "don't stop", "must complete", "끝까지", "완료할때까지", "멈추지마"],
    "cancel": ["cancelomc", "stopomc", "cancel", "stop", "abort", "취소", "중지"],
}

DEFAULT_CONFIG: dict[str, Any] = {
    # true: always fusion mode, false: switch on usage
    "fusionDefault": False,
    "threshold": 90,
    "autoHandoff": False,
    "keywords": ["handoff", "전환"],
    "modeKeywords": DEFAULT_MODE_KEYWORDS,
    "routing": {
        "enabled": True,
        "usageThreshold": 70,
        "maxMcpWorkers": 3,
        "autoDelegate": True,
    },
    "context": {
        "includeRecentFiles": True,
        "recentFilesLimit": 10,
        "includeTodos": True,
        "includeDecisions": True,
        "maxContextLength": 50000,
    },
    "notifications": {
        "showOnThreshold": True,
        "showOnKeyword": True,
        "quietMode": False,
    },
}


def deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into a copy of ``target``; nested dicts merge, all else replaces."""
    result = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def find_config_path(config_dir: Path | None = None) -> Path | None:
    directory = config_dir or get_config_dir()
    for name in CONFIG_FILENAMES:
        candidate = directory / name
        if candidate.exists():
            return candidate
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config root must be a mapping, got {type(data).__name__}")
    return data


def load_config(config_dir: Path | None = None) -> dict[str, Any]:
    """
    Load configuration merged over defaults.

    Args:
        config_dir: Directory to search (defaults to ``get_config_dir()``)

    Returns:
        Config dict. Defaults if no config file exists or it cannot be parsed.
    """
    path = find_config_path(config_dir)
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        user_config = _read_config_file(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
        return copy.deepcopy(DEFAULT_CONFIG)

    return deep_merge(DEFAULT_CONFIG, user_config)


def save_config(config: dict[str, Any], config_dir: Path | None = None) -> Path:
    """Write ``config`` atomically, keeping the existing file's format.

    Returns:
        Path written.
    """
    directory = config_dir or get_config_dir()
    directory.mkdir(parents=True, exist_ok=True)
    path = find_config_path(directory) or directory / "config.json"

    if path.suffix == ".json":
        text = json.dumps(config, indent=2, ensure_ascii=False)
    else:
        text = yaml.safe_dump(config, allow_unicode=True, sort_keys=False)

    fd, temp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp", text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        Path(temp_path).replace(path)
    except Exception:
        Path(temp_path).unlink(missing_ok=True)
        raise
    return path


def get_config_value(
    key: str, default: Any = None, config: dict[str, Any] | None = None
) -> Any:
    """Look up a dotted key such as ``"context.recentFilesLimit"``."""
    value: Any = config if config is not None else load_config()
    for part in key.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return default
    return default if value is None else value


def set_config_value(key: str, value: Any, config_dir: Path | None = None) -> None:
    """Set a dotted key and persist the whole config."""
    config = load_config(config_dir)
    parts = key.split(".")
    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
    save_config(config, config_dir)


def _keyword_list(value: Any) -> list[str]:
    # a bare string is one keyword, not a sequence of characters
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [kw for kw in value if isinstance(kw, str) and kw.strip()]


def get_keywords(config: dict[str, Any]) -> list[str]:
    """Handoff keywords from ``config``; defaults if none are usable."""
    return _keyword_list(config.get("keywords")) or list(DEFAULT_CONFIG["keywords"])


def get_threshold(config: dict[str, Any]) -> float:
    """Usage threshold percent from ``config``; the default if not a positive number."""
    value = config.get("threshold")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return DEFAULT_CONFIG["threshold"]
    return value


def get_mode_keywords(config: dict[str, Any]) -> dict[str, list[str]]:
    """Mode -> keywords from ``config``, skipping malformed entries."""
    raw = config.get("modeKeywords") or {}
    if not isinstance(raw, dict):
        return {}
    mode_keywords = {}
    for mode, keywords in raw.items():
        cleaned = _keyword_list(keywords)
        if cleaned:
            mode_keywords[str(mode)] = cleaned
    return mode_keywords


class FileConfigLoader:
    """ConfigLoader reading the plugin config directory."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir

    def load(self) -> dict[str, Any]:
        return load_config(self.config_dir)
