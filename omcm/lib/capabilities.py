"""Optional collaborators for hooks, with null-object defaults.

Hooks load these after stdin has been captured. Each capability is built from
its real module when that module imports and constructs cleanly, and falls back
to a documented default otherwise, so a broken collaborator never breaks the
hook that uses it.
"""

from __future__ import annotations

import copy
import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TypeVar

from omcm.lib.usage_model import ThresholdResult, UsageRecord

logger = logging.getLogger(__name__)

USAGE_MODULE = "omcm.lib.usage"
CONFIG_MODULE = "omcm.lib.config"

# Used when the config module itself cannot be loaded
FALLBACK_CONFIG: dict[str, Any] = {
    "threshold": 90,
    "keywords": ["opencode", "handoff", "전환", "opencode로", "오픈코드"],
    "modeKeywords": {
        "ecomode": ["eco:", "ecomode:", "eco ", "효율", "절약", "budget", "save-tokens"],
        "ralph": ["ralph:", "ralph ", "don't stop", "must complete", "끝까지", "완료할때까지", "멈추지마"],
        "cancel": ["cancelomc", "stopomc", "cancel", "stop", "abort", "취소", "중지"],
    },
}


class UsageReader(Protocol):
    def read(self) -> UsageRecord | None: ...


class ThresholdChecker(Protocol):
    def check(self, usage: UsageRecord | None, threshold: float) -> ThresholdResult: ...


class ConfigLoader(Protocol):
    def load(self) -> dict[str, Any]: ...


class NullUsageReader:
    """No usage data."""

    def read(self) -> UsageRecord | None:
        return None


class NullThresholdChecker:
    """Never over threshold."""

    def check(self, usage: UsageRecord | None, threshold: float) -> ThresholdResult:
        return ThresholdResult(exceeded=False, type=None, percent=0)


class FallbackConfigLoader:
    """Built-in keyword sets and threshold."""

    def load(self) -> dict[str, Any]:
        return copy.deepcopy(FALLBACK_CONFIG)


@dataclass
class Capabilities:
    usage_reader: UsageReader = field(default_factory=NullUsageReader)
    threshold_checker: ThresholdChecker = field(default_factory=NullThresholdChecker)
    config_loader: ConfigLoader = field(default_factory=FallbackConfigLoader)


T = TypeVar("T")


def _build(module_name: str, attr: str, default: Callable[[], T]) -> T:
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)()
    except Exception as e:
        logger.debug("Using default for %s.%s: %s", module_name, attr, e)
        return default()


def load_capabilities(
    usage_module: str = USAGE_MODULE, config_module: str = CONFIG_MODULE
) -> Capabilities:
    """Import and construct each collaborator, substituting defaults on failure."""
    return Capabilities(
        usage_reader=_build(usage_module, "CacheUsageReader", NullUsageReader),
        threshold_checker=_build(usage_module, "UsageThresholdChecker", NullThresholdChecker),
        config_loader=_build(config_module, "FileConfigLoader", FallbackConfigLoader),
    )


def load_config_safely(capabilities: Capabilities) -> dict[str, Any]:
    """Run the config loader, falling back to the built-in config if it raises."""
    try:
        config = capabilities.config_loader.load()
    except Exception as e:
        logger.debug("Config loader failed: %s", e)
        return FallbackConfigLoader().load()
    if not isinstance(config, dict):
        return FallbackConfigLoader().load()
    return config
