"""
Minimal HUD status line.

Format:  [OMCM] 5h:28% wk:16% | in:1.2k out:300 | ralph
Segments without data are left out.
"""

import json
import sys
from dataclasses import dataclass
from typing import Any

from omcm.lib.capabilities import load_capabilities
from omcm.lib.mode_state import check_active_states
from omcm.lib.usage_model import UsageRecord

RED = "\x1b[31m"
YELLOW = "\x1b[33m"
GREEN = "\x1b[32m"
DIM = "\x1b[2m"
RESET = "\x1b[0m"

HUD_PREFIX = "[OMCM]"


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def parse_tokens(stdin_data: str) -> TokenUsage:
    """Session token totals from the host's status JSON (zeros if absent)."""
    result = TokenUsage()
    if not stdin_data or not stdin_data.strip():
        return result

    try:
        data = json.loads(stdin_data)
    except ValueError:
        return result
    if not isinstance(data, dict):
        return result

    context_window = data.get("context_window")
    if isinstance(context_window, dict):
        if "total_input_tokens" in context_window:
            result.input = _int(context_window.get("total_input_tokens"))
            result.output = _int(context_window.get("total_output_tokens"))
        elif isinstance(context_window.get("current_usage"), dict):
            usage = context_window["current_usage"]
            result.input = _int(usage.get("input_tokens")) + _int(
                usage.get("cache_read_input_tokens")
            )
            result.output = _int(usage.get("output_tokens"))

    if result.input == 0 and result.output == 0:
        tokens = data.get("tokens")
        usage = data.get("usage")
        if isinstance(tokens, dict):
            result.input = _int(tokens.get("input") or tokens.get("inputTokens"))
            result.output = _int(tokens.get("output") or tokens.get("outputTokens"))
        elif "inputTokens" in data:
            result.input = _int(data.get("inputTokens"))
            result.output = _int(data.get("outputTokens"))
        elif isinstance(usage, dict):
            result.input = _int(usage.get("input_tokens") or usage.get("prompt_tokens"))
            result.output = _int(usage.get("output_tokens") or usage.get("completion_tokens"))

    return result


def format_tokens(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}k"
    return str(count)


def usage_color(percent: float) -> str:
    if percent >= 90:
        return RED
    if percent >= 70:
        return YELLOW
    return GREEN


def render_usage(usage: UsageRecord | None) -> str | None:
    if usage is None:
        return None
    return (
        f"5h:{usage_color(usage.five_hour)}{usage.five_hour:g}%{RESET} "
        f"wk:{usage_color(usage.weekly)}{usage.weekly:g}%{RESET}"
    )


def render_status_line(
    stdin_data: str, usage: UsageRecord | None, active_modes: list[str]
) -> str:
    usage_part = render_usage(usage)
    segments = [f"{HUD_PREFIX} {usage_part}" if usage_part else HUD_PREFIX]

    tokens = parse_tokens(stdin_data)
    if tokens.input or tokens.output:
        segments.append(
            f"{DIM}in:{format_tokens(tokens.input)} out:{format_tokens(tokens.output)}{RESET}"
        )

    if active_modes:
        segments.append(",".join(active_modes))

    return " | ".join(segments)


def main(stdin_data: str, stdout=None) -> int:
    stdout = stdout or sys.stdout
    usage = load_capabilities().usage_reader.read()
    modes = [m.mode for m in check_active_states()]
    print(render_status_line(stdin_data, usage, modes), file=stdout)
    return 0
