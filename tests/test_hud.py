"""HUD entry point, renderer and version-agnostic wrapper."""

import io
import json

import pytest

from omcm.hud import entry, renderer, wrapper
from omcm.hud.renderer import (
    DIM,
    RESET,
    TokenUsage,
    format_tokens,
    parse_tokens,
    render_status_line,
)
from omcm.hud.wrapper import NOT_FOUND_MESSAGE, find_hud_root, relay
from omcm.lib.mode_state import ModeState, write_mode_state
from omcm.lib.usage_model import UsageRecord
from tests.conftest import PROJECT_ROOT

STATUS_JSON = '{"context_window": {"total_input_tokens": 1500, "total_output_tokens": 300}}'


@pytest.mark.parametrize(
    "stdin_data, expected",
    [
        ("", TokenUsage(0, 0)),
        ("garbage", TokenUsage(0, 0)),
        ("[1]", TokenUsage(0, 0)),
        (STATUS_JSON, TokenUsage(1500, 300)),
        (
            '{"context_window": {"current_usage": {"input_tokens": 10, "cache_read_input_tokens": 5, "output_tokens": 2}}}',
            TokenUsage(15, 2),
        ),
        ('{"tokens": {"inputTokens": 7, "output": 3}}', TokenUsage(7, 3)),
        ('{"inputTokens": "9", "outputTokens": null}', TokenUsage(9, 0)),
        ('{"usage": {"prompt_tokens": 4, "completion_tokens": 1}}', TokenUsage(4, 1)),
    ],
)
def test_parse_tokens(stdin_data, expected):
    assert parse_tokens(stdin_data) == expected


def test_format_tokens():
    assert format_tokens(999) == "999"
    assert format_tokens(1500) == "1.5k"
    assert format_tokens(2_500_000) == "2.5M"


def test_status_line_without_data_is_prefix_only():
    assert render_status_line("", None, []) == "[OMCM]"


def test_status_line_segments():
    line = render_status_line(STATUS_JSON, UsageRecord(five_hour=95, weekly=20), ["ralph", "ecomode"])

    segments = line.split(" | ")
    assert segments[0] == f"[OMCM] 5h:{renderer.RED}95%{RESET} wk:{renderer.GREEN}20%{RESET}"
    assert segments[1] == f"{DIM}in:1.5k out:300{RESET}"
    assert segments[2] == "ralph,ecomode"


def test_renderer_main_reads_state_and_cache(isolated_home, tmp_path, monkeypatch):
    cache = tmp_path / "cache.json"
    cache.write_text(json.dumps({"data": {"fiveHourPercent": 75, "weeklyPercent": 10}}))
    monkeypatch.setenv("OMCM_USAGE_CACHE", str(cache))
    write_mode_state("ultrawork", ModeState(active=True), isolated_home / ".omcm" / "state")
    out = io.StringIO()

    assert renderer.main(STATUS_JSON, stdout=out) == 0

    line = out.getvalue().rstrip("\n")
    assert line.startswith(f"[OMCM] 5h:{renderer.YELLOW}75%")
    assert line.endswith(" | ultrawork")


def test_entry_captures_then_renders(single_read_stream, capsys):
    stream = single_read_stream(STATUS_JSON.encode("utf-8"))

    assert entry.main(stdin=stream) == 0

    assert stream.reads == 1
    assert "in:1.5k out:300" in capsys.readouterr().out


def test_entry_reports_missing_renderer(capsys):
    code = entry.main(stdin=io.BytesIO(b"{}"), renderer_module="omcm.hud.no_such_renderer")

    assert code == 1
    assert capsys.readouterr().err.startswith("[OMCM] Error: ")


def _install(root):
    entry_file = root / "omcm" / "hud" / "entry.py"
    entry_file.parent.mkdir(parents=True)
    entry_file.write_text("")
    return root


def test_find_hud_root_picks_newest_version(tmp_path):
    cache_dir = tmp_path / "cache"
    _install(cache_dir / "1.2.0")
    _install(cache_dir / "1.10.0")
    (cache_dir / "latest").mkdir()

    assert find_hud_root(cache_dir, tmp_path / "marketplace") == cache_dir / "1.10.0"


def test_find_hud_root_falls_back_to_marketplace(tmp_path):
    cache_dir = tmp_path / "cache"
    (cache_dir / "2.0.0").mkdir(parents=True)
    marketplace = _install(tmp_path / "marketplace")

    assert find_hud_root(cache_dir, marketplace) == marketplace


def test_find_hud_root_none(tmp_path):
    assert find_hud_root(tmp_path / "cache", tmp_path / "marketplace") is None


def test_wrapper_without_install_prints_hint(capsys):
    assert wrapper.main(stdin=io.BytesIO(b"{}")) == 0
    assert capsys.readouterr().out.strip() == NOT_FOUND_MESSAGE


def test_relay_runs_entry_with_captured_stdin(capfd):
    code = relay(PROJECT_ROOT, STATUS_JSON)

    assert code == 0
    assert "in:1.5k out:300" in capfd.readouterr().out
