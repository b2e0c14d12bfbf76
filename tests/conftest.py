"""Shared fixtures: every test runs against a throwaway home directory."""

import io
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

OMCM_ENV_VARS = (
    "OMCM_HOME",
    "OMCM_CONFIG_DIR",
    "OMCM_USAGE_CACHE",
    "OMCM_STDIN_TIMEOUT_MS",
    "OMCM_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in OMCM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


class SingleReadStream:
    """Binary stdin double that fails the test if it is read more than once."""

    def __init__(self, data: bytes):
        self._data = data
        self.reads = 0

    def isatty(self) -> bool:
        return False

    def read(self, *args) -> bytes:
        self.reads += 1
        if self.reads > 1:
            raise AssertionError("stdin was read twice")
        return self._data


@pytest.fixture
def single_read_stream():
    return SingleReadStream


@pytest.fixture
def stdout():
    return io.StringIO()
