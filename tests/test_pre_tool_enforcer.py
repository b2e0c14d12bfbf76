"""AskUserQuestion notifier, in-process and as a real hook process."""

import functools
import io
import json
import os
import subprocess
import sys
import time

from omcm.hooks import pre_tool_enforcer
from omcm.hooks.dispatcher import dispatch, run_hook
from omcm.lib.stdin_capture import capture_stdin_with_deadline
from tests.conftest import PROJECT_ROOT

PREFIX = "[OMCM AskUserQuestion] 사용자 질문: "


def _respond(payload) -> dict:
    raw = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return json.loads(dispatch(raw, pre_tool_enforcer.handle).to_json_line())


def test_other_tools_pass_through():
    assert _respond('{"tool_name":"OtherTool"}') == {"allow": True, "suppressOutput": True}


def test_short_question_is_echoed_verbatim():
    question = "배포를 진행할까요?"
    response = _respond({"tool_name": "AskUserQuestion", "tool_input": {"question": question}})

    assert response == {"allow": True, "message": PREFIX + question}


def test_long_question_is_truncated_to_220_chars():
    question = "가" * 150 + "b" * 150
    response = _respond({"tool_name": "AskUserQuestion", "tool_input": {"question": question}})

    assert response["message"] == PREFIX + question[:220] + "..."
    assert question not in response["message"]


def test_question_of_exactly_220_chars_is_not_truncated():
    question = "q" * 220
    response = _respond({"tool_name": "AskUserQuestion", "tool_input": {"question": question}})

    assert response["message"] == PREFIX + question


def test_prompt_field_is_used_when_question_missing():
    response = _respond({"toolName": "AskUserQuestion", "toolInput": {"prompt": "어느 쪽?"}})

    assert response["message"] == PREFIX + "어느 쪽?"


def test_missing_question_uses_generic_message():
    response = _respond({"tool_name": "AskUserQuestion", "tool_input": {}})

    assert response == {
        "allow": True,
        "message": "[OMCM AskUserQuestion] 사용자 확인이 필요합니다.",
    }


def test_open_pipe_still_gets_a_response_within_deadline():
    read_fd, write_fd = os.pipe()
    reader = os.fdopen(read_fd, "rb")
    out = io.StringIO()
    payload = {"tool_name": "AskUserQuestion", "tool_input": {"question": "ok?"}}
    try:
        os.write(write_fd, json.dumps(payload).encode("utf-8"))

        start = time.monotonic()
        run_hook(
            pre_tool_enforcer.handle,
            capture=functools.partial(capture_stdin_with_deadline, timeout_ms=300),
            stdin=reader,
            stdout=out,
        )
        elapsed = time.monotonic() - start
    finally:
        os.close(write_fd)

    assert elapsed < 3.0
    assert json.loads(out.getvalue())["message"] == PREFIX + "ok?"


def _run_process(stdin_bytes: bytes, home) -> subprocess.CompletedProcess:
    env = dict(os.environ, HOME=str(home))
    return subprocess.run(
        [sys.executable, "-m", "omcm.hooks.pre_tool_enforcer"],
        input=stdin_bytes,
        capture_output=True,
        cwd=str(PROJECT_ROOT),
        env=env,
        timeout=30,
    )


def test_process_answers_with_one_line_and_exit_zero(isolated_home):
    payload = {"tool_name": "AskUserQuestion", "tool_input": {"question": "진행?"}}
    completed = _run_process(json.dumps(payload).encode("utf-8"), isolated_home)

    assert completed.returncode == 0
    lines = completed.stdout.decode("utf-8").splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0]) == {"allow": True, "message": PREFIX + "진행?"}


def test_process_with_empty_stdin_is_default_allow(isolated_home):
    completed = _run_process(b"", isolated_home)

    assert completed.returncode == 0
    assert json.loads(completed.stdout) == {"allow": True, "suppressOutput": True}


def test_process_exits_cleanly_when_host_keeps_stdin_open(isolated_home):
    env = dict(os.environ, HOME=str(isolated_home), OMCM_STDIN_TIMEOUT_MS="300")
    payload = {"tool_name": "AskUserQuestion", "tool_input": {"question": "hi"}}
    process = subprocess.Popen(
        [sys.executable, "-m", "omcm.hooks.pre_tool_enforcer"],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=str(PROJECT_ROOT),
        env=env,
    )
    try:
        process.stdin.write(json.dumps(payload).encode("utf-8"))
        process.stdin.flush()
        returncode = process.wait(timeout=30)
        out = process.stdout.read().decode("utf-8")
        err = process.stderr.read().decode("utf-8")
    finally:
        process.stdin.close()
        process.stdout.close()
        process.stderr.close()

    assert returncode == 0, err
    assert "Fatal Python error" not in err
    lines = out.splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0]) == {"allow": True, "message": PREFIX + "hi"}
