#!/usr/bin/env python3
"""
PreToolUse hook: announce AskUserQuestion before it runs.

Passes every other tool through untouched. Never blocks.

Exit codes:
    0: Always
"""

import sys

from omcm.hooks.dispatcher import configure_logging, run_hook, truncate
from omcm.hooks.schemas import HookRequest, HookResponse
from omcm.lib.stdin_capture import capture_stdin_with_deadline

TARGET_TOOL = "AskUserQuestion"
MESSAGE_PREFIX = "[OMCM AskUserQuestion]"


def extract_question(tool_input: dict) -> str:
    for key in ("question", "prompt"):
        value = tool_input.get(key)
        if value and isinstance(value, str):
            return value
    return ""


def handle(request: HookRequest) -> HookResponse | None:
    if request.tool_name != TARGET_TOOL:
        return None

    question = extract_question(request.tool_input)
    if question:
        message = f"{MESSAGE_PREFIX} 사용자 질문: {truncate(question)}"
    else:
        message = f"{MESSAGE_PREFIX} 사용자 확인이 필요합니다."
    return HookResponse(allow=True, message=message)


def main() -> int:
    configure_logging()
    return run_hook(handle, capture=capture_stdin_with_deadline)


if __name__ == "__main__":
    sys.exit(main())
