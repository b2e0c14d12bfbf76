#!/usr/bin/env python3
"""
UserPromptSubmit hook: mode keywords, delegation hints, and handoff triggers.

Checks the submitted prompt, in order:

    0. Mode keywords (ecomode, ralph, cancel, ...) -> persist mode state
    1. Large session token counts -> suggest delegating to a subagent
    2. Handoff keywords -> write a pending-handoff marker
    3. Plan usage over threshold -> write a pending-handoff marker

The first match answers; nothing matching is a silent pass-through.

stdin is captured before the usage and config collaborators are imported.
Each collaborator falls back to a built-in default if it cannot be loaded.

Exit codes:
    0: Always
"""

import json
import os
import sys
from typing import Any

from omcm.hooks.dispatcher import configure_logging, run_hook
from omcm.hooks.schemas import HookRequest, HookResponse, HookSpecificOutput
from omcm.lib.capabilities import Capabilities, load_capabilities, load_config_safely
from omcm.lib.stdin_capture import capture_stdin

EVENT_NAME = "UserPromptSubmit"
HANDOFF_SCRIPT = "/opt/oh-my-claude-money/scripts/handoff-to-opencode.sh"
EXPORT_SCRIPT = "/opt/oh-my-claude-money/scripts/export-context.sh"

DELEGATION_TOKEN_THRESHOLD = 5_000_000
GENERIC_DELEGATION_TOKEN_THRESHOLD = 10_000_000

PROMPT_PATHS = (
    ("prompt",),
    ("message",),
    ("content",),
    ("text",),
    ("tool_input", "prompt"),
    ("tool_input", "message"),
)

# (agent type, patterns, suggestion) checked in order
DELEGATION_PATTERNS = (
    (
        "explore",
        ("찾아줘", "검색해", "어디에", "어디서", "find ", "search ", "where is", "look for", "grep "),
        "탐색 작업은 explore 에이전트에 위임하면 효율적입니다.",
    ),
    (
        "architect",
        ("분석해", "분석하", "조사해", "조사하", "analyze", "investigate", "debug", "디버그", "원인"),
        "분석/조사 작업은 architect 에이전트에 위임하면 효율적입니다.",
    ),
    (
        "executor",
        ("리팩토링", "리팩터링", "수정해", "변경해", "구현해", "refactor", "implement", "modify", "change"),
        "구현/수정 작업은 executor 에이전트에 위임하면 효율적입니다.",
    ),
    (
        "researcher",
        ("알려줘", "설명해", "문서", "explain", "document", "research", "연구"),
        "리서치/문서 작업은 researcher 에이전트에 위임하면 효율적입니다.",
    ),
)


def extract_prompt(payload: dict[str, Any]) -> str:
    """First string found at a known prompt location, else the payload as JSON."""
    for path in PROMPT_PATHS:
        value: Any = payload
        for part in path:
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                value = None
                break
        if isinstance(value, str):
            return value
    return json.dumps(payload, ensure_ascii=False)


def detect_keyword(prompt: str, keywords: list[str]) -> str | None:
    if not prompt:
        return None
    lower_prompt = prompt.lower()
    for keyword in keywords:
        if keyword.lower() in lower_prompt:
            return keyword
    return None


def detect_mode_keyword(
    prompt: str, mode_keywords: dict[str, list[str]]
) -> tuple[str, str] | None:
    """Return (mode, keyword) for the first mode whose keyword occurs in ``prompt``."""
    for mode, keywords in mode_keywords.items():
        keyword = detect_keyword(prompt, keywords)
        if keyword is not None:
            return mode, keyword
    return None


def detect_delegation_pattern(prompt: str) -> tuple[str, str] | None:
    """Return (agent type, suggestion) for delegable work, if recognizable."""
    if not prompt:
        return None
    lower_prompt = prompt.lower()
    for agent_type, patterns, suggestion in DELEGATION_PATTERNS:
        if any(pattern in lower_prompt for pattern in patterns):
            return agent_type, suggestion
    return None


def _context_response(context: str) -> HookResponse:
    return HookResponse(
        allow=True,
        continue_=True,
        hookSpecificOutput=HookSpecificOutput(
            hookEventName=EVENT_NAME, additionalContext=context
        ),
    )


def _format_usage(usage) -> str:
    if usage is None:
        return "N/A"
    return f"5시간: {usage.five_hour:g}%, 주간: {usage.weekly:g}%"


class HandoffDetector:
    """Prompt handler bound to its collaborators."""

    def __init__(self, capabilities: Capabilities):
        self.capabilities = capabilities
        # Deferred: these modules are only needed once a request is in hand
        from omcm.lib import config, mode_state

        self.config_module = config
        self.mode_state = mode_state

    def __call__(self, request: HookRequest) -> HookResponse | None:
        payload = request.raw_input
        prompt = extract_prompt(payload)
        project_dir = request.cwd or os.getcwd()

        config = load_config_safely(self.capabilities)
        keywords = self.config_module.get_keywords(config)
        threshold = self.config_module.get_threshold(config)
        mode_keywords = self.config_module.get_mode_keywords(config)

        detected_mode = detect_mode_keyword(prompt, mode_keywords)
        if detected_mode:
            mode, keyword = detected_mode
            self.mode_state.save_mode_state(mode, project_dir)
            return _context_response(
                f"🎯 **{mode.upper()} 모드 감지**\n\n"
                f'키워드 "{keyword}"로 {mode} 모드가 활성화됩니다.'
            )

        delegation = self._delegation_hint(prompt)
        if delegation:
            return _context_response(delegation)

        detected_keyword = detect_keyword(prompt, keywords)
        if detected_keyword:
            usage = self.capabilities.usage_reader.read()
            self.mode_state.save_handoff_state("keyword", usage, project_dir)
            return _context_response(
                "🔄 **OpenCode 전환 감지**\n\n"
                f'키워드 "{detected_keyword}"가 감지되었습니다.\n\n'
                f"현재 사용량: {_format_usage(usage)}\n\n"
                "전환을 진행하려면 터미널에서:\n"
                f"```bash\ncd {project_dir} && {HANDOFF_SCRIPT}\n```\n\n"
                "또는 컨텍스트만 저장:\n"
                f"```bash\n{EXPORT_SCRIPT}\n```"
            )

        usage = self.capabilities.usage_reader.read()
        result = self.capabilities.threshold_checker.check(usage, threshold)
        if result.exceeded:
            self.mode_state.save_handoff_state("usage_threshold", usage, project_dir)
            type_label = "5시간" if result.type == "fiveHour" else "주간"
            return _context_response(
                "⚠️ **사용량 임계치 도달**\n\n"
                f"{type_label} 사용량이 **{result.percent:g}%**에 도달했습니다.\n\n"
                "작업 연속성을 위해 OpenCode로 전환을 권장합니다:\n"
                f"```bash\ncd {project_dir} && {HANDOFF_SCRIPT}\n```\n\n"
                "계속 사용하시려면 이 메시지를 무시하세요."
            )

        return None

    def _delegation_hint(self, prompt: str) -> str | None:
        tokens = self.mode_state.get_session_input_tokens()
        if tokens < DELEGATION_TOKEN_THRESHOLD:
            return None

        millions = round(tokens / 1_000_000)
        pattern = detect_delegation_pattern(prompt)
        if pattern:
            agent_type, suggestion = pattern
            return (
                f"[OMCM 토큰 절약 모드] 세션 입력 토큰 {millions}M. {suggestion} "
                f'Task(subagent_type="oh-my-claudecode:{agent_type}")로 위임을 검토하세요.'
            )
        if tokens >= GENERIC_DELEGATION_TOKEN_THRESHOLD:
            return (
                f"[OMCM 토큰 절약 모드] 세션 입력 토큰 {millions}M. "
                "코드 탐색/분석/리서치 작업은 Task 에이전트에 위임하여 컨텍스트를 절약하세요."
            )
        return None


def load_handler() -> HandoffDetector:
    return HandoffDetector(load_capabilities())


def main() -> int:
    configure_logging()
    return run_hook(load_handler=load_handler, capture=capture_stdin)


if __name__ == "__main__":
    sys.exit(main())
