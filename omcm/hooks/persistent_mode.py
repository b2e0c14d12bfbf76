#!/usr/bin/env python3
"""
Stop hook: warn before ending a session while a persistent mode is active.

Ralph mode with unfinished verification gets a detailed reminder; any other
active mode gets a short notice. The stop itself is never blocked.

Exit codes:
    0: Always
"""

import functools
import sys

from omcm.hooks.dispatcher import configure_logging, run_hook
from omcm.hooks.schemas import HookRequest, HookResponse
from omcm.lib.mode_state import check_active_states, check_verification_status
from omcm.lib.stdin_capture import capture_stdin_with_deadline

STOP_CAPTURE_TIMEOUT_MS = 2000


def build_stop_response(state_dir=None) -> HookResponse | None:
    active_modes = check_active_states(state_dir)
    if not active_modes:
        return None

    ralph = next((m for m in active_modes if m.mode == "ralph"), None)
    if ralph is not None:
        complete, missing = check_verification_status(ralph.state)
        if not complete:
            blockers = ralph.state.blockers
            blockers_str = ""
            if blockers:
                blockers_str = "\n\n**Blockers**:\n" + "\n".join(f"- {b}" for b in blockers)
            return HookResponse(
                allow=True,
                continue_=True,
                message=(
                    "⚠️ **Ralph 모드 활성화 상태**\n\n"
                    "작업이 아직 완료되지 않았습니다.\n\n"
                    f"**미완료 검증 항목**: {', '.join(missing)}\n"
                    f"**반복 횟수**: {ralph.state.iterations}회{blockers_str}\n\n"
                    "작업을 계속하시겠습니까? 강제 종료: `cancel --force`"
                ),
            )

    others = [m for m in active_modes if m.mode != "ralph"]
    if others:
        mode_list = "\n".join(
            f"- **{m.mode}** (시작: {m.state.startedAt or 'N/A'})" for m in others
        )
        return HookResponse(
            allow=True,
            continue_=True,
            message=(
                "ℹ️ **활성 모드 감지**\n\n"
                f"다음 모드가 활성화되어 있습니다:\n{mode_list}\n\n"
                "종료하려면 `cancel` 명령을 사용하세요."
            ),
        )

    return None


def handle(request: HookRequest) -> HookResponse | None:
    return build_stop_response()


def main() -> int:
    configure_logging()
    capture = functools.partial(
        capture_stdin_with_deadline, timeout_ms=STOP_CAPTURE_TIMEOUT_MS
    )
    # Stop events may arrive with no payload at all
    return run_hook(handle, capture=capture, require_payload=False)


if __name__ == "__main__":
    sys.exit(main())
