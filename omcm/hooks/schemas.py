from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Input Schema ---


class HookRequest(BaseModel):
    """
    Normalized hook request.

    Built once from the JSON object the host writes on stdin. The host is not
    consistent about key naming, so the dispatcher folds the known variants
    (``tool_name`` / ``toolName`` etc.) into these fields and keeps the
    original payload in ``raw_input``.
    """

    hook_event: str | None = Field(
        None, description="Event name (e.g., PreToolUse, UserPromptSubmit, Stop)."
    )
    tool_name: str = Field("", description="Tool being invoked, empty if none.")
    tool_input: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = None
    cwd: str | None = None

    # Raw Input (for fallback/passthrough)
    raw_input: dict[str, Any] = Field(default_factory=dict)


# --- Output Schemas ---


class HookSpecificOutput(BaseModel):
    """
    Nested output used by UserPromptSubmit-style hooks to inject context.
    """

    hookEventName: str
    additionalContext: str | None = None


class HookResponse(BaseModel):
    """
    The one line every hook writes to stdout.

    ``allow`` is always present. Everything else is omitted when unset.
    """

    model_config = ConfigDict(populate_by_name=True)

    allow: bool = True
    message: str | None = None
    suppressOutput: bool | None = None
    continue_: bool | None = Field(default=None, alias="continue")
    hookSpecificOutput: HookSpecificOutput | None = None

    def to_json_line(self) -> str:
        return self.model_dump_json(exclude_none=True, by_alias=True) + "\n"


def default_allow() -> HookResponse:
    """Pass-through response: allow, and keep it out of the transcript."""
    return HookResponse(allow=True, suppressOutput=True)
