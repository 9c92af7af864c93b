"""ACP client side of a relayed session.

Agent notifications become session events, permission requests go through
the approval relay, and the arbiter's prompt/settings collaborators talk to
the agent connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from acp import Client, RequestError, RequestPermissionResponse, SessionNotification, text_block
from acp.schema import (
    AgentMessageChunk,
    AgentPlanUpdate,
    AgentThoughtChunk,
    AllowedOutcome,
    CurrentModeUpdate,
    DeniedOutcome,
    TextContentBlock,
    ToolCallProgress,
    ToolCallStart,
    UserMessageChunk,
)

from tandem.approvals import (
    ELICITATION_METHOD,
    ApprovalDecision,
    ApprovalRelay,
    ApprovalRequest,
)
from tandem.errors import ApprovalValidationError, SettingsCommitError
from tandem.events import EventType, SessionEvent
from tandem.log_utils import log_context, log_event
from tandem.message_buffer import MessageBuffer
from tandem.settings import PermissionMode, RunSettings

logger = logging.getLogger(__name__)

INVALID_PARAMS = -32602

_OPTION_KINDS: dict[ApprovalDecision, tuple[str, ...]] = {
    ApprovalDecision.APPROVED: ("allow_once", "allow_always"),
    ApprovalDecision.APPROVED_FOR_SESSION: ("allow_always", "allow_once"),
    ApprovalDecision.DENIED: ("reject_once", "reject_always"),
    ApprovalDecision.ABORT: (),
}


def select_permission_option(decision: ApprovalDecision, options: list[Any]) -> str | None:
    """Pick the ACP option id matching a decision, or None to cancel."""
    for kind in _OPTION_KINDS[decision]:
        for option in options:
            if getattr(option, "kind", None) == kind:
                return option.option_id
    return None


def approval_request_from_tool_call(tool_call: Any, session_id: str) -> ApprovalRequest:
    raw_input = getattr(tool_call, "raw_input", None) or {}
    if not isinstance(raw_input, dict):
        raw_input = {}
    params: dict[str, Any] = {
        "message": getattr(tool_call, "title", None) or "Allow the agent to continue?",
        "requestedSchema": {"type": "object", "properties": {}},
        "codex_elicitation": "exec-approval" if raw_input.get("command") else "tool-approval",
        "acp_session_id": session_id,
    }
    tool_call_id = getattr(tool_call, "tool_call_id", None)
    if tool_call_id:
        params["codex_call_id"] = tool_call_id
    command = raw_input.get("command")
    if isinstance(command, str) and command.strip():
        params["codex_command"] = [command]
    elif isinstance(command, list):
        params["codex_command"] = [str(part) for part in command]
    if isinstance(raw_input.get("cwd"), str):
        params["codex_cwd"] = raw_input["cwd"]
    return ApprovalRequest.model_validate(params)


class AcpSessionBridge(Client):
    """ACP client that feeds a message buffer instead of printing."""

    def __init__(self, buffer: MessageBuffer, relay: ApprovalRelay) -> None:
        self._buffer = buffer
        self._relay = relay
        self._stream_type: EventType | None = None
        self._stream_parts: list[str] = []

    def _emit(self, type: EventType, content: str) -> None:
        self.flush()
        if content:
            self._buffer.append(SessionEvent(type=type, content=content))

    def _stream(self, type: EventType, text: str) -> None:
        if self._stream_type is not type:
            self.flush()
            self._stream_type = type
        self._stream_parts.append(text)

    def flush(self) -> None:
        """Append any streamed text as one event."""
        if self._stream_type is None:
            return
        content = "".join(self._stream_parts).strip()
        stream_type = self._stream_type
        self._stream_type = None
        self._stream_parts = []
        if content:
            self._buffer.append(SessionEvent(type=stream_type, content=content))

    async def session_update(self, session_id: str, update: SessionNotification | Any, **_: Any) -> None:
        update = update.update if isinstance(update, SessionNotification) else update
        if isinstance(update, (AgentMessageChunk, AgentThoughtChunk, UserMessageChunk)):
            content = update.content
            if not isinstance(content, TextContentBlock):
                return
            if isinstance(update, AgentMessageChunk):
                self._stream(EventType.ASSISTANT, content.text)
            elif isinstance(update, AgentThoughtChunk):
                self._stream(EventType.STATUS, content.text)
            else:
                self._stream(EventType.USER, content.text)
            return
        if isinstance(update, ToolCallStart):
            raw_input = getattr(update, "raw_input", None) or {}
            command = raw_input.get("command") if isinstance(raw_input, dict) else None
            suffix = f" `{command}`" if command else ""
            self._emit(EventType.TOOL, f"{update.title}{suffix}")
            return
        if isinstance(update, ToolCallProgress):
            if update.status not in {"completed", "failed"}:
                return
            raw_output = getattr(update, "raw_output", None) or {}
            detail = ""
            if isinstance(raw_output, dict):
                detail = str(raw_output.get("error") or raw_output.get("content") or "")
            label = update.title or update.tool_call_id
            line = f"{label}: {update.status}"
            self._emit(EventType.RESULT, f"{line}\n{detail}" if detail else line)
            return
        if isinstance(update, AgentPlanUpdate):
            entries = [f"- {entry.content}" for entry in update.entries or []]
            self._emit(EventType.STATUS, "\n".join(["Plan:", *entries]))
            return
        if isinstance(update, CurrentModeUpdate):
            self._emit(EventType.STATUS, f"Mode: {update.current_mode_id}")
            return

    async def request_permission(
        self,
        options: list[Any],
        session_id: str,
        tool_call: Any,
        **_: Any,
    ) -> RequestPermissionResponse:
        """Wait for a human decision from either side and answer the agent."""
        self.flush()
        request = approval_request_from_tool_call(tool_call, session_id)
        response = await self._relay.request(request)
        decision = ApprovalDecision(response["decision"])
        option_id = select_permission_option(decision, options)
        with log_context(session_id=session_id, approval_id=request.correlation_id):
            log_event(logger, "acp.permission.response", decision=decision.value, option_id=option_id)
        if option_id is None:
            return RequestPermissionResponse(outcome=DeniedOutcome(outcome="cancelled"))
        return RequestPermissionResponse(outcome=AllowedOutcome(option_id=option_id, outcome="selected"))

    async def ext_method(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        if method != ELICITATION_METHOD:
            raise RequestError.method_not_found(method)
        self.flush()
        try:
            return await self._relay.request(params)
        except ApprovalValidationError as exc:
            log_event(logger, "acp.elicitation.invalid", level=logging.WARNING, locations=exc.locations)
            raise RequestError(INVALID_PARAMS, str(exc), {"errors": exc.locations}) from exc

    async def ext_notification(self, method: str, params: dict[str, Any]) -> None:
        return None

    def on_connect(self, *_: Any, **__: Any) -> None:
        return None

    async def write_text_file(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("fs/write_text_file")

    async def read_text_file(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("fs/read_text_file")

    async def create_terminal(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("terminal/create")

    async def terminal_output(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("terminal/output")

    async def release_terminal(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("terminal/release")

    async def wait_for_terminal_exit(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("terminal/wait_for_exit")

    async def kill_terminal(self, *args: Any, **kwargs: Any):  # type: ignore[override]
        raise RequestError.method_not_found("terminal/kill")


class AcpPromptSubmitter:
    """Sends confirmed prompt lines as ACP prompt turns, one turn at a time."""

    def __init__(self, conn: Any, session_id: str, bridge: AcpSessionBridge, buffer: MessageBuffer) -> None:
        self._conn = conn
        self._session_id = session_id
        self._bridge = bridge
        self._buffer = buffer
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    async def __call__(self, line: str) -> None:
        self._buffer.append(SessionEvent(type=EventType.USER, content=line))
        task = asyncio.create_task(self._run_turn(line))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_turn(self, line: str) -> None:
        async with self._lock:
            with log_context(session_id=self._session_id):
                try:
                    response = await self._conn.prompt(prompt=[text_block(line)], session_id=self._session_id)
                except Exception as exc:  # noqa: BLE001
                    self._bridge.flush()
                    log_event(logger, "acp.prompt.error", level=logging.WARNING, error=str(exc))
                    self._buffer.append(SessionEvent.system(f"Prompt failed: {exc}"))
                    return
                self._bridge.flush()
                stop_reason = getattr(response, "stop_reason", None)
                log_event(logger, "acp.prompt.done", stop_reason=stop_reason)
                if stop_reason and stop_reason != "end_turn":
                    self._buffer.append(SessionEvent(type=EventType.STATUS, content=f"Turn ended: {stop_reason}"))

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class AcpSettingsCommitter:
    """Pushes committed permission mode and model to the agent session.

    When the model call fails after the mode was switched, the previous mode
    is put back so the agent and the committed settings agree again.
    """

    def __init__(self, conn: Any, session_id: str, applied: RunSettings | None = None) -> None:
        self._conn = conn
        self._session_id = session_id
        self._applied = applied or RunSettings()

    @staticmethod
    def _reason(exc: Exception) -> str:
        return str(exc) or type(exc).__name__

    async def __call__(self, settings: RunSettings) -> None:
        previous = self._applied.permission_mode
        mode = settings.permission_mode
        try:
            await self._conn.set_session_mode(mode_id=mode.value, session_id=self._session_id)
        except Exception as exc:  # noqa: BLE001
            raise SettingsCommitError(self._reason(exc)) from exc
        if settings.model:
            try:
                await self._conn.set_session_model(model_id=settings.model, session_id=self._session_id)
            except Exception as exc:  # noqa: BLE001
                raise SettingsCommitError(await self._rollback(previous, mode, self._reason(exc))) from exc
        self._applied = settings

    async def _rollback(self, previous: PermissionMode, attempted: PermissionMode, reason: str) -> str:
        if previous is attempted:
            return reason
        try:
            await self._conn.set_session_mode(mode_id=previous.value, session_id=self._session_id)
        except Exception as exc:  # noqa: BLE001
            log_event(logger, "acp.settings.rollback_failed", level=logging.WARNING, error=str(exc))
            return f"{reason} (permission mode left at {attempted.value})"
        log_event(logger, "acp.settings.rolled_back", mode=previous.value)
        return f"{reason} (permission mode restored to {previous.value})"
