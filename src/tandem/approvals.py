"""Approval relay: vendor-preserving request validation and decision mapping.

Approval requests arrive as MCP ``elicitation/create`` calls whose params
carry ``codex_*`` fields (call ids, command vectors, diffs). Those fields are
opaque here: they are validated only as far as their known types go and are
otherwise returned exactly as received.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tandem.errors import ApprovalValidationError
from tandem.events import EventType, SessionEvent
from tandem.log_utils import log_context, log_event
from tandem.message_buffer import MessageBuffer

logger = logging.getLogger(__name__)

ELICITATION_METHOD = "elicitation/create"


class ApprovalDecision(str, Enum):
    APPROVED = "approved"
    APPROVED_FOR_SESSION = "approved_for_session"
    DENIED = "denied"
    ABORT = "abort"


class ElicitationAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"


_ACTIONS: dict[ApprovalDecision, ElicitationAction] = {
    ApprovalDecision.APPROVED: ElicitationAction.ACCEPT,
    ApprovalDecision.APPROVED_FOR_SESSION: ElicitationAction.ACCEPT,
    ApprovalDecision.DENIED: ElicitationAction.DECLINE,
    ApprovalDecision.ABORT: ElicitationAction.CANCEL,
}


def decision_to_action(decision: ApprovalDecision | str) -> ElicitationAction:
    return _ACTIONS[ApprovalDecision(decision)]


def build_response(decision: ApprovalDecision | str) -> dict[str, str]:
    decision = ApprovalDecision(decision)
    return {"action": decision_to_action(decision).value, "decision": decision.value}


class ApprovalRequest(BaseModel):
    """Params of an approval elicitation.

    Known vendor fields are typed; anything else is kept as an extra.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message: str
    requested_schema: dict[str, Any] = Field(alias="requestedSchema")

    codex_elicitation: str | None = None
    codex_mcp_tool_call_id: str | None = None
    codex_event_id: str | None = None
    codex_call_id: str | None = None
    codex_command: list[str] | None = None
    codex_cwd: str | None = None
    codex_parsed_cmd: Any = None
    codex_changes: dict[str, Any] | None = None

    @property
    def vendor_fields(self) -> dict[str, Any]:
        """Every non-structural field that arrived with the request."""
        payload = self.model_dump(by_alias=True, exclude_unset=True)
        payload.pop("message", None)
        payload.pop("requestedSchema", None)
        return payload

    @property
    def correlation_id(self) -> str | None:
        return self.codex_call_id or self.codex_mcp_tool_call_id or self.codex_event_id

    @property
    def kind(self) -> str:
        return self.codex_elicitation or "approval"

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def summary(self) -> str:
        lines = [self.message]
        if self.codex_command:
            lines.append("$ " + " ".join(self.codex_command))
        if self.codex_cwd:
            lines.append(f"cwd: {self.codex_cwd}")
        if self.codex_changes:
            lines.extend(f"~ {path}" for path in self.codex_changes)
        return "\n".join(lines)


class ElicitationCreateRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    method: Literal["elicitation/create"]
    params: ApprovalRequest


def _validation_error(exc: ValidationError) -> ApprovalValidationError:
    errors = [dict(err) for err in exc.errors(include_url=False)]
    return ApprovalValidationError(f"Invalid approval request: {exc.error_count()} error(s)", errors=errors)


def parse_approval_params(params: Any) -> ApprovalRequest:
    try:
        return ApprovalRequest.model_validate(params)
    except ValidationError as exc:
        raise _validation_error(exc) from exc


def parse_elicitation(payload: Any) -> ElicitationCreateRequest:
    try:
        return ElicitationCreateRequest.model_validate(payload)
    except ValidationError as exc:
        raise _validation_error(exc) from exc


@dataclass
class PendingApproval:
    request_id: str
    request: ApprovalRequest
    future: asyncio.Future[ApprovalDecision] = field(repr=False)
    source: str | None = None


class ApprovalRelay:
    """Tracks outstanding approvals; the first decision from any side wins."""

    def __init__(self, buffer: MessageBuffer | None = None) -> None:
        self._buffer = buffer
        self._pending: dict[str, PendingApproval] = {}

    @property
    def pending(self) -> list[PendingApproval]:
        return list(self._pending.values())

    def open(self, request: ApprovalRequest) -> PendingApproval:
        request_id = request.correlation_id or uuid.uuid4().hex
        if request_id in self._pending:
            return self._pending[request_id]
        loop = asyncio.get_running_loop()
        pending = PendingApproval(request_id=request_id, request=request, future=loop.create_future())
        self._pending[request_id] = pending
        with log_context(approval_id=request_id):
            log_event(logger, "approval.request", kind=request.kind, vendor_keys=sorted(request.vendor_fields))
        if self._buffer is not None:
            self._buffer.append(SessionEvent(type=EventType.TOOL, content=f"Approval requested: {request.summary()}"))
        return pending

    def resolve(self, request_id: str, decision: ApprovalDecision | str, *, source: str | None = None) -> bool:
        """Resolve a pending approval; returns False for unknown or settled ids."""
        decision = ApprovalDecision(decision)
        pending = self._pending.get(request_id)
        if pending is None or pending.future.done():
            with log_context(approval_id=request_id):
                log_event(logger, "approval.duplicate", decision=decision.value, source=source)
            return False
        pending.source = source
        pending.future.set_result(decision)
        return True

    async def wait(self, pending: PendingApproval) -> dict[str, str]:
        try:
            decision = await pending.future
        finally:
            self._pending.pop(pending.request_id, None)
        response = build_response(decision)
        with log_context(approval_id=pending.request_id):
            log_event(logger, "approval.response", source=pending.source, **response)
        if self._buffer is not None:
            self._buffer.append(
                SessionEvent(type=EventType.RESULT, content=f"Approval {decision.value} ({pending.request.kind})")
            )
        return response

    async def request(self, params: Any) -> dict[str, str]:
        """Validate params, wait for a human decision and build the response."""
        request = params if isinstance(params, ApprovalRequest) else parse_approval_params(params)
        return await self.wait(self.open(request))

    def cancel_all(self) -> int:
        count = 0
        for request_id in list(self._pending):
            if self.resolve(request_id, ApprovalDecision.ABORT, source="teardown"):
                count += 1
        return count
