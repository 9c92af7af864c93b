"""Slash commands recognized on a confirmed local prompt line."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from tandem.approvals import ApprovalDecision
from tandem.log_utils import log_event

if TYPE_CHECKING:
    from tandem.arbiter import ModeArbiter

logger = logging.getLogger(__name__)

SlashHandler = Callable[["ModeArbiter", str], Awaitable[None] | None]


@dataclass
class SlashCommandDef:
    description: str
    hint: str
    handler: SlashHandler


SLASH_HANDLERS: dict[str, SlashCommandDef] = {}


def register_slash_command(name: str, description: str, hint: str) -> Callable[[SlashHandler], SlashHandler]:
    """Decorator to register a slash command."""

    def _decorator(func: SlashHandler) -> SlashHandler:
        SLASH_HANDLERS[name] = SlashCommandDef(description=description, hint=hint, handler=func)
        return func

    return _decorator


@register_slash_command("/help", description="List local commands.", hint="/help")
def _handle_help(arbiter: "ModeArbiter", _argument: str) -> None:
    lines = ["Local commands:"]
    for entry in SLASH_HANDLERS.values():
        lines.append(f"  {entry.hint:<12} {entry.description}")
    arbiter.notify_system("\n".join(lines))


@register_slash_command("/settings", description="Open the settings overlay.", hint="/settings")
def _handle_settings(arbiter: "ModeArbiter", _argument: str) -> None:
    arbiter.open_settings()


@register_slash_command("/remote", description="Hand control to the paired device.", hint="/remote")
async def _handle_remote(arbiter: "ModeArbiter", _argument: str) -> None:
    await arbiter.switch_to_remote()


@register_slash_command("/local", description="Keep control in this terminal.", hint="/local")
def _handle_local(_arbiter: "ModeArbiter", _argument: str) -> None:
    return None


@register_slash_command(
    "/approve", description="Approve the pending request (add `session` to keep approving).", hint="/approve [session]"
)
def _handle_approve(arbiter: "ModeArbiter", argument: str) -> None:
    if argument.split()[:1] == ["session"]:
        arbiter.resolve_approval(ApprovalDecision.APPROVED_FOR_SESSION)
    else:
        arbiter.resolve_approval(ApprovalDecision.APPROVED)


@register_slash_command("/deny", description="Decline the pending request.", hint="/deny")
def _handle_deny(arbiter: "ModeArbiter", _argument: str) -> None:
    arbiter.resolve_approval(ApprovalDecision.DENIED)


@register_slash_command("/abort", description="Cancel the pending request and stop the turn.", hint="/abort")
def _handle_abort(arbiter: "ModeArbiter", _argument: str) -> None:
    arbiter.resolve_approval(ApprovalDecision.ABORT)


@register_slash_command("/exit", description="End the session.", hint="/exit")
@register_slash_command("/quit", description="End the session.", hint="/quit")
async def _handle_exit(arbiter: "ModeArbiter", _argument: str) -> None:
    await arbiter.exit()


async def handle_slash_command(line: str, arbiter: "ModeArbiter") -> bool:
    """Dispatch a local slash command, returning True if one handled the line."""
    trimmed = line.strip()
    if not trimmed.startswith("/"):
        return False

    parts = trimmed.split(maxsplit=1)
    command = parts[0]
    argument = parts[1].strip() if len(parts) > 1 else ""

    entry = SLASH_HANDLERS.get(command)
    if entry is None:
        return False

    log_event(logger, "slash.command", command=command)
    result = entry.handler(arbiter, argument)
    if asyncio.iscoroutine(result):
        await result
    return True
