"""Command-line entrypoint: inspect option hints or drive an ACP agent."""

from __future__ import annotations

import argparse
import asyncio
import asyncio.subprocess as aio_subprocess
import contextlib
import json
import logging
import os
import sys
from pathlib import Path
from typing import Iterable

from acp import PROTOCOL_VERSION
from acp.core import connect_to_agent
from acp.schema import ClientCapabilities, FileSystemCapability, Implementation

from tandem import __version__
from tandem.approvals import ApprovalRelay
from tandem.arbiter import ModeArbiter
from tandem.client.acp_bridge import AcpPromptSubmitter, AcpSessionBridge, AcpSettingsCommitter
from tandem.client.terminal_ui import TerminalUI
from tandem.config import TandemConfig, load_config
from tandem.config_hints import read_option_hints
from tandem.log_utils import build_log_config, configure_logging, log_event
from tandem.message_buffer import MessageBuffer
from tandem.prompt_editor import PromptEditor, PromptHistory
from tandem.settings import PermissionMode, RunSettings
from tandem.ui_state import ControlMode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tandem", description="Drive a coding agent from this terminal.")
    sub = parser.add_subparsers(dest="command", required=True)

    hints = sub.add_parser("hints", help="Print model/profile hints read from the agent config.")
    hints.add_argument("--config", type=Path, help="Path to the agent config.toml")

    run = sub.add_parser("run", help="Launch an ACP agent over stdio and drive it.")
    run.add_argument("--settings", action="store_true", help="Open the settings overlay on start.")
    run.add_argument("--model", help="Initial model.")
    run.add_argument("--profile", help="Initial profile.")
    run.add_argument("--reasoning-effort", help="Initial reasoning effort.")
    run.add_argument(
        "--permission-mode",
        choices=[mode.value for mode in PermissionMode],
        default=PermissionMode.DEFAULT.value,
    )
    run.add_argument("agent_program", help="Path to the agent program to launch")
    run.add_argument("agent_args", nargs=argparse.REMAINDER, help="Arguments for the agent")
    return parser


def initial_settings(args: argparse.Namespace) -> RunSettings:
    return RunSettings(
        permission_mode=PermissionMode(args.permission_mode),
        model=args.model or None,
        profile=args.profile or None,
        reasoning_effort=args.reasoning_effort or None,
    )


def _print_hints(config: TandemConfig, path: Path | None) -> int:
    hints = read_option_hints(path or config.codex_config_path)
    print(json.dumps(hints.to_dict(), indent=2))
    return 0


async def run_session(
    config: TandemConfig,
    program: str,
    args: Iterable[str],
    settings: RunSettings,
    *,
    show_settings: bool = False,
) -> int:
    program_path = Path(program)
    spawn_program = program
    spawn_args = list(args)
    if program_path.exists() and not os.access(program_path, os.X_OK):
        spawn_program = sys.executable
        spawn_args = [str(program_path), *spawn_args]

    proc = await asyncio.create_subprocess_exec(
        spawn_program,
        *spawn_args,
        stdin=aio_subprocess.PIPE,
        stdout=aio_subprocess.PIPE,
    )
    if proc.stdin is None or proc.stdout is None:
        print("Agent process does not expose stdio pipes", file=sys.stderr)
        return 1

    buffer = MessageBuffer(config.buffer_capacity)
    relay = ApprovalRelay(buffer)
    bridge = AcpSessionBridge(buffer, relay)
    conn = connect_to_agent(bridge, proc.stdin, proc.stdout)
    try:
        init_resp = await conn.initialize(
            protocol_version=PROTOCOL_VERSION,
            client_capabilities=ClientCapabilities(
                fs=FileSystemCapability(read_text_file=False, write_text_file=False),
                terminal=False,
            ),
            client_info=Implementation(name="tandem", title="Tandem", version=__version__),
        )
        if init_resp.protocol_version != PROTOCOL_VERSION:
            print(f"Incompatible ACP protocol version from agent: {init_resp.protocol_version}", file=sys.stderr)
            return 1
        session = await conn.new_session(cwd=os.getcwd(), mcp_servers=[])
        log_event(logger, "session.started", session_id=session.session_id)

        ui: TerminalUI | None = None

        def _exit() -> None:
            if ui is not None:
                ui.exit()

        submitter = AcpPromptSubmitter(conn, session.session_id, bridge, buffer)
        arbiter = ModeArbiter(
            buffer,
            control_mode=ControlMode.LOCAL,
            settings=settings,
            hints=read_option_hints(config.codex_config_path),
            editor=PromptEditor(PromptHistory(limit=config.history_limit)),
            approvals=relay,
            commit_settings=AcpSettingsCommitter(conn, session.session_id, settings),
            submit_prompt=submitter,
            confirm_window=config.confirm_window,
            on_exit=_exit,
            initial_show_settings=show_settings,
        )
        ui = TerminalUI(arbiter, buffer)
        await ui.run()
        return 0
    finally:
        relay.cancel_all()
        with contextlib.suppress(Exception):
            await conn.close()
        if proc.returncode is None:
            proc.terminate()
            with contextlib.suppress(ProcessLookupError):
                await proc.wait()


async def main(argv: list[str]) -> int:
    args = build_parser().parse_args(argv[1:])
    config = load_config()
    configure_logging(build_log_config())
    if args.command == "hints":
        return _print_hints(config, args.config)
    return await run_session(
        config,
        args.agent_program,
        args.agent_args,
        initial_settings(args),
        show_settings=args.settings,
    )


def run() -> None:
    try:
        raise SystemExit(asyncio.run(main(sys.argv)))
    except KeyboardInterrupt:
        raise SystemExit(130)


if __name__ == "__main__":
    run()
