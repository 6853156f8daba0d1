"""Bring a session's host app to the front. Fire-and-forget; never touches the store."""

from __future__ import annotations

import asyncio
import logging
import shutil
import sys

from cctop.config import Config
from cctop.hosts import HostApp
from cctop.models import SessionRecord

logger = logging.getLogger(__name__)


def focus_command(record: SessionRecord, config: Config) -> list[str] | None:
    """Build the command that opens or raises the session's host, if any."""
    program = record.terminal.program if record.terminal else ""
    host = HostApp.from_program(program or config.editor.process_name)

    if host.is_editor:
        cli = host.cli_command
        if HostApp.from_program(config.editor.process_name) is host:
            cli = config.editor.cli_command
        target = record.workspace_file if host.uses_workspace_file and record.workspace_file else record.project_path
        return [cli, target] if target else None

    if sys.platform == "darwin" and host.bundle_id:
        return ["open", "-b", host.bundle_id]
    return None


async def focus_session(record: SessionRecord, config: Config) -> bool:
    cmd = focus_command(record, config)
    if cmd is None or shutil.which(cmd[0]) is None:
        return False
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
    except OSError as e:
        logger.warning("Focus command %s failed: %s", cmd[0], e)
        return False
    if proc.returncode != 0:
        logger.warning("Focus command %s exited %s: %s", cmd[0], proc.returncode, stderr.decode().strip())
        return False
    return True
