"""Look up session names and workspace files next to Claude Code's own data."""

from __future__ import annotations

import json
from pathlib import Path

WORKSPACE_SUFFIX = ".code-workspace"


def _read_custom_title(transcript_path: Path) -> str | None:
    """Return the last non-empty ``custom-title`` entry in a JSONL transcript."""
    title: str | None = None
    try:
        with open(transcript_path, "r", errors="replace") as f:
            for line in f:
                # Cheap substring test before paying for a JSON parse
                if '"custom-title"' not in line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(entry, dict) or entry.get("type") != "custom-title":
                    continue
                value = entry.get("customTitle")
                if isinstance(value, str) and value:
                    title = value
    except OSError:
        return None
    return title


def _read_index_title(index_path: Path, session_id: str) -> str | None:
    """Fallback for older sessions: sessions-index.json beside the transcript."""
    try:
        data = json.loads(index_path.read_text())
    except (OSError, json.JSONDecodeError):
        return None
    entries = data.get("entries") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        return None
    for entry in reversed(entries):
        if isinstance(entry, dict) and entry.get("sessionId") == session_id:
            title = entry.get("customTitle")
            return title if isinstance(title, str) and title else None
    return None


def lookup_session_name(transcript_path: str | None, session_id: str) -> str | None:
    """Find the user-assigned name for a session, if it has one."""
    if not transcript_path:
        return None
    path = Path(transcript_path).expanduser()
    title = _read_custom_title(path)
    if title:
        return title
    return _read_index_title(path.parent / "sessions-index.json", session_id)


def find_workspace_file(project_dir: str) -> str | None:
    """Pick the project's ``.code-workspace`` file.

    A single workspace file wins outright; with several, only the one named
    after the project directory is chosen.
    """
    root = Path(project_dir)
    try:
        candidates = sorted(
            p for p in root.iterdir()
            if p.name.endswith(WORKSPACE_SUFFIX) and p.is_file()
        )
    except OSError:
        return None
    if len(candidates) == 1:
        return str(candidates[0])
    preferred = root / f"{root.name}{WORKSPACE_SUFFIX}"
    if preferred in candidates:
        return str(preferred)
    return None
