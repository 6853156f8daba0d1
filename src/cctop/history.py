"""Archive of ended sessions and the recent-projects list built from it.

Dead records are copied to ``~/.cctop/history/<project>_<ended>.json`` before
they leave the sessions directory. The archive keeps one file per project,
nothing older than 30 days, and at most 50 files.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable

from cctop.codec import decode_record, encode_record
from cctop.config import history_dir
from cctop.errors import RecordCorrupt, WriteFailure
from cctop.models import SessionRecord, utc_now
from cctop.store import RECORD_SUFFIX, TEMP_SUFFIX, write_atomic

logger = logging.getLogger(__name__)

MAX_FILES = 50
MAX_AGE = timedelta(days=30)
MAX_RECENT = 10
MAX_NAME_LEN = 50

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def safe_file_component(name: str) -> str:
    """Keep letters, digits, ``-`` and ``_``; ``unknown`` if nothing is left."""
    cleaned = _UNSAFE_CHARS.sub("", name)
    return (cleaned or "unknown")[:MAX_NAME_LEN]


@dataclass
class RecentProject:
    project_path: str
    project_name: str
    last_branch: str
    last_session_at: datetime
    session_count: int
    last_editor: str | None = None
    workspace_file: str | None = None


def build_recent_projects(
    records: Iterable[SessionRecord],
    exclude_paths: Iterable[str] = (),
    limit: int = MAX_RECENT,
) -> list[RecentProject]:
    """Latest session per project, newest first, minus projects still active."""
    latest: dict[str, SessionRecord] = {}
    counts: dict[str, int] = {}
    for record in records:
        path = record.project_path
        counts[path] = counts.get(path, 0) + 1
        current = latest.get(path)
        if current is None or record.effective_end > current.effective_end:
            latest[path] = record

    excluded = set(exclude_paths)
    ordered = sorted(
        (r for r in latest.values() if r.project_path not in excluded),
        key=lambda r: r.effective_end,
        reverse=True,
    )
    return [
        RecentProject(
            project_path=r.project_path,
            project_name=r.project_name,
            last_branch=r.branch,
            last_session_at=r.effective_end,
            session_count=counts[r.project_path],
            last_editor=r.terminal.program if r.terminal else None,
            workspace_file=r.workspace_file,
        )
        for r in ordered[:limit]
    ]


class HistoryStore:
    def __init__(self, root: Path | str, clock: Callable[[], datetime] = utc_now) -> None:
        self._root = Path(root)
        self._clock = clock

    @classmethod
    def default(cls) -> HistoryStore:
        return cls(history_dir())

    @property
    def root(self) -> Path:
        return self._root

    def archive(self, record: SessionRecord) -> Path | None:
        """Copy an ended session into the archive, then trim the archive.

        Returns the archive path, or None if it could not be written.
        """
        ended = self._clock()
        stamp = ended.strftime("%Y-%m-%dT%H-%M-%SZ")
        path = self._root / f"{safe_file_component(record.project_name)}_{stamp}{RECORD_SUFFIX}"
        archived = replace(record, ended_at=ended)
        try:
            self._root.mkdir(mode=0o700, parents=True, exist_ok=True)
            write_atomic(path, encode_record(archived).encode("utf-8"))
        except (OSError, WriteFailure) as e:
            logger.error("Failed to archive session %s: %s", record.session_id, e)
            return None
        logger.info("Archived session %s to %s", record.session_id, path.name)
        self.prune()
        return path

    def load(self) -> list[tuple[Path, SessionRecord]]:
        """Every readable archived record, most recently ended first."""
        try:
            names = os.listdir(self._root)
        except OSError:
            return []
        entries: list[tuple[Path, SessionRecord]] = []
        for name in names:
            if name.endswith(TEMP_SUFFIX) or not name.endswith(RECORD_SUFFIX):
                continue
            path = self._root / name
            try:
                entries.append((path, decode_record(path.read_text(encoding="utf-8"))))
            except (OSError, UnicodeDecodeError, RecordCorrupt) as e:
                logger.debug("Skipping history file %s: %s", name, e)
        entries.sort(key=lambda e: e[1].effective_end, reverse=True)
        return entries

    def files_to_prune(self, entries: list[tuple[Path, SessionRecord]]) -> list[Path]:
        """Files beyond the newest per project, older than the age cap, or past the file cap.

        ``entries`` must be newest first, as returned by ``load``.
        """
        cutoff = self._clock() - MAX_AGE
        seen: set[str] = set()
        keep: list[Path] = []
        remove: list[Path] = []
        for path, record in entries:
            if record.project_path in seen or record.effective_end < cutoff:
                remove.append(path)
                continue
            seen.add(record.project_path)
            keep.append(path)
        remove.extend(keep[MAX_FILES:])
        return remove

    def prune(self) -> list[Path]:
        removed = self.files_to_prune(self.load())
        for path in removed:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            logger.info("Pruned history file %s", path.name)
        return removed

    def recent_projects(self, exclude_paths: Iterable[str] = ()) -> list[RecentProject]:
        return build_recent_projects((r for _, r in self.load()), exclude_paths)
