"""SessionStore: one JSON file per session identity, written atomically."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from cctop.codec import decode_record, encode_record
from cctop.config import sessions_dir
from cctop.errors import RecordCorrupt, StoreUnavailable, WriteFailure
from cctop.models import SessionRecord

if TYPE_CHECKING:
    from cctop.history import HistoryStore
    from cctop.liveness import LivenessOracle

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
MAX_KEY_LEN = 64


def sanitize_key(raw: str) -> str:
    """Strip path separators, parent references and leading dots from an identity string.

    /etc/passwd -> etcpasswd, ../../.bashrc -> bashrc
    """
    key = raw.replace("/", "").replace("\\", "").replace("..", "").lstrip(".")
    return key[:MAX_KEY_LEN]


def record_key(name: str) -> str | None:
    """Key for a record file name, or None for temp, foreign or unreachable files.

    Only names that ``path_for`` could have produced count, so every listed
    key can be read back with ``get``.
    """
    if name.endswith(TEMP_SUFFIX) or not name.endswith(RECORD_SUFFIX):
        return None
    key = name[: -len(RECORD_SUFFIX)]
    if not key or sanitize_key(key) != key:
        return None
    return key


def write_atomic(path: Path, payload: bytes) -> None:
    """Write ``payload`` to a temp sibling, fsync it, and rename it onto ``path``."""
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX,
        )
    except OSError as e:
        raise WriteFailure(f"cannot create temp file in {path.parent}: {e}") from e

    try:
        try:
            os.write(fd, payload)
            os.fsync(fd)
        finally:
            os.close(fd)
        try:
            os.replace(tmp_name, path)
        except FileExistsError:
            # Platforms whose rename refuses to overwrite: best-effort, not atomic
            path.unlink(missing_ok=True)
            os.rename(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise WriteFailure(f"failed to write {path}: {e}") from e


class SessionStore:
    """Directory-backed key/value store of session records.

    Writers publish a record by writing a temp sibling and renaming it onto
    ``<key>.json``; readers only ever see complete files. No locks are used.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @classmethod
    def default(cls) -> SessionStore:
        return cls(sessions_dir())

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        if self._root.is_dir():
            return
        try:
            self._root.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"cannot create {self._root}: {e}") from e

    def path_for(self, key: str) -> Path:
        safe = sanitize_key(key)
        if not safe:
            raise ValueError(f"identity key {key!r} is empty after sanitizing")
        return self._root / f"{safe}{RECORD_SUFFIX}"

    def put(self, key: str, record: SessionRecord) -> Path:
        """Atomically replace the record stored under ``key``."""
        path = self.path_for(key)
        try:
            self.ensure_root()
        except StoreUnavailable as e:
            raise WriteFailure(str(e)) from e
        write_atomic(path, encode_record(record).encode("utf-8"))
        return path

    def get(self, key: str) -> SessionRecord | None:
        return self._load_entry(self.path_for(key))

    def list(self) -> list[tuple[str, SessionRecord]]:
        """Return every readable record as (key, record), sorted by key.

        Temp files, foreign files, files that disappear mid-scan and files
        that fail to parse are skipped. A missing or unreadable directory
        yields an empty list.
        """
        try:
            entries = sorted(os.listdir(self._root))
        except OSError as e:
            logger.debug("Sessions directory %s unavailable: %s", self._root, e)
            return []

        results: list[tuple[str, SessionRecord]] = []
        for name in entries:
            key = record_key(name)
            if key is None:
                continue
            record = self._load_entry(self._root / name)
            if record is not None:
                results.append((key, record))
        return results

    def delete(self, key: str) -> bool:
        """Remove a record. Returns False if it was already gone."""
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        return True

    def prune(self, oracle: LivenessOracle, history: HistoryStore | None = None) -> list[str]:
        """Delete every record the oracle judges dead. Returns the removed keys.

        With a ``history``, each dead record is archived before it is deleted.
        """
        removed: list[str] = []
        for key, record in self.list():
            if oracle.is_alive(record):
                continue
            if history is not None:
                history.archive(record)
            if self.delete(key):
                logger.info("Removed dead session %s (%s)", key, record.project_name)
            removed.append(key)
        return removed

    def _load_entry(self, path: Path) -> SessionRecord | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping unreadable session file %s: %s", path, e)
            return None
        try:
            return decode_record(text)
        except RecordCorrupt as e:
            logger.debug("Skipping corrupt session file %s: %s", path, e)
            return None
