"""Directory change notifications for the sessions directory."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncIterator

from watchfiles import Change, awatch

from cctop.store import record_key


def is_relevant_change(change: Change, path: str) -> bool:
    """Only files the store would list matter; temp files are writes in progress."""
    return record_key(Path(path).name) is not None


class SessionWatcher:
    def __init__(self, root: Path, debounce_ms: int = 200) -> None:
        self._root = root
        self._debounce_ms = debounce_ms

    async def changes(self, stop_event: asyncio.Event) -> AsyncIterator[set[str]]:
        """Yield the changed session file names until ``stop_event`` is set."""
        async for batch in awatch(
            self._root,
            watch_filter=is_relevant_change,
            debounce=self._debounce_ms,
            stop_event=stop_event,
            recursive=False,
        ):
            yield {Path(path).name for _change, path in batch}
