"""Exceptions shared by the session store, its readers, and the hook writer."""

from __future__ import annotations


class CctopError(Exception):
    pass


class StoreUnavailable(CctopError):
    """The sessions directory is missing or cannot be read."""


class RecordCorrupt(CctopError):
    """A single session file could not be decoded."""


class WriteFailure(CctopError):
    """Writing the temp file or renaming it into place failed."""
