"""
Filesystem-backed event source.

Enumerates the log files of one run directory:
  <logdir>/events.out.tfevents.<timestamp>.<host>[...]

Rules:
- Entries are processed in lexicographic file-name order, which for the
  standard naming scheme is also write order.
- Subdirectories are ignored; this is not a recursive walk.
- A file is kept only if its first record header passes the checksum gate.
  Anything else in the directory (configs, checkpoints, notes) is skipped
  silently; that is a filtering decision, not an error.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..dto import Collection, EventFile
from ..ports import EventSourcePort
from .decompress import STREAM_ERRORS, open_event_stream
from .record_reader import is_valid_record_header

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilesystemEventSource(EventSourcePort):
    """
    Enumerate valid log files from a single directory.

    Parameters
    ----------
    root : str | os.PathLike
        Run directory holding the (possibly rotated) log files.
    """

    root: Union[str, os.PathLike]

    def fetch(self) -> Collection:
        root_path = Path(self.root)
        if not root_path.exists():
            raise FileNotFoundError(f"log directory does not exist: {root_path}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"not a directory: {root_path}")

        files = []
        for p in sorted(root_path.iterdir(), key=lambda entry: entry.name):
            if not p.is_file():
                continue
            if probe_event_file(p):
                files.append(EventFile(path=str(p), name=p.name))
            else:
                logger.debug("Skipping %s: first record is not a valid event record", p.name)

        logger.debug("Valid event files in %s: %s", root_path, [f.name for f in files])
        return Collection(directory=str(root_path), files=tuple(files))


def scan_directory(path: Union[str, os.PathLike]) -> Collection:
    """Return the ordered collection of valid log files in `path`."""
    return FilesystemEventSource(path).fetch()


def probe_event_file(path: Union[str, os.PathLike]) -> bool:
    """
    Open `path` transiently and check its first record header. Unreadable
    files count as "not a log file".
    """
    try:
        with open_event_stream(path) as stream:
            return is_valid_record_header(stream)
    except STREAM_ERRORS as exc:
        logger.warning("Cannot read %s while scanning: %s", path, exc)
        return False
