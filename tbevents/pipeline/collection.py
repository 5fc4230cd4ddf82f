"""
Collection iteration with rotation-aware truncation ("purge").

A training run that resumes from a checkpoint starts a new log file whose
first event carries the step it resumed from. Everything the older file
logged at or after that step was superseded, so the older file is read only
up to (not including) that step.

Responsibilities:
- `peek_first_step`: single-shot lookahead. Opens a file, decodes exactly one
  event, closes it. Kept apart from the main reader so the two handles never
  share a lifetime.
- `BoundedEventReader`: iterates one file's events, stopping at end of data or
  at the purge step, and closes its handle on every exit path.
- `open_collection`: lazily yields one bounded reader per file.
"""

from __future__ import annotations

import logging
import math
import os
from contextlib import ExitStack
from typing import Iterator, Optional, Union

from tensorboard.compat.proto import event_pb2

from ..dto import Collection
from ..intake.decompress import open_event_stream
from ..intake.record_reader import RecordReader, decode_event
from ..intake.scanner import scan_directory
from ..ports import PayloadDecoder

logger = logging.getLogger(__name__)

NO_PURGE = math.inf


def peek_first_step(path: str, *, decoder: PayloadDecoder = decode_event) -> Optional[int]:
    """Return the step of the first event in `path`, or None if it has none."""
    with open_event_stream(path) as stream:
        event = RecordReader(stream, decoder=decoder, name=path).next_event()
    return None if event is None else int(event.step)


def compute_purge_step(next_path: Optional[str], *, decoder: PayloadDecoder = decode_event) -> float:
    """
    Purge step for a file given the path of the file after it.

    Returns NO_PURGE when there is no next file, the next file holds no
    events, or its first event is at step 0 (a fresh run, not a resume).
    """
    if next_path is None:
        return NO_PURGE
    step = peek_first_step(next_path, decoder=decoder)
    if step is None or step == 0:
        return NO_PURGE
    return step


class BoundedEventReader:
    """
    Iterator over the events of one file, cut at `purge_step`.

    The file is opened on the first `next()`. The first event with
    `step >= purge_step` is dropped and ends the iteration; the handle is
    released at that point, at end of data, on error, or on `close()`.
    """

    def __init__(
        self,
        path: str,
        purge_step: float = NO_PURGE,
        *,
        decoder: PayloadDecoder = decode_event,
    ) -> None:
        self.path = path
        self.purge_step = purge_step
        self._decoder = decoder
        self._stack: Optional[ExitStack] = None
        self._reader: Optional[RecordReader] = None
        self._done = False

    def __iter__(self) -> "BoundedEventReader":
        return self

    def __next__(self) -> event_pb2.Event:
        if self._done:
            raise StopIteration
        if self._reader is None:
            self._open()

        try:
            event = self._reader.next_event()
        except BaseException:
            self.close()
            raise

        if event is None:
            self.close()
            raise StopIteration
        if event.step >= self.purge_step:
            logger.info("Purging %s from step %d (superseded by next file)", self.path, event.step)
            self.close()
            raise StopIteration
        return event

    @property
    def closed(self) -> bool:
        return self._done

    def close(self) -> None:
        self._done = True
        if self._stack is not None:
            stack, self._stack = self._stack, None
            stack.close()

    def __enter__(self) -> "BoundedEventReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _open(self) -> None:
        stack = ExitStack()
        try:
            stream = stack.enter_context(open_event_stream(self.path))
            self._reader = stack.enter_context(RecordReader(stream, decoder=self._decoder, name=self.path))
        except BaseException:
            stack.close()
            self._done = True
            raise
        self._stack = stack


def open_collection(
    path: Union[str, os.PathLike, Collection],
    purge: bool = True,
    *,
    decoder: PayloadDecoder = decode_event,
) -> Iterator[BoundedEventReader]:
    """
    Lazily yield a bounded reader for every valid file of a run directory, in
    collection order. Pass an existing Collection to skip rescanning.

    With `purge=False` no lookahead is done and every file is read in full.
    """
    collection = path if isinstance(path, Collection) else scan_directory(path)
    files = collection.files

    for i, entry in enumerate(files):
        purge_step = NO_PURGE
        if purge and i + 1 < len(files):
            purge_step = compute_purge_step(files[i + 1].path, decoder=decoder)
        yield BoundedEventReader(entry.path, purge_step, decoder=decoder)
