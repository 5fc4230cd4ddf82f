"""
Traversal operators: drive the whole pipeline over one run directory.

    scan -> per-file bounded readers -> events -> summary values -> caller

Both flavours are single-threaded and sequential. Generator forms
(`iter_events`, `iter_values`) let callers stop early; the open file is
closed when the generator is closed. Callback forms (`for_each_event`,
`for_each_value`) drain everything.

Nothing here swallows stream corruption: CorruptRecordError and
PayloadDecodeError propagate to the caller after the file is closed.
"""

from __future__ import annotations

import logging
import os
from contextlib import closing
from typing import Callable, Iterable, Iterator, Optional, Tuple, Union

from tensorboard.compat.proto import event_pb2

from ..config import ReaderConfig
from ..dto import SummaryValue
from ..pipeline.collection import open_collection
from ..pipeline.recombine import SummaryValueIterator

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
ValueCallback = Callable[[str, int, SummaryValue], object]
EventCallback = Callable[[event_pb2.Event], object]


def iter_events(path: PathLike, config: Optional[ReaderConfig] = None) -> Iterator[event_pb2.Event]:
    """
    Yield every event of the run directory in file order, bookkeeping events
    (file version, graphs, session logs) included. Only `purge` and `steps`
    of the config apply.
    """
    cfg = config or ReaderConfig()
    for reader in open_collection(path, purge=cfg.purge):
        with reader:
            logger.debug("Reading %s (purge step %s)", reader.path, reader.purge_step)
            for event in reader:
                if cfg.steps is not None and event.step not in cfg.steps:
                    continue
                yield event


def iter_values(
    path: PathLike, config: Optional[ReaderConfig] = None
) -> Iterator[Tuple[str, int, SummaryValue]]:
    """Yield (tag, step, value) for every summary value of the run directory."""
    cfg = config or ReaderConfig()
    with closing(iter_events(path, cfg)) as events:
        for event in events:
            # no summary: file-version, graph or session-log event
            if not event.HasField("summary"):
                continue
            step = int(event.step)
            for tag, value in SummaryValueIterator(event.summary, smart=cfg.smart):
                if cfg.tags is not None and tag not in cfg.tags:
                    continue
                yield tag, step, value


def for_each_value(
    callback: ValueCallback,
    path: PathLike,
    *,
    purge: bool = True,
    tags: Union[str, Iterable[str], None] = None,
    steps: Optional[Iterable[int]] = None,
    smart: bool = True,
    config: Optional[ReaderConfig] = None,
) -> None:
    """
    Call `callback(tag, step, value)` for every value logged to `path`, from
    the first event to the last.

    Parameters
    ----------
    purge : bool
        If file i+1 starts at step s != 0, read file i only up to step s.
    tags : str | iterable of str | None
        Only visit values with one of these tags (after recombination).
    steps : iterable of int | None
        Only visit events with one of these steps.
    smart : bool
        Reassemble values split over several entries (complex numbers, image
        volumes). See `tbevents.pipeline.recombine`.
    config : ReaderConfig | None
        Overrides all keyword options when given.
    """
    cfg = config or ReaderConfig.from_options(purge=purge, tags=tags, steps=steps, smart=smart)
    with closing(iter_values(path, cfg)) as values:
        for tag, step, value in values:
            callback(tag, step, value)


def for_each_event(
    callback: EventCallback,
    path: PathLike,
    *,
    purge: bool = True,
    steps: Optional[Iterable[int]] = None,
    config: Optional[ReaderConfig] = None,
) -> None:
    """
    Call `callback(event)` for every event logged to `path`, including
    metadata events without a summary (`event.HasField("summary")` is False
    for those).
    """
    cfg = config or ReaderConfig.from_options(purge=purge, steps=steps)
    with closing(iter_events(path, cfg)) as events:
        for event in events:
            callback(event)
