"""
tbevents: read rotating, checksummed training event logs.

Public API (stable):
- for_each_value / iter_values   (tag, step, value) over a run directory
- for_each_event / iter_events   every event, bookkeeping ones included
- scan_directory                 valid log files of a directory, in order
- open_collection                one purge-bounded reader per file
- ReaderConfig                   (configuration)
- SummaryValueIterator           decoded values of one Summary, with recombination
- DTOs: Collection, EventFile, Record and the value types

Nothing here writes logs, and nothing configures logging on import; call
`init_logging` for console/file output.
"""

from __future__ import annotations

# Configuration
from .config import ReaderConfig

# Operators
from .orchestration.traversal import for_each_event, for_each_value, iter_events, iter_values

# Intake / collection
from .intake.scanner import FilesystemEventSource, scan_directory
from .pipeline.collection import BoundedEventReader, open_collection

# Decoding
from .pipeline.recombine import (
    DEFAULT_POLICIES,
    ComplexPairPolicy,
    ImageSlicePolicy,
    SummaryValueIterator,
)
from .pipeline.summary import classify

# Errors
from .errors import (
    CorruptHeaderError,
    CorruptPayloadError,
    CorruptRecordError,
    PayloadDecodeError,
    SummaryDecodeError,
    TBEventsError,
    TruncatedRecordError,
    UnknownSummaryKindError,
)

# DTOs
from .dto import (
    Audio,
    Collection,
    ComplexHistogram,
    ComplexScalar,
    EventFile,
    Histogram,
    Image,
    ImageStack,
    Record,
    Scalar,
    SummaryValue,
    Tensor,
)

from .utils import init_logging

__all__ = [
    "ReaderConfig",
    "for_each_event",
    "for_each_value",
    "iter_events",
    "iter_values",
    "FilesystemEventSource",
    "scan_directory",
    "BoundedEventReader",
    "open_collection",
    "DEFAULT_POLICIES",
    "ComplexPairPolicy",
    "ImageSlicePolicy",
    "SummaryValueIterator",
    "classify",
    "CorruptHeaderError",
    "CorruptPayloadError",
    "CorruptRecordError",
    "PayloadDecodeError",
    "SummaryDecodeError",
    "TBEventsError",
    "TruncatedRecordError",
    "UnknownSummaryKindError",
    "Audio",
    "Collection",
    "ComplexHistogram",
    "ComplexScalar",
    "EventFile",
    "Histogram",
    "Image",
    "ImageStack",
    "Record",
    "Scalar",
    "SummaryValue",
    "Tensor",
    "init_logging",
]
