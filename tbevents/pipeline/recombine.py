"""
Recombination of values that were split across adjacent summary entries.

Some loggers cannot write certain values natively and instead write them as
several consecutive tagged entries. With smart mode on, the iterator below
puts them back together. The grouping conventions are explicit policies, not
guesses; the defaults are:

- ComplexPairPolicy("scalar"):    "<base>/re", "<base>/im" scalars  -> ComplexScalar "<base>"
- ComplexPairPolicy("histogram"): "<base>/re", "<base>/im" histograms -> ComplexHistogram "<base>"
- ImageSlicePolicy:               "<base>/0", "<base>/1", ... images of equal
                                  size and colorspace -> ImageStack "<base>"

A policy only ever consumes contiguous entries of its own kind whose tags
belong to the same base, so entries of other tag groups are never swallowed.
An incomplete group (a "/re" with no "/im") is yielded as-is.

Pass your own policies to `SummaryValueIterator` to support other writers.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tensorboard.compat.proto import summary_pb2

from ..dto import ComplexHistogram, ComplexScalar, Image, ImageStack, SummaryValue, ValueKind
from ..errors import SummaryDecodeError
from ..ports import GroupingPolicy
from .summary import classify, summary_kind

logger = logging.getLogger(__name__)

Member = Tuple[str, SummaryValue]


class ComplexPairPolicy:
    """Real and imaginary parts logged under "<base>/re" and "<base>/im"."""

    min_members = 2
    max_members: Optional[int] = 2

    def __init__(self, kind: ValueKind, *, real_suffix: str = "/re", imag_suffix: str = "/im") -> None:
        if kind not in ("scalar", "histogram"):
            raise ValueError(f"complex pairs are defined for scalars and histograms, not {kind!r}")
        self.kind = kind
        self.real_suffix = real_suffix
        self.imag_suffix = imag_suffix

    def group_key(self, tag: str) -> Optional[str]:
        if tag.endswith(self.real_suffix) and len(tag) > len(self.real_suffix):
            return tag[: -len(self.real_suffix)]
        return None

    def accepts(self, base: str, members: Sequence[Member], tag: str, value: SummaryValue) -> bool:
        return len(members) == 1 and tag == base + self.imag_suffix

    def merge(self, base: str, members: Sequence[Member]) -> SummaryValue:
        (_, re), (_, im) = members
        if self.kind == "scalar":
            return ComplexScalar(complex(re.value, im.value))
        return ComplexHistogram(real=re, imag=im)


class ImageSlicePolicy:
    """Slices of a volume logged as "<base>/0", "<base>/1", ... in order."""

    kind: ValueKind = "image"
    min_members = 2
    max_members: Optional[int] = None

    def __init__(self, separator: str = "/") -> None:
        self.separator = separator

    def group_key(self, tag: str) -> Optional[str]:
        head = self.separator + "0"
        if tag.endswith(head) and len(tag) > len(head):
            return tag[: -len(head)]
        return None

    def accepts(self, base: str, members: Sequence[Member], tag: str, value: SummaryValue) -> bool:
        if tag != f"{base}{self.separator}{len(members)}":
            return False
        first: Image = members[0][1]
        return (
            value.height == first.height
            and value.width == first.width
            and value.colorspace == first.colorspace
            and value.pixels.shape == first.pixels.shape
        )

    def merge(self, base: str, members: Sequence[Member]) -> SummaryValue:
        return ImageStack(images=tuple(value for _, value in members))


DEFAULT_POLICIES: Tuple[GroupingPolicy, ...] = (
    ComplexPairPolicy("scalar"),
    ComplexPairPolicy("histogram"),
    ImageSlicePolicy(),
)


class SummaryValueIterator:
    """
    Cursor over one Summary yielding (tag, value) pairs.

    The cursor only moves forward: by one for a plain value, or past every
    entry a policy merged. Entries that fail to decode are logged and skipped.
    """

    def __init__(
        self,
        summary: summary_pb2.Summary,
        smart: bool = True,
        policies: Iterable[GroupingPolicy] = DEFAULT_POLICIES,
    ) -> None:
        self._entries = list(summary.value)
        self._cursor = 0
        self.smart = smart
        self._policies: Dict[str, List[GroupingPolicy]] = {}
        for policy in policies:
            self._policies.setdefault(policy.kind, []).append(policy)
        # values decoded during lookahead, by entry index
        self._decoded: Dict[int, Member] = {}

    @property
    def cursor(self) -> int:
        return self._cursor

    def __iter__(self) -> "SummaryValueIterator":
        return self

    def __next__(self) -> Member:
        while self._cursor < len(self._entries):
            index = self._cursor
            try:
                tag, value = self._decode_at(index)
            except SummaryDecodeError as exc:
                logger.warning("Skipping undecodable summary entry: %s", exc)
                self._cursor += 1
                continue

            consumed = 1
            if self.smart:
                tag, value, consumed = self._recombine(index, tag, value)
            self._cursor = index + consumed
            for i in range(index, self._cursor):
                self._decoded.pop(i, None)
            return tag, value
        raise StopIteration

    # --- internals ---

    def _decode_at(self, index: int) -> Member:
        cached = self._decoded.get(index)
        if cached is not None:
            return cached
        return classify(self._entries[index])

    def _recombine(self, index: int, tag: str, value: SummaryValue) -> Tuple[str, SummaryValue, int]:
        for policy in self._policies.get(value.kind, ()):
            base = policy.group_key(tag)
            if base is None:
                continue
            members = self._collect(policy, base, index, (tag, value))
            if len(members) >= policy.min_members:
                return base, policy.merge(base, members), len(members)
        return tag, value, 1

    def _collect(self, policy: GroupingPolicy, base: str, index: int, head: Member) -> List[Member]:
        members = [head]
        pos = index + 1
        while pos < len(self._entries):
            if policy.max_members is not None and len(members) >= policy.max_members:
                break
            entry = self._entries[pos]
            try:
                if summary_kind(entry) != policy.kind:
                    break
                candidate = self._decode_at(pos)
            except SummaryDecodeError:
                break
            self._decoded[pos] = candidate
            if not policy.accepts(base, members, *candidate):
                break
            members.append(candidate)
            pos += 1
        return members
