"""
Interfaces (Ports) at the edges of the reader.

These define the boundary between the framing/traversal logic and the
pluggable collaborators: where files come from, how payload bytes become an
event, and how split values are regrouped. Keep them small so they are easy
to fake in tests.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple

from tensorboard.compat.proto import event_pb2

from .dto import Collection, SummaryValue, ValueKind


class EventSourcePort(Protocol):
    """Supplies the ordered, validated log files of one run directory."""

    def fetch(self) -> Collection:
        """
        Return the collection of valid log files. Implementations MUST return
        files in the order they were written and MUST leave out files whose
        first record fails validation.
        """
        ...


class PayloadDecoder(Protocol):
    """Turns the checksummed payload of one record into an event message."""

    def __call__(self, payload: bytes) -> event_pb2.Event:
        ...


class GroupingPolicy(Protocol):
    """
    Rule for reassembling one logical value that was written as several
    adjacent summary entries.

    The recombination pass asks `group_key` whether an entry can open a group.
    If so it offers the following entries one at a time to `accepts`, in
    order, and stops at the first refusal or at `max_members`. A group with at
    least `min_members` entries is handed to `merge`; anything shorter is
    yielded unmerged.
    """

    kind: ValueKind
    min_members: int
    max_members: Optional[int]

    def group_key(self, tag: str) -> Optional[str]:
        """Return the base tag if `tag` may open a group, else None."""
        ...

    def accepts(
        self,
        base: str,
        members: Sequence[Tuple[str, SummaryValue]],
        tag: str,
        value: SummaryValue,
    ) -> bool:
        """Return True if (tag, value) continues the group started by `members`."""
        ...

    def merge(self, base: str, members: Sequence[Tuple[str, SummaryValue]]) -> SummaryValue:
        """Combine the collected members into one composite value."""
        ...
