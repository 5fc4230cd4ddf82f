"""
Configuration schema for traversing a run directory.

Keep this lean: only the knobs the traversal operators expose (purge
truncation, tag/step filters, recombination of split values).
"""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field


class ReaderConfig(BaseModel):
    """
    Validated options for one traversal of a log directory.
    `None` filters mean "include everything".
    """

    # === Rotation ===
    purge: bool = Field(
        default=True,
        description="Cut each file's tail at the first step of the next file "
        "when that next file starts at a non-zero step.",
    )

    # === Filters ===
    tags: frozenset[str] | None = Field(
        default=None,
        description="Only yield values whose tag is in this set.",
    )
    steps: frozenset[int] | None = Field(
        default=None,
        description="Only visit events whose step is in this set.",
    )

    # === Decoding ===
    smart: bool = Field(
        default=True,
        description="Reassemble values that were split across adjacent summary entries.",
    )

    class Config:
        frozen = True

    @classmethod
    def from_options(
        cls,
        *,
        purge: bool = True,
        tags: str | Iterable[str] | None = None,
        steps: Iterable[int] | None = None,
        smart: bool = True,
    ) -> "ReaderConfig":
        """Build a config from loose keyword options; a bare string tag is one tag."""
        if isinstance(tags, str):
            tags = (tags,)
        return cls(
            purge=purge,
            tags=frozenset(tags) if tags is not None else None,
            steps=frozenset(int(s) for s in steps) if steps is not None else None,
            smart=smart,
        )
