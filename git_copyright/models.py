"""Core data models shared across git-copyright components."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from .errors import FileError


@dataclass(frozen=True)
class LeftOnly:
    """Comment opened by a single marker, e.g. ``#`` or ``//``."""

    prefix: str


@dataclass(frozen=True)
class Enclosing:
    """Comment wrapped in a pair of markers, e.g. ``/*`` and ``*/``."""

    prefix: str
    suffix: str


CommentStyle = Union[LeftOnly, Enclosing]


@dataclass
class TrackedFile:
    """A candidate file whose provenance is filled in during the history walk."""

    path: str
    added: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    # Oldest commit seen touching the file; used when no commit adds it.
    first_touched: Optional[datetime] = None

    @property
    def resolved(self) -> bool:
        return self.added is not None


@dataclass(frozen=True)
class YearRange:
    """Years in which a file was added and last modified."""

    added: int
    last_modified: int

    def __str__(self) -> str:
        first, last = sorted((self.added, self.last_modified))
        if first == last:
            return str(first)
        return f"{first}-{last}"


@dataclass(frozen=True)
class CachedPattern:
    """Compiled copyright pattern for one comment style."""

    style: CommentStyle
    regex: "re.Pattern[str]"


class PatchOutcome(str, Enum):
    UNCHANGED = "unchanged"
    REPLACED = "replaced"
    INSERTED = "inserted"


@dataclass
class FileResult:
    """Outcome of checking a single file."""

    path: str
    outcome: Optional[PatchOutcome] = None
    error: Optional[FileError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Aggregated per-file results for one run."""

    results: List[FileResult] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def checked(self) -> int:
        return len(self.results)

    @property
    def changed(self) -> List[FileResult]:
        return [
            result
            for result in self.results
            if result.outcome in (PatchOutcome.REPLACED, PatchOutcome.INSERTED)
        ]

    @property
    def failed(self) -> List[FileResult]:
        return [result for result in self.results if not result.ok]
