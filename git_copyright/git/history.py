"""Derive added/last-modified years per file from the commit graph.

The resolver walks the history reachable from a reference exactly once,
newest commit first. Every candidate file starts out unresolved; commits that
touch the file fill in ``last_modified`` (first write wins because of the walk
order) and the commit that adds it fills in ``added``. Renames and copies move
the entry to the older name so that earlier commits keep updating the same
logical file.

Root commits do not end the walk: ``git log --root`` reports every file of a
root commit as added, so a file whose history reaches a root is resolved by
that root alone. Repositories joined from unrelated histories therefore keep
the years of the history each file actually came from. The ``git log``
process is streamed and stopped as soon as nothing is left to resolve.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import GitError, HistoryError
from ..logging import get_logger
from ..models import TrackedFile, YearRange
from .repository import GitRepository

DEFAULT_SIMILARITY = 50

_HEADER_MARKER = "\0"
_LOG_FORMAT = "%x00%H%x09%P%x09%cI"
_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}

logger = get_logger("history")


@dataclass(frozen=True)
class Change:
    """One entry of a commit's name-status diff against its parent."""

    status: str
    old_path: str
    new_path: str

    @property
    def is_addition(self) -> bool:
        return self.status == "A"

    @property
    def is_deletion(self) -> bool:
        return self.status == "D"


@dataclass
class Commit:
    sha: str
    parents: Tuple[str, ...]
    time: datetime
    changes: List[Change] = field(default_factory=list)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def is_root(self) -> bool:
        return not self.parents


@dataclass
class ResolvedHistory:
    """Year ranges per candidate path, plus the paths history could not explain."""

    years: Dict[str, YearRange] = field(default_factory=dict)
    unknown: List[str] = field(default_factory=list)
    commits_visited: int = 0

    def get(self, path: str) -> Optional[YearRange]:
        return self.years.get(path)


class HistoryResolver:
    """Resolves year ranges for many files with a single ``git log`` pass."""

    def __init__(self, similarity: int = DEFAULT_SIMILARITY) -> None:
        if not 0 <= similarity <= 100:
            raise ValueError(f"similarity must lie in 0..100, got {similarity}")
        self.similarity = similarity

    def resolve(
        self,
        repository: GitRepository,
        ref_name: str,
        paths: Iterable[str],
    ) -> ResolvedHistory:
        """Return the year range of every path in ``paths`` as seen from ``ref_name``."""
        candidates = list(dict.fromkeys(paths))
        if not candidates:
            return ResolvedHistory()
        lines = repository.stream(self.log_command(ref_name))
        try:
            history = walk_history(parse_log(lines), candidates)
        finally:
            lines.close()
        logger.debug(
            "Resolved %d files from %d commits (%d unknown)",
            len(history.years),
            history.commits_visited,
            len(history.unknown),
        )
        return history

    def log_command(self, ref_name: str) -> List[str]:
        threshold = f"{self.similarity}%"
        return [
            "git",
            "-c",
            "core.quotePath=false",
            "log",
            "--date-order",
            "--root",
            "--no-color",
            "--no-ext-diff",
            f"--format={_LOG_FORMAT}",
            "--name-status",
            f"--find-renames={threshold}",
            f"--find-copies={threshold}",
            ref_name,
            "--",
        ]


def walk_history(commits: Iterable[Commit], paths: Iterable[str]) -> ResolvedHistory:
    """Run the reverse-chronological walk over already parsed ``commits``."""
    candidates = list(dict.fromkeys(paths))
    unresolved: Dict[str, List[TrackedFile]] = {
        path: [TrackedFile(path)] for path in candidates
    }
    resolved: List[TrackedFile] = []
    visited = 0

    for commit in commits:
        if commit.is_merge:
            continue
        visited += 1
        _apply_commit(commit, unresolved, resolved)
        if not unresolved:
            break
    else:
        _finalize_untracked_adds(unresolved, resolved)

    leftover = [entry for entries in unresolved.values() for entry in entries]
    _check_accounted(candidates, resolved, leftover)

    history = ResolvedHistory(commits_visited=visited)
    for entry in resolved:
        history.years[entry.path] = YearRange(
            added=entry.added.year,  # type: ignore[union-attr]
            last_modified=entry.last_modified.year,  # type: ignore[union-attr]
        )
    for entry in leftover:
        logger.debug("No history found for %s", entry.path)
        history.unknown.append(entry.path)
    return history


def _apply_commit(
    commit: Commit,
    unresolved: Dict[str, List[TrackedFile]],
    resolved: List[TrackedFile],
) -> None:
    moves: List[Tuple[str, str]] = []
    for change in commit.changes:
        if change.is_deletion:
            continue

        for entry in unresolved.get(change.new_path, ()):
            _touch(entry, commit.time)

        if change.is_addition:
            added = unresolved.pop(change.old_path, None)
            if added:
                for entry in added:
                    entry.added = commit.time
                    logger.debug(
                        "%s added in %s as %s", entry.path, commit.sha[:10], change.old_path
                    )
                resolved.extend(added)
            continue

        if change.old_path != change.new_path:
            moves.append((change.new_path, change.old_path))

    # Detach all sources first so that swaps within one commit keep their entries.
    detached: List[Tuple[str, List[TrackedFile]]] = []
    for new_path, old_path in moves:
        entries = unresolved.pop(new_path, None)
        if entries is None:
            logger.debug(
                "Skipping %s -> %s in %s: no unresolved file under %s",
                old_path,
                new_path,
                commit.sha[:10],
                new_path,
            )
            continue
        detached.append((old_path, entries))
    for old_path, entries in detached:
        unresolved.setdefault(old_path, []).extend(entries)


def _touch(entry: TrackedFile, time: datetime) -> None:
    if entry.last_modified is None or entry.last_modified < time:
        entry.last_modified = time
    if entry.first_touched is None or entry.first_touched > time:
        entry.first_touched = time


def _finalize_untracked_adds(
    unresolved: Dict[str, List[TrackedFile]],
    resolved: List[TrackedFile],
) -> None:
    """Resolve entries the log modified but never added, e.g. files created by a merge."""
    for path in list(unresolved):
        remaining: List[TrackedFile] = []
        for entry in unresolved[path]:
            if entry.first_touched is None:
                remaining.append(entry)
                continue
            logger.debug("No commit adds %s; using its oldest change", entry.path)
            entry.added = entry.first_touched
            resolved.append(entry)
        if remaining:
            unresolved[path] = remaining
        else:
            del unresolved[path]


def _check_accounted(
    candidates: List[str],
    resolved: List[TrackedFile],
    leftover: List[TrackedFile],
) -> None:
    seen = Counter(entry.path for entry in (*resolved, *leftover))
    lost = [path for path in candidates if seen[path] != 1]
    lost.extend(entry.path for entry in resolved if not entry.resolved)
    lost.extend(entry.path for entry in leftover if entry.resolved)
    if lost:
        raise HistoryError(
            f"History walk lost track of {len(lost)} file(s): {', '.join(lost[:5])}"
        )


# ----------------------------------------------------------------------
# Log parsing


def parse_log(lines: Iterable[str]) -> Iterator[Commit]:
    """Lazily parse ``git log --name-status`` output lines produced by ``log_command``."""
    commit: Optional[Commit] = None
    for line in lines:
        line = line.rstrip("\n")
        if line.startswith(_HEADER_MARKER):
            if commit is not None:
                yield commit
            commit = _parse_header(line[len(_HEADER_MARKER) :])
            continue
        if not line:
            continue
        if commit is None:
            raise GitError(f"Unexpected git log output before first commit: {line!r}")
        commit.changes.append(_parse_change(line))
    if commit is not None:
        yield commit


def _parse_header(header: str) -> Commit:
    fields = header.split("\t")
    if len(fields) != 3:
        raise GitError(f"Malformed commit header in git log output: {header!r}")
    sha, parents, timestamp = fields
    try:
        time = datetime.fromisoformat(timestamp.strip())
    except ValueError as exc:
        raise GitError(f"Malformed commit date {timestamp!r} for {sha}") from exc
    return Commit(sha=sha, parents=tuple(parents.split()), time=time)


def _parse_change(line: str) -> Change:
    fields = line.split("\t")
    status = fields[0][:1]
    if status in ("R", "C") and len(fields) == 3:
        return Change(status, unquote_path(fields[1]), unquote_path(fields[2]))
    if status in ("A", "M", "D", "T") and len(fields) == 2:
        path = unquote_path(fields[1])
        return Change(status, path, path)
    raise GitError(f"Unexpected name-status line in git log output: {line!r}")


def unquote_path(raw: str) -> str:
    """Undo git's C-style quoting of unusual path names."""
    if len(raw) < 2 or not (raw.startswith('"') and raw.endswith('"')):
        return raw
    body = raw[1:-1].encode("utf-8", "surrogateescape")
    decoded = bytearray()
    index = 0
    while index < len(body):
        byte = body[index]
        if byte != 0x5C or index + 1 >= len(body):
            decoded.append(byte)
            index += 1
            continue
        escape = chr(body[index + 1])
        if escape in "01234567":
            decoded.append(int(body[index + 1 : index + 4].decode("ascii"), 8))
            index += 4
        else:
            decoded.append(_C_ESCAPES.get(escape, ord(escape)))
            index += 2
    return decoded.decode("utf-8", "surrogateescape")


__all__ = [
    "Change",
    "Commit",
    "DEFAULT_SIMILARITY",
    "HistoryResolver",
    "ResolvedHistory",
    "parse_log",
    "unquote_path",
    "walk_history",
]
