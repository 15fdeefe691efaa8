"""Batch orchestration: list files, resolve history once, patch files concurrently."""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

from .config import CopyrightConfig
from .errors import FileError, FilesChanged, FixError, UnknownCommentSign, UnknownProvenance
from .git.history import DEFAULT_SIMILARITY, HistoryResolver, ResolvedHistory
from .git.repository import GitRepository, Runner
from .logging import get_logger, log_report
from .models import BatchReport, CachedPattern, FileResult, PatchOutcome
from .patcher import apply_copyright
from .regex_cache import CopyrightCache, generate_base_regex, generate_copyright_line

Patcher = Callable[[Path, CachedPattern, str, str], PatchOutcome]


def default_jobs() -> int:
    """Worker cap used when neither the caller nor the config sets one."""
    return min(32, (os.cpu_count() or 1) + 4)


class CopyrightOrchestrator:
    """Coordinates a copyright check over every tracked file of a repository."""

    def __init__(
        self,
        runner: Runner | None = None,
        patcher: Patcher | None = None,
    ) -> None:
        self._runner = runner
        self._patcher = patcher or apply_copyright
        self.logger = get_logger("orchestrator")

    def run(
        self,
        repo_path: str | Path,
        name: str,
        config: CopyrightConfig,
        *,
        ref_name: str = "HEAD",
        jobs: Optional[int] = None,
        similarity: Optional[int] = None,
        check_clean: bool = False,
    ) -> BatchReport:
        """Check and fix copyrights; raise ``FixError``/``FilesChanged`` on failure."""
        started = time.perf_counter()
        repository = GitRepository(repo_path, runner=self._runner)
        sha = repository.verify_ref(ref_name)
        self.logger.debug("Resolved %s to %s in %s", ref_name, sha, repository.root)

        files = self._files_to_check(repository, ref_name, config)
        self.logger.info("Checking %d files", len(files))

        before = repository.snapshot() if check_clean else None

        resolver = HistoryResolver(
            similarity=_first_set(similarity, config.rename_similarity, DEFAULT_SIMILARITY)
        )
        history = resolver.resolve(repository, ref_name, files)

        cache = CopyrightCache(generate_base_regex(name))
        workers = _first_set(jobs, config.jobs, default_jobs())
        self.logger.debug("Patching with up to %d workers", workers)

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="git-copyright"
        ) as executor:
            results = list(
                executor.map(
                    lambda path: self._check_file(
                        repository.root, path, name, config, history, cache
                    ),
                    files,
                )
            )

        report = BatchReport(results=results, elapsed=time.perf_counter() - started)
        log_report(report, self.logger)
        if report.failed:
            raise FixError(report)

        if before is not None and repository.snapshot() != before:
            for result in report.changed:
                self.logger.error("Changed: %s (%s)", result.path, result.outcome.value)
            raise FilesChanged(report)

        return report

    # ------------------------------------------------------------------
    # Internals

    def _files_to_check(
        self,
        repository: GitRepository,
        ref_name: str,
        config: CopyrightConfig,
    ) -> List[str]:
        tracked = repository.files_on_ref(ref_name)
        filtered = config.filter_files(tracked)
        self.logger.debug(
            "%d of %d tracked files remain after ignore globs", len(filtered), len(tracked)
        )
        files: List[str] = []
        for path in filtered:
            target = repository.root / path
            # A symlink target is only patched under its own tracked path.
            if target.is_symlink():
                self.logger.debug("Skipping symlink %s", path)
                continue
            if target.is_file():
                files.append(path)
        return files

    def _check_file(
        self,
        root: Path,
        path: str,
        name: str,
        config: CopyrightConfig,
        history: ResolvedHistory,
        cache: CopyrightCache,
    ) -> FileResult:
        try:
            style = config.get_comment_sign(path)
            if style is None:
                raise UnknownCommentSign(path)
            years = history.get(path)
            if years is None:
                raise UnknownProvenance(path)
            expected = str(years)
            line = generate_copyright_line(name, style, expected)
            outcome = self._patcher(root / path, cache.get_pattern(style), expected, line)
        except FileError as exc:
            return FileResult(path=path, error=exc)
        return FileResult(path=path, outcome=outcome)


def _first_set(*values: Optional[int]) -> int:
    for value in values:
        if value is not None:
            return value
    raise ValueError("No value provided")


__all__ = ["CopyrightOrchestrator", "default_jobs"]
