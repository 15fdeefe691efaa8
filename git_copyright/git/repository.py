"""Thin wrapper around the git command line."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List

from ..errors import GitError
from ..logging import get_logger

Runner = Callable[..., str]
Streamer = Callable[..., Iterator[str]]

logger = get_logger("git")


@dataclass(frozen=True)
class TreeSnapshot:
    """Working tree state used to detect modifications made by a run."""

    diff: str
    status: str


class GitRepository:
    """Read-only access to a repository through ``git`` subprocesses."""

    def __init__(
        self,
        path: str | Path,
        runner: Runner | None = None,
        streamer: Streamer | None = None,
    ) -> None:
        self._runner = runner or run_git
        self._streamer = streamer or stream_git
        self.root = self._toplevel(Path(path).expanduser().resolve())

    def verify_ref(self, ref_name: str) -> str:
        """Return the commit id ``ref_name`` points to."""
        try:
            output = self.run(
                ["git", "rev-parse", "--verify", "--quiet", f"{ref_name}^{{commit}}"]
            )
        except GitError as exc:
            raise GitError(f"Could not resolve reference {ref_name!r}") from exc
        sha = output.strip()
        if not sha:
            raise GitError(f"Could not resolve reference {ref_name!r}")
        return sha

    def files_on_ref(self, ref_name: str) -> List[str]:
        """Return all files in the repository tree on ``ref_name``."""
        output = self.run(["git", "ls-tree", "-r", "-z", "--name-only", "--full-tree", ref_name])
        return [entry for entry in output.split("\0") if entry]

    def snapshot(self) -> TreeSnapshot:
        """Capture tracked modifications and status of the working tree."""
        diff = self.run(["git", "diff", "--no-color", "--no-ext-diff"])
        status = self.run(["git", "status", "--porcelain"])
        return TreeSnapshot(diff=diff, status=status)

    def run(self, args: Iterable[str]) -> str:
        return self._call(list(args), self.root)

    def stream(self, args: Iterable[str]) -> Iterator[str]:
        """Yield output lines of a git command; closing the iterator stops git."""
        arguments = list(args)
        try:
            yield from self._streamer(arguments, cwd=self.root)
        except subprocess.CalledProcessError as exc:
            raise _command_error(arguments, exc) from exc
        except OSError as exc:
            raise GitError(f"Unable to run git: {exc}") from exc

    # ------------------------------------------------------------------
    # Internals

    def _toplevel(self, path: Path) -> Path:
        if not path.is_dir():
            raise GitError(f"Repository path is not a directory: {path}")
        output = self._call(["git", "rev-parse", "--show-toplevel"], path)
        toplevel = output.strip()
        if not toplevel:
            raise GitError(f"{path} is not a Git repository")
        return Path(toplevel)

    def _call(self, args: List[str], cwd: Path) -> str:
        try:
            return self._runner(args, cwd=cwd, capture_output=True)
        except subprocess.CalledProcessError as exc:
            raise _command_error(args, exc) from exc
        except OSError as exc:
            raise GitError(f"Unable to run git: {exc}") from exc


def run_git(
    args: Iterable[str],
    *,
    cwd: Path,
    capture_output: bool = False,
) -> str:
    """Run a git command and return its decoded standard output."""
    arguments = list(args)
    logger.debug("Running %s", " ".join(arguments))
    completed = subprocess.run(
        arguments,
        cwd=str(cwd),
        check=True,
        encoding="utf-8",
        errors="surrogateescape",
        capture_output=capture_output,
    )
    return completed.stdout if capture_output else ""


def stream_git(args: Iterable[str], *, cwd: Path) -> Iterator[str]:
    """Run a git command and yield its standard output line by line.

    Closing the generator before the output is exhausted kills the process.
    """
    arguments = list(args)
    logger.debug("Streaming %s", " ".join(arguments))
    process = subprocess.Popen(
        arguments,
        cwd=str(cwd),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="surrogateescape",
    )
    assert process.stdout is not None and process.stderr is not None
    finished = False
    try:
        for line in process.stdout:
            yield line
        finished = True
    finally:
        if not finished:
            process.kill()
        stderr = process.stderr.read()
        returncode = process.wait()
        process.stdout.close()
        process.stderr.close()
    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, arguments, stderr=stderr)


def _command_error(args: List[str], exc: subprocess.CalledProcessError) -> GitError:
    stderr = (exc.stderr or "").strip()
    return GitError(
        f"Error while running git subcommand {' '.join(args[1:3])}: {stderr or exc}"
    )


__all__ = ["GitRepository", "Runner", "Streamer", "TreeSnapshot", "run_git", "stream_git"]
