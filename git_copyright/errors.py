"""Exception types raised by git-copyright."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import BatchReport


class CopyrightError(Exception):
    """Base class for all git-copyright errors."""


class ConfigError(CopyrightError):
    """Raised when the configuration file cannot be parsed or is invalid."""


class GitError(CopyrightError):
    """Raised when a git subcommand fails; fatal for the whole run."""


class HistoryError(CopyrightError):
    """Raised when the history walk loses track of a candidate file."""


class FileError(CopyrightError):
    """Per-file failure; the batch continues with the remaining files."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class UnknownCommentSign(FileError):
    def __init__(self, path: str) -> None:
        super().__init__(path, f"No comment sign found for file {path}")


class UnknownProvenance(FileError):
    def __init__(self, path: str) -> None:
        super().__init__(path, f"Could not determine history of file {path}")


class ReadError(FileError):
    def __init__(self, path: str) -> None:
        super().__init__(path, f"Could not read {path}")


class WriteError(FileError):
    def __init__(self, path: str) -> None:
        super().__init__(path, f"Could not write {path}")


class DecodeError(FileError):
    def __init__(self, path: str) -> None:
        super().__init__(path, f"Could not decode {path} as UTF-8 text")


class FixError(CopyrightError):
    """Raised when at least one file could not be checked or fixed."""

    def __init__(self, report: "BatchReport") -> None:
        super().__init__("Some copyrights could not be fixed, please check the output")
        self.report = report


class FilesChanged(CopyrightError):
    """Raised in check mode when the run modified the working tree."""

    def __init__(self, report: "BatchReport") -> None:
        super().__init__(
            "The copyright job changed tracked files that should be committed"
        )
        self.report = report


__all__ = [
    "ConfigError",
    "CopyrightError",
    "DecodeError",
    "FileError",
    "FilesChanged",
    "FixError",
    "GitError",
    "HistoryError",
    "ReadError",
    "UnknownCommentSign",
    "UnknownProvenance",
    "WriteError",
]
