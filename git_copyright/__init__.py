"""Add and update copyright notes according to git history."""

from .config import CopyrightConfig, load_config
from .errors import (
    ConfigError,
    CopyrightError,
    FilesChanged,
    FixError,
    GitError,
    HistoryError,
)
from .models import BatchReport, Enclosing, FileResult, LeftOnly, PatchOutcome, YearRange
from .orchestrator import CopyrightOrchestrator

__version__ = "0.1.0"

__all__ = [
    "BatchReport",
    "ConfigError",
    "CopyrightConfig",
    "CopyrightError",
    "CopyrightOrchestrator",
    "Enclosing",
    "FileResult",
    "FilesChanged",
    "FixError",
    "GitError",
    "HistoryError",
    "LeftOnly",
    "PatchOutcome",
    "YearRange",
    "load_config",
]
