"""Git access and history resolution."""

from .history import HistoryResolver, ResolvedHistory
from .repository import GitRepository

__all__ = ["GitRepository", "HistoryResolver", "ResolvedHistory"]
