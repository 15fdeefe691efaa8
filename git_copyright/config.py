"""Configuration loading for git-copyright (YAML)."""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from importlib import resources
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError
from .logging import get_logger
from .models import CommentStyle, Enclosing, LeftOnly

_DEFAULT_CONFIG = "default_config.yml"

logger = get_logger("config")


@dataclass
class CopyrightConfig:
    """Settings controlling which files are checked and how notices are written."""

    comment_sign_map: Dict[str, CommentStyle] = field(default_factory=dict)
    ignore_files: List[str] = field(default_factory=list)
    ignore_dirs: List[str] = field(default_factory=list)
    rename_similarity: Optional[int] = None
    jobs: Optional[int] = None
    source: Optional[Path] = None

    @property
    def ignore_patterns(self) -> List[str]:
        return [*self.ignore_files, *self.ignore_dirs]

    def get_comment_sign(self, filename: str) -> Optional[CommentStyle]:
        """Return the comment style for ``filename`` keyed by extension or bare name."""
        path = PurePosixPath(filename.replace("\\", "/"))
        key = path.suffix[1:] if path.suffix else path.name
        return self.comment_sign_map.get(key)

    def filter_files(self, files: Iterable[str]) -> List[str]:
        """Drop every path matching one of the ignore globs."""
        patterns = self.ignore_patterns
        if not patterns:
            logger.warning("No glob patterns to ignore found")
        return [
            path
            for path in files
            if not any(fnmatchcase(path, pattern) for pattern in patterns)
        ]


def load_config(config_path: Path | None = None) -> CopyrightConfig:
    """Load configuration from ``config_path`` or the packaged defaults."""
    if config_path is None:
        text = resources.files("git_copyright").joinpath(_DEFAULT_CONFIG).read_text(
            encoding="utf-8"
        )
        return parse_config(text)

    config_file = Path(config_path).expanduser().resolve()
    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read config file {config_file}: {exc}") from exc
    return parse_config(text, source=config_file)


def parse_config(text: str, *, source: Path | None = None) -> CopyrightConfig:
    """Build a configuration object from YAML text."""
    label = source.name if source is not None else _DEFAULT_CONFIG
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not deserialize config {label}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{label} must contain a mapping at the root")

    return CopyrightConfig(
        comment_sign_map=_parse_comment_signs(data.get("comment_sign_map")),
        ignore_files=_as_str_list(data.get("ignore_files"), "ignore_files"),
        ignore_dirs=_as_str_list(data.get("ignore_dirs"), "ignore_dirs"),
        rename_similarity=_as_percentage(data.get("rename_similarity")),
        jobs=_as_positive_int(data.get("jobs"), "jobs"),
        source=source,
    )


def _parse_comment_signs(value: Any) -> Dict[str, CommentStyle]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError("comment_sign_map must be a mapping")
    signs: Dict[str, CommentStyle] = {}
    for key, raw in value.items():
        signs[str(key)] = _parse_comment_sign(str(key), raw)
    return signs


def _parse_comment_sign(key: str, raw: Any) -> CommentStyle:
    if isinstance(raw, str) and raw:
        return LeftOnly(raw)
    if (
        isinstance(raw, Sequence)
        and not isinstance(raw, str)
        and len(raw) == 2
        and all(isinstance(part, str) and part for part in raw)
    ):
        return Enclosing(raw[0], raw[1])
    raise ConfigError(
        f"Comment sign for {key!r} must be a string or a list of two strings, got {raw!r}"
    )


def _as_str_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    raise ConfigError(f"{key} must be a list of glob patterns")


def _as_percentage(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ConfigError(f"rename_similarity must be an integer in 0..100, got {value!r}")
    return value


def _as_positive_int(value: Any, key: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return value


__all__ = ["CopyrightConfig", "load_config", "parse_config"]
