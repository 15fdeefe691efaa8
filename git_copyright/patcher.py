"""Check and update the copyright line in a file header."""

from __future__ import annotations

from itertools import islice
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import DecodeError, ReadError, WriteError
from .logging import get_logger
from .models import CachedPattern, PatchOutcome

HEADER_SEARCH_DEPTH = 3

_ENCODING = "utf-8"

logger = get_logger("patcher")


def apply_copyright(
    path: Path,
    pattern: CachedPattern,
    expected_years: str,
    copyright_line: str,
) -> PatchOutcome:
    """Make sure ``path`` carries ``copyright_line`` within its first lines.

    A header line matching ``pattern`` with the expected years leaves the file
    untouched. A matching line with other years is replaced in place; without
    any match the line is inserted at the top of the file.
    """
    expected = expected_years.strip()
    header = _read_header(path)
    match = _find_notice(header, pattern)

    if match is None:
        logger.info("File %s has no copyright but should have %s", path, expected)
        _write_copyright(path, copyright_line, None)
        return PatchOutcome.INSERTED

    line_nr, found_years = match
    if found_years == expected:
        logger.debug("File %s has correct copyright with years %s", path, expected)
        return PatchOutcome.UNCHANGED

    logger.info(
        "File %s has copyright with year(s) %s on line %d but should have %s",
        path,
        found_years,
        line_nr + 1,
        expected,
    )
    _write_copyright(path, copyright_line, line_nr)
    return PatchOutcome.REPLACED


def _find_notice(header: List[str], pattern: CachedPattern) -> Optional[Tuple[int, str]]:
    for line_nr, line in enumerate(header):
        found = pattern.regex.match(_strip_eol(line))
        if found:
            return line_nr, found.group(1).strip()
    return None


def _read_header(path: Path) -> List[str]:
    try:
        with path.open("r", encoding=_ENCODING, newline="") as handle:
            return list(islice(handle, HEADER_SEARCH_DEPTH))
    except UnicodeDecodeError as exc:
        raise DecodeError(str(path)) from exc
    except OSError as exc:
        raise ReadError(str(path)) from exc


def _write_copyright(path: Path, copyright_line: str, line_nr: Optional[int]) -> None:
    try:
        with path.open("r", encoding=_ENCODING, newline="") as handle:
            lines = handle.readlines()
    except UnicodeDecodeError as exc:
        raise DecodeError(str(path)) from exc
    except OSError as exc:
        raise ReadError(str(path)) from exc

    if line_nr is None:
        newline = _line_ending(lines[0]) if lines else "\n"
        lines.insert(0, copyright_line + (newline or "\n"))
    else:
        lines[line_nr] = copyright_line + _line_ending(lines[line_nr])

    try:
        with path.open("w", encoding=_ENCODING, newline="") as handle:
            handle.write("".join(lines))
    except OSError as exc:
        raise WriteError(str(path)) from exc


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _line_ending(line: str) -> str:
    return line[len(_strip_eol(line)) :]


__all__ = ["HEADER_SEARCH_DEPTH", "apply_copyright"]
