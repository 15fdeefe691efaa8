"""CLI entrypoint for git-copyright."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .errors import CopyrightError, FilesChanged, FixError
from .logging import configure_logging, get_logger
from .orchestrator import CopyrightOrchestrator


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def _percentage(value: str) -> int:
    number = int(value)
    if not 0 <= number <= 100:
        raise argparse.ArgumentTypeError(f"expected a value in 0..100, got {value}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-copyright",
        description="Add or update copyright notes according to git history.",
    )
    parser.add_argument(
        "-r",
        "--repo",
        default="./",
        help="Path to repository to check (defaults to current directory).",
    )
    parser.add_argument("-n", "--name", required=True, help="Name in copyright.")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="YAML file with config to use (defaults to the bundled configuration).",
    )
    parser.add_argument(
        "--ref",
        default="HEAD",
        help="Reference whose files and history are checked.",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=None,
        help="Maximum number of files processed concurrently.",
    )
    parser.add_argument(
        "--similarity",
        type=_percentage,
        default=None,
        help="Similarity index (percent) for rename and copy detection.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Fail if the run changed tracked files (for CI).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log output to this file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for git-copyright."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)
    logger = get_logger("cli")

    try:
        if args.config is None:
            logger.info("Using default configuration")
        else:
            logger.info("Using config %s", args.config)
        config = load_config(args.config)

        report = CopyrightOrchestrator().run(
            args.repo,
            args.name,
            config,
            ref_name=args.ref,
            jobs=args.jobs,
            similarity=args.similarity,
            check_clean=bool(args.check),
        )
    except (FixError, FilesChanged) as exc:
        parser.exit(1, f"{exc}\n")
    except CopyrightError as exc:
        parser.exit(1, f"git-copyright failed: {exc}\nRun with --verbose for more details.\n")

    print(f"Copyrights checked and updated in {report.elapsed:0.3f}s")


if __name__ == "__main__":
    main(sys.argv[1:])
