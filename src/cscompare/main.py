"""Main CLI entry point for cscompare."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO, Tuple

from . import __version__
from .comparator import ChangesetComparator, DiffResult
from .config import OUTPUT_FORMATS, CompareConfig
from .diffpack import DiffProcessor, ProcessedFile
from .errors import BackendError, CompareError, InvalidArgumentCountError
from .logging_utils import configure_logging
from .serialize import DeterministicSerializer
from .settings import get_default_repo_path
from .vcs import GitRepository

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="compare-changesets",
        usage="%(prog)s [options] TARGET BASE_A TIP_A BASE_B TIP_B",
        description="Compare two change-sets by replaying each onto TARGET "
        "and diffing the resulting trees",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Each change-set BASE..TIP is merged onto TARGET with BASE as the merge
base. Patches both change-sets share cancel out; only what is unique to
either side remains in the diff.

Examples:
  compare-changesets main production production-login-ui main login-ui
  compare-changesets -C /path/to/repo --find-renames 80 main v1 v1-fix main fix
  compare-changesets --json report.json main production hotfix main feature
        """,
    )

    parser.add_argument(
        "refs",
        nargs="*",
        metavar="REF",
        help="TARGET BASE_A TIP_A BASE_B TIP_B",
    )

    # Optional arguments
    parser.add_argument(
        "-C",
        "--repo",
        help="Repository path (default: $CSCOMPARE_REPO or current directory)",
    )
    parser.add_argument(
        "--find-renames",
        type=int,
        default=50,
        help="Rename detection threshold percentage (default: 50)",
    )
    parser.add_argument(
        "--context",
        type=int,
        default=3,
        help="Number of context lines in diffs (default: 3)",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="patch",
        help="Output format (default: patch)",
    )
    parser.add_argument(
        "--json",
        help="Write JSON output to file instead of stdout (implies --format json)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=300,
        help="Timeout in seconds for each git invocation (default: 300)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate command line arguments."""
    if len(args.refs) != 5:
        raise InvalidArgumentCountError(len(args.refs))
    if args.context < 0:
        raise ValueError("--context cannot be negative")
    if not (0 <= args.find_renames <= 100):
        raise ValueError("--find-renames must be between 0 and 100")
    if args.timeout <= 0:
        raise ValueError("--timeout must be positive")


def create_config(args: argparse.Namespace) -> CompareConfig:
    """Create configuration from command line arguments."""
    return CompareConfig(
        repo_path=args.repo or get_default_repo_path(),
        find_renames_threshold=args.find_renames,
        context_lines=args.context,
        output_format="json" if args.json else args.format,
        json_output_path=args.json,
        timeout_seconds=args.timeout,
    )


def collect_notes(files: List[ProcessedFile]) -> List[str]:
    """Collect notes about the comparison."""
    notes = []

    if not files:
        notes.append("No differences between the change-sets")

    binary_files = sum(1 for f in files if f.is_binary)
    if binary_files > 0:
        notes.append(f"{binary_files} binary files differ")

    eol_changes = sum(1 for f in files if f.eol_only_change)
    if eol_changes > 0:
        notes.append(f"EOL changes detected in {eol_changes} files")

    whitespace_changes = sum(1 for f in files if f.whitespace_only_change)
    if whitespace_changes > 0:
        notes.append(f"Whitespace-only changes in {whitespace_changes} files")

    return notes


def process_compare(config: CompareConfig, refs: Sequence[str]) -> Tuple[DiffResult, str]:
    """Run the comparison against the configured repository."""
    repo = GitRepository(config)
    comparator = ChangesetComparator(repo)
    result = comparator.compare(*refs)
    return result, repo.validate_git_version()


def build_payload(config: CompareConfig, result: DiffResult, git_version: str) -> Dict[str, Any]:
    """Structure a comparison result into the JSON payload."""
    files = DiffProcessor().process_patch(result.text)
    notes = collect_notes(files)
    serializer = DeterministicSerializer(config)
    return serializer.serialize_output(result, files, notes, git_version)


def output_json(result: Dict[str, Any], output_path: Optional[str], stream: TextIO) -> None:
    """Output JSON to the given stream or to a file."""
    json_str = DeterministicSerializer().to_json_string(result)

    if output_path:
        Path(output_path).write_text(json_str + "\n", encoding="utf-8")
    else:
        print(json_str, file=stream)


def output_patch(patch: bytes, stream: Optional[TextIO] = None) -> None:
    """Write the raw patch bytes to stdout unchanged."""
    stream = stream or sys.stdout
    stream.flush()
    stream.buffer.write(patch)
    stream.buffer.flush()


def report_error(error: CompareError, args: argparse.Namespace) -> None:
    """Report a failure on stderr (or the JSON file), never on stdout."""
    if args.json or args.format == "json":
        envelope = DeterministicSerializer().create_error_envelope(
            error.code, error.message, error.details
        )
        output_json(envelope, args.json, sys.stderr)
        return

    if isinstance(error, BackendError):
        # Backend output is passed through as emitted
        sys.stderr.write(error.stderr)
    else:
        sys.stderr.write(f"error: {error.message}\n")
    sys.stderr.flush()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    # Options may appear between refs
    args = parser.parse_intermixed_args(argv)

    try:
        configure_logging(default="WARNING")

        # Validate arguments
        validate_args(args)

        # Create configuration
        config = create_config(args)

        result, git_version = process_compare(config, args.refs)

        if config.output_format == "json":
            payload = build_payload(config, result, git_version)
            envelope = DeterministicSerializer(config).create_success_envelope(payload)
            output_json(envelope, config.json_output_path, sys.stdout)
        else:
            output_patch(result.patch)

        return result.returncode

    except InvalidArgumentCountError:
        sys.stderr.write(parser.format_usage())
        return 2

    except BackendError as e:
        report_error(e, args)
        return e.returncode or 1

    except CompareError as e:
        report_error(e, args)
        return 1

    except ValueError as e:
        report_error(CompareError("INVALID_ARGUMENT", str(e)), args)
        return 1

    except Exception as e:
        logger.exception("Unexpected error during comparison")
        report_error(
            CompareError(
                "INTERNAL_ERROR",
                f"Internal error: {str(e)}",
                {"type": type(e).__name__},
            ),
            args,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
