"""CLI for the affine region benchmark."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path (needed when invoked directly)
sys.path.insert(0, str(Path(__file__).parents[2]))

from logging_utils import configure_logging, add_logging_args

from config import (
    DEFAULT_DETECTOR,
    DEFAULT_OVERLAP_ERROR,
    EVALUATOR_TIMEOUT_SECONDS,
    SEQUENCE_RESULTS_DIR,
)
from benchmarking.cli.commands.benchmark import cmd_check, cmd_run, cmd_sequence
from benchmarking.cli.commands.cache import cmd_cache_clear, cmd_cache_stats
from detectors import available_detectors


def _add_evaluator_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--evaluator-dir", type=Path, default=None,
        help="Directory containing repeatability.m (default: data/software/repeatability)",
    )
    parser.add_argument(
        "--octave", default=None,
        help="Octave executable used to run the evaluator (default: octave)",
    )


def _add_benchmark_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-d", "--detector", choices=available_detectors(),
        default=DEFAULT_DETECTOR,
        help=f"Detector to evaluate (default: {DEFAULT_DETECTOR})",
    )
    parser.add_argument(
        "--overlap-error", type=float, default=DEFAULT_OVERLAP_ERROR,
        help=f"Overlap error in {{0.1, ..., 0.9}} (default: {DEFAULT_OVERLAP_ERROR})",
    )
    parser.add_argument(
        "--no-common-part", action="store_true",
        help="Compare whole images instead of the common part (use for descriptor performance)",
    )
    parser.add_argument(
        "--repeatability-only", action="store_true",
        help="Skip descriptors and the matching score",
    )
    parser.add_argument(
        "--no-cache", action="store_true",
        help="Always recompute; never read or write cached results",
    )
    parser.add_argument(
        "--cache", type=Path, default=None,
        help="Result cache file (default: cache/results.db)",
    )
    parser.add_argument(
        "--timeout", type=float, default=EVALUATOR_TIMEOUT_SECONDS,
        help=f"Evaluator timeout in seconds (default: {EVALUATOR_TIMEOUT_SECONDS})",
    )
    _add_evaluator_args(parser)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bench",
        description="Affine region detector benchmark (repeatability and matching score)",
    )
    add_logging_args(parser)
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # run command
    run_parser = subparsers.add_parser("run", help="Evaluate a detector on one image pair")
    run_parser.add_argument("image_a", help="Reference image")
    run_parser.add_argument("image_b", help="Transformed image")
    run_parser.add_argument("homography", help="ASCII 3x3 homography mapping image A onto image B")
    _add_benchmark_args(run_parser)
    run_parser.set_defaults(_cmd=cmd_run)

    # sequence command
    sequence_parser = subparsers.add_parser(
        "sequence", help="Evaluate a detector on an Oxford affine sequence (img1 vs imgN)"
    )
    sequence_parser.add_argument("sequence_dir", help="Directory with img1..imgN and H1toNp")
    _add_benchmark_args(sequence_parser)
    sequence_parser.add_argument(
        "--results-dir", type=Path, default=SEQUENCE_RESULTS_DIR,
        help="Where to save run.json (default: benchmarking/results)",
    )
    sequence_parser.add_argument(
        "--no-save", action="store_true",
        help="Do not save the run to disk",
    )
    sequence_parser.set_defaults(_cmd=cmd_sequence)

    # check command
    check_parser = subparsers.add_parser("check", help="Check that the external evaluator can run")
    _add_evaluator_args(check_parser)
    check_parser.set_defaults(_cmd=cmd_check)

    # cache command
    cache_parser = subparsers.add_parser("cache", help="Manage cached results")
    cache_parser.add_argument(
        "--cache", type=Path, default=None,
        help="Result cache file (default: cache/results.db)",
    )
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command", help="Cache command")

    stats_parser = cache_subparsers.add_parser("stats", help="Show cache size")
    stats_parser.set_defaults(_cmd=cmd_cache_stats)

    clear_parser = cache_subparsers.add_parser("clear", help="Delete cached results")
    clear_parser.add_argument(
        "--prefix",
        help="Only delete keys starting with this prefix (e.g. 'kmEval|4')",
    )
    clear_parser.add_argument(
        "-f", "--force", action="store_true",
        help="Skip confirmation prompt",
    )
    clear_parser.set_defaults(_cmd=cmd_cache_clear)

    cache_parser.set_defaults(_cache_parser=cache_parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, args.verbose, args.quiet)

    if args.command is None:
        parser.print_help()
        return 1

    cmd = getattr(args, "_cmd", None)
    if cmd is None:
        # "cache" without a sub-command
        args._cache_parser.print_help()
        return 1
    return cmd(args)


if __name__ == "__main__":
    sys.exit(main())
