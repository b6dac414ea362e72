"""Benchmark CLI commands."""
from __future__ import annotations

import argparse
from pathlib import Path


def _build_benchmark(args: argparse.Namespace):
    from benchmarking.cache import ResultCache
    from benchmarking.evaluator import OctaveRepeatabilityEvaluator
    from benchmarking.runner import RepeatabilityBenchmark
    from benchmarking.schemas import BenchmarkConfig

    config = BenchmarkConfig(
        overlap_error=args.overlap_error,
        common_part=not args.no_common_part,
    )
    evaluator = OctaveRepeatabilityEvaluator(
        install_dir=args.evaluator_dir,
        executable=args.octave,
        timeout=args.timeout,
    )
    cache = ResultCache(args.cache) if args.cache else ResultCache()
    return RepeatabilityBenchmark(config=config, evaluator=evaluator, cache=cache)


def _build_detector(args: argparse.Namespace):
    from detectors import get_detector_by_name

    return get_detector_by_name(args.detector, use_cache=not args.no_cache)


def cmd_run(args: argparse.Namespace) -> int:
    """Evaluate a detector on one image pair and print the scores."""
    from benchmarking.errors import BenchmarkError
    from benchmarking.regions import load_homography
    from benchmarking.scoring import format_scores

    try:
        benchmark = _build_benchmark(args)
        detector = _build_detector(args)
        scores = benchmark.test_detector(
            detector,
            load_homography(Path(args.homography)),
            Path(args.image_a),
            Path(args.image_b),
            want_matching=not args.repeatability_only,
        )
    except (BenchmarkError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print("\n" + "=" * 60)
    print("BENCHMARK RESULTS")
    print("=" * 60)
    print(f"\nDetector: {detector.name}")
    print(f"Images:   {Path(args.image_a).name} / {Path(args.image_b).name}")
    print(f"Config:   {benchmark.signature()}")
    print(f"\n{format_scores(scores)}")
    return 0


def cmd_sequence(args: argparse.Namespace) -> int:
    """Evaluate a detector on an Oxford-style sequence."""
    from benchmarking.errors import BenchmarkError
    from benchmarking.sequence import run_sequence

    try:
        benchmark = _build_benchmark(args)
        detector = _build_detector(args)
        run = run_sequence(
            benchmark,
            detector,
            Path(args.sequence_dir),
            want_matching=not args.repeatability_only,
            results_dir=None if args.no_save else args.results_dir,
        )
    except (BenchmarkError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print("\n" + "=" * 60)
    print(f"SEQUENCE RESULTS: {run.metadata.sequence} ({run.metadata.detector})")
    print("=" * 60)
    print(f"{'Pair':<24} {'Rep':>8} {'Corr':>6} {'Match':>8} {'#Match':>7}")
    for r in run.results:
        s = r.scores
        match = f"{s.matching_score:.1%}" if s.has_matching else "-"
        num_matches = str(s.num_matches) if s.num_matches is not None else "-"
        print(
            f"{r.image_a + ' / ' + r.image_b:<24} {s.repeatability:>8.1%} "
            f"{s.num_correspondences:>6} {match:>8} {num_matches:>7}"
        )
    mean = run.mean_repeatability()
    if mean is not None:
        print(f"\nMean repeatability: {mean:.1%}")
    print(f"Runtime: {run.metadata.total_runtime_seconds:.1f}s")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Report whether the external evaluator can be run."""
    from benchmarking.evaluator import OctaveRepeatabilityEvaluator
    from config import EVALUATOR_URL

    evaluator = OctaveRepeatabilityEvaluator(
        install_dir=args.evaluator_dir,
        executable=args.octave,
    )
    print(f"Script dir: {evaluator.install_dir}")
    print(f"Executable: {evaluator.executable}")
    if evaluator.is_available():
        print("Evaluator: available")
        return 0
    print("Evaluator: NOT available")
    print(f"Download repeatability.m from {EVALUATOR_URL}")
    return 1
