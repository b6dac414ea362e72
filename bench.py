#!/usr/bin/env python3
"""
Unified CLI for the affine region detector benchmark.

Usage:
    bench run img1.ppm img2.ppm H1to2p          # Repeatability + matching score
    bench run img1.ppm img2.ppm H1to2p --repeatability-only
    bench sequence data/graf -d orb             # img1 vs img2..imgN
    bench check                                 # Is repeatability.m runnable?
    bench cache stats                           # Cached result count
    bench cache clear --prefix 'kmEval|2'       # Drop repeatability-only entries
"""

import sys

from benchmarking.cli import main


if __name__ == "__main__":
    sys.exit(main())
