"""Central configuration for the affine region repeatability benchmark.

All tunable parameters are defined here with descriptive names.
Runtime objects (BenchmarkConfig, evaluators, detectors) read their
defaults from this module so a single edit changes the whole tool.
"""

from pathlib import Path

# =============================================================================
# BENCHMARK DEFAULTS
# =============================================================================

# Overlap error of the ellipses for which the repeatability is reported.
# The external script only computes errors in steps of 0.1 (0.1 ... 0.9).
DEFAULT_OVERLAP_ERROR = 0.4

# Restrict comparison to the image area visible in both views.
# Should be True for repeatability and False for descriptor performance.
DEFAULT_COMMON_PART = True

# Number of overlap-error buckets returned by the external script
NUM_OVERLAP_DECILES = 9

# =============================================================================
# RESULT CACHE
# =============================================================================

CACHE_DIR = Path(__file__).parent / "cache"

# SQLite file holding cached benchmark results
RESULTS_CACHE_PATH = CACHE_DIR / "results.db"

# Namespace prefix of every cache key written by the benchmark
RESULTS_KEY_NAMESPACE = "kmEval"

# =============================================================================
# EXTERNAL OVERLAP EVALUATOR
# =============================================================================

# Directory holding repeatability.m (and its compiled c_eoverlap helper)
EVALUATOR_INSTALL_DIR = Path(__file__).parent / "data" / "software" / "repeatability"

# Interpreter used to run repeatability.m
EVALUATOR_EXECUTABLE = "octave"

# Upper bound on a single evaluator run, in seconds
EVALUATOR_TIMEOUT_SECONDS = 300

# Where the script can be downloaded from (installation is manual)
EVALUATOR_URL = "http://www.robots.ox.ac.uk/~vgg/research/affine/det_eval_files/repeatability.tar.gz"

# =============================================================================
# DETECTORS
# =============================================================================

# Default detector for the CLI
DEFAULT_DETECTOR = "sift"

# SIFT parameters (cv2.SIFT_create)
SIFT_MAX_FEATURES = 0  # 0 = unlimited
SIFT_CONTRAST_THRESHOLD = 0.04
SIFT_EDGE_THRESHOLD = 10.0

# ORB parameters (cv2.ORB_create)
ORB_MAX_FEATURES = 1000
ORB_SCALE_FACTOR = 1.2
ORB_N_LEVELS = 8

# =============================================================================
# SEQUENCES
# =============================================================================

# Results directory for sequence runs
SEQUENCE_RESULTS_DIR = Path(__file__).parent / "benchmarking" / "results"

# Image file extensions probed in Oxford-style sequence directories
SEQUENCE_IMAGE_EXTENSIONS = (".ppm", ".pgm", ".png", ".jpg")
