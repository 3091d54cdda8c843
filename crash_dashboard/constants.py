"""Constants used throughout the crash analytics dashboard.

This module centralizes all magic numbers to improve code maintainability
and make the analysis rules explicit.
"""

# Dataset Constants
# =================

DEFAULT_OUTCOME_COL = "depvar"
"""Name the outcome column carries once the crash table is loaded."""

SCORE_COL = "score"
"""Column holding model scores on the held-out test partition."""

POSITIVE_LABELS = frozenset({"1", "yes", "y", "true", "t", "fatal"})
"""Outcome strings (lower-cased) treated as the positive class."""

NEGATIVE_LABELS = frozenset({"0", "no", "n", "false", "f", "nonfatal", "non-fatal"})
"""Outcome strings (lower-cased) treated as the negative class."""

# Model Evaluation Constants
# ==========================

N_DECILES = 10
"""Number of equal-count buckets in the calibration table."""

POSITIVE_CLASS = 1
"""Label of the positive (fatal) outcome after coercion."""

MIN_TRAIN_CLASSES = 2
"""A training partition needs both outcome classes to fit a classifier."""

SMOTE_K_NEIGHBORS = 5
"""Number of nearest neighbors for SMOTE oversampling.
Value must be less than minority class samples in training set."""

# Geo Constants
# =============

PER_POPULATION = 10_000
"""County fatality rates are reported per this many residents."""

NA_COLOR = "transparent"
"""Fill for counties without a usable rate."""

# Presentation Constants
# ======================

DISPLAY_DECIMALS = 2
"""Decimal places for percentages shown in summary tables and popups."""

DEFAULT_ABBREVIATION = 3
"""Mosaic label abbreviation length for variables without an explicit entry."""
