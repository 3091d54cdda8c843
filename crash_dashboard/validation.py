"""Data and model-spec validation for the crash analytics dashboard.

This module provides validation functions to check:
- Schema compliance (expected columns present)
- Outcome column properties (binary or binarizable)
- Dataset size and infinite values
- Model spec sanity (holdout fraction, predictor selection)
- Train/test partition consistency

Usage:
    from crash_dashboard.validation import validate_dataset, DataValidationError

    try:
        validate_dataset(df, config)
    except DataValidationError as e:
        print(f"Validation failed: {e}")
"""

import logging
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from crash_dashboard.config import Config
from crash_dashboard.constants import NEGATIVE_LABELS, POSITIVE_LABELS

logger = logging.getLogger(__name__)


class DataValidationError(Exception):
    """Exception raised when data validation fails."""
    pass


class InvalidSpecError(ValueError):
    """Raised when a model spec cannot be evaluated against a dataset."""
    pass


def validate_schema(df: pd.DataFrame, expected_cols: list[str], strict: bool = False) -> None:
    """Validate that DataFrame has expected columns.

    Args:
        df: DataFrame to validate
        expected_cols: List of expected column names
        strict: If True, DataFrame must have exactly these columns.
                If False, only checks that expected columns exist.

    Raises:
        DataValidationError: If schema validation fails
    """
    df_cols = set(df.columns)
    expected_cols_set = set(expected_cols)

    missing_cols = expected_cols_set - df_cols
    if missing_cols:
        raise DataValidationError(f"Missing required columns: {sorted(missing_cols)}")

    if strict:
        extra_cols = df_cols - expected_cols_set
        if extra_cols:
            raise DataValidationError(f"Unexpected columns found: {sorted(extra_cols)}")

    logger.debug(f"Schema validation passed: {len(expected_cols)} columns verified")


def coerce_outcome(values: pd.Series) -> pd.Series:
    """Coerce an outcome column to integer 0/1.

    Accepts booleans, numbers equal to 0 or 1, and the strings listed in
    ``POSITIVE_LABELS`` / ``NEGATIVE_LABELS`` (case-insensitive).

    Raises:
        InvalidSpecError: If the column has missing values or cannot be binarized
    """
    if values.isna().any():
        raise InvalidSpecError(f"Outcome column '{values.name}' contains {values.isna().sum()} missing values")

    if pd.api.types.is_bool_dtype(values):
        return values.astype(int)

    if pd.api.types.is_numeric_dtype(values):
        unique_values = set(np.unique(values.to_numpy()))
        if not unique_values.issubset({0, 1}):
            raise InvalidSpecError(
                f"Outcome column '{values.name}' is not binary. Found values: {sorted(unique_values)[:10]}"
            )
        return values.astype(int)

    labels = values.astype(str).str.strip().str.lower()
    unknown = set(labels.unique()) - POSITIVE_LABELS - NEGATIVE_LABELS
    if unknown:
        raise InvalidSpecError(
            f"Outcome column '{values.name}' has values that cannot be coerced to 0/1: {sorted(unknown)[:10]}"
        )
    return labels.isin(POSITIVE_LABELS).astype(int).rename(values.name)


def validate_model_spec(
    df: pd.DataFrame,
    outcome_column: str,
    predictor_names: Iterable[str],
    holdout_fraction: float,
) -> list[str]:
    """Check a model spec against a dataset before any work is done.

    Returns:
        Predictor names in caller order with duplicates removed

    Raises:
        InvalidSpecError: On a holdout fraction outside (0, 1), an empty predictor
            set, unknown predictor columns, or a missing outcome column
    """
    if not 0.0 < holdout_fraction < 1.0:
        raise InvalidSpecError(f"holdout_fraction must be in (0, 1), got {holdout_fraction}")

    predictors = list(dict.fromkeys(predictor_names))
    if not predictors:
        raise InvalidSpecError("predictor_names must not be empty")

    if outcome_column not in df.columns:
        raise InvalidSpecError(f"Outcome column '{outcome_column}' not found in dataset")

    if outcome_column in predictors:
        raise InvalidSpecError(f"Outcome column '{outcome_column}' cannot be used as a predictor")

    unknown = [name for name in predictors if name not in df.columns]
    if unknown:
        raise InvalidSpecError(f"Unknown predictor columns: {unknown}")

    return predictors


def validate_no_infinite_values(df: pd.DataFrame, exclude_cols: Optional[list[str]] = None) -> None:
    """Check that DataFrame contains no infinite values.

    Raises:
        DataValidationError: If infinite values are found
    """
    if exclude_cols is None:
        exclude_cols = []

    numeric_cols = df.select_dtypes(include=[np.number]).columns
    check_cols = [col for col in numeric_cols if col not in exclude_cols]

    for col in check_cols:
        inf_count = np.isinf(df[col]).sum()
        if inf_count > 0:
            raise DataValidationError(f"Column '{col}' contains {inf_count} infinite values")

    logger.debug(f"Infinite value check passed for {len(check_cols)} numeric columns")


def validate_dataset_size(df: pd.DataFrame, min_rows: int = 20) -> None:
    """Validate that the dataset has enough rows to split and score.

    Raises:
        DataValidationError: If size validation fails
    """
    n_rows = len(df)
    if n_rows < min_rows:
        raise DataValidationError(f"Dataset too small: {n_rows} rows (minimum: {min_rows})")

    logger.debug(f"Dataset size validation passed: {n_rows:,} rows")


def validate_dataset(df: pd.DataFrame, cfg: Config) -> dict[str, Any]:
    """Validate a loaded crash table before it is shared with the dashboard.

    Args:
        df: Crash table
        cfg: Configuration object

    Returns:
        Dictionary with validation results and statistics

    Raises:
        DataValidationError: If any validation check fails
    """
    logger.info("Starting dataset validation...")
    outcome_col = cfg.data.outcome_col

    results = {
        "n_rows": len(df),
        "n_cols": len(df.columns),
        "validation_passed": False,
    }

    try:
        validate_dataset_size(df)
        validate_schema(df, [outcome_col] + cfg.model.predictors)
        validate_no_infinite_values(df, exclude_cols=[outcome_col])

        try:
            outcome = coerce_outcome(df[outcome_col])
        except InvalidSpecError as e:
            raise DataValidationError(str(e)) from e

        results["outcome_rate"] = float(outcome.mean())
        results["outcome_distribution"] = outcome.value_counts().to_dict()
        results["validation_passed"] = True

        logger.info(
            f"✓ Validation passed: {results['n_rows']:,} rows, "
            f"{results['n_cols']} columns, "
            f"{results['outcome_rate']:.1%} positive outcomes"
        )

        return results

    except DataValidationError as e:
        logger.error(f"✗ Validation failed: {e}")
        results["error"] = str(e)
        raise


def validate_train_test_split(
    train: pd.DataFrame,
    test: pd.DataFrame,
    outcome_column: str,
) -> None:
    """Validate that neither partition is empty.

    Raises:
        InvalidSpecError: If either partition is empty
    """
    if len(train) == 0 or len(test) == 0:
        raise InvalidSpecError(
            f"holdout_fraction leaves an empty partition ({len(train)} train, {len(test)} test rows)"
        )

    logger.debug(
        f"Split validation passed: {len(train):,} train, {len(test):,} test rows; "
        f"test outcome rate {test[outcome_column].mean():.1%}"
    )
