"""Outcome-by-category contingency tables for mosaic plots."""

from typing import Any

import pandas as pd
from statsmodels.stats.contingency_tables import Table

from crash_dashboard.config import VisualizationConfig
from crash_dashboard.constants import DEFAULT_OUTCOME_COL
from crash_dashboard.validation import coerce_outcome


def contingency_table(
    df: pd.DataFrame,
    variable: str,
    outcome_col: str = DEFAULT_OUTCOME_COL,
) -> pd.DataFrame:
    """Crosstab of ``variable`` values (rows) against outcome 0/1 (columns)."""
    if variable not in df.columns:
        raise KeyError(f"Variable '{variable}' not found in dataset")
    outcome = coerce_outcome(df[outcome_col])
    return pd.crosstab(df[variable], outcome.rename(outcome_col))


def pearson_residuals(table: pd.DataFrame) -> pd.DataFrame:
    """Pearson residuals under independence; these drive mosaic shading."""
    residuals = Table(table.to_numpy(), shift_zeros=False).resid_pearson
    return pd.DataFrame(residuals, index=table.index, columns=table.columns)


def association_test(table: pd.DataFrame) -> dict[str, Any]:
    """Pearson chi-square test of independence between category and outcome."""
    result = Table(table.to_numpy(), shift_zeros=False).test_nominal_association()
    return {"statistic": float(result.statistic), "df": int(result.df), "pvalue": float(result.pvalue)}


def abbreviation_length(variable: str, cfg: VisualizationConfig) -> int:
    return cfg.mosaic_abbreviations.get(variable, cfg.default_abbreviation)


def abbreviate_label(label: Any, length: int) -> str:
    return str(label)[:length]
