"""Per-variable summary statistics against the outcome."""

import logging
from typing import Iterable

import pandas as pd

from crash_dashboard.constants import DEFAULT_OUTCOME_COL, DISPLAY_DECIMALS
from crash_dashboard.validation import coerce_outcome

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ["Variable_Name", "Value", "Count", "Percent_Total", "Percent_Fatal"]


def category_outcome_rates(
    df: pd.DataFrame,
    variable: str,
    outcome_col: str = DEFAULT_OUTCOME_COL,
) -> pd.DataFrame:
    """Count and mean outcome for every value of ``variable``.

    Missing values form their own category.

    Args:
        df: Crash table
        variable: Column to group by
        outcome_col: Binary outcome column

    Returns:
        DataFrame with columns value, n, pct_n and avg (full precision), ordered by value
    """
    if variable not in df.columns:
        raise KeyError(f"Variable '{variable}' not found in dataset")

    outcome = coerce_outcome(df[outcome_col])
    rates = (
        pd.DataFrame({"value": df[variable], "outcome": outcome})
        .groupby("value", dropna=False, sort=True)["outcome"]
        .agg(n="size", avg="mean")
        .reset_index()
    )
    rates["pct_n"] = rates["n"] / len(df)
    return rates[["value", "n", "pct_n", "avg"]]


def summarize_variable(
    df: pd.DataFrame,
    variable: str,
    outcome_col: str = DEFAULT_OUTCOME_COL,
) -> pd.DataFrame:
    """Summary table rows for one variable, rounded for display."""
    rates = category_outcome_rates(df, variable, outcome_col)
    summary = pd.DataFrame({
        "Variable_Name": variable,
        "Value": rates["value"].astype(str),
        "Count": rates["n"].astype(int),
        "Percent_Total": rates["pct_n"].round(DISPLAY_DECIMALS),
        "Percent_Fatal": rates["avg"].round(DISPLAY_DECIMALS),
    })
    return summary[SUMMARY_COLUMNS]


def summarize_variables(
    df: pd.DataFrame,
    variables: Iterable[str],
    outcome_col: str = DEFAULT_OUTCOME_COL,
) -> pd.DataFrame:
    """Stack the summary rows of several variables into one table."""
    tables = [summarize_variable(df, variable, outcome_col) for variable in variables]
    if not tables:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    summary = pd.concat(tables, ignore_index=True)
    logger.debug(f"Summary table: {len(tables)} variables, {len(summary)} rows")
    return summary
