"""Manufacturer fatality trends."""

import logging

import pandas as pd

from crash_dashboard.config import TrendsConfig

logger = logging.getLogger(__name__)


def maker_fatality_trends(
    df: pd.DataFrame,
    cfg: TrendsConfig,
    maker_col: str = "maker",
    year_col: str = "year",
    deaths_col: str = "deaths",
) -> pd.DataFrame:
    """Deaths per manufacturer and year, raw and normalized by row share.

    ``norm_fatal`` divides a maker's yearly deaths by the maker's share of all
    rows (in percent), so large manufacturers do not dominate the chart purely
    through volume. Makers whose share is at or below ``cfg.min_share_pct`` and
    years at or before ``cfg.min_year`` are dropped, as are rows with a missing
    maker or year.

    Returns:
        DataFrame with columns year, maker, sumfatal, pct_rows, norm_fatal,
        sorted by year then maker
    """
    for col in (maker_col, year_col, deaths_col):
        if col not in df.columns:
            raise KeyError(f"Column '{col}' not found in dataset")

    sums = (
        df.groupby([year_col, maker_col])[deaths_col]
        .sum()
        .reset_index()
        .rename(columns={year_col: "year", maker_col: "maker", deaths_col: "sumfatal"})
    )

    share = (
        df.groupby(maker_col).size()
        .div(len(df))
        .mul(100)
        .rename("pct_rows")
        .reset_index()
        .rename(columns={maker_col: "maker"})
    )

    trends = sums.merge(share, on="maker", how="left")
    trends["norm_fatal"] = trends["sumfatal"] / trends["pct_rows"]
    trends = trends[(trends["pct_rows"] > cfg.min_share_pct) & (trends["year"] > cfg.min_year)]

    logger.debug(f"Maker trends: {trends['maker'].nunique()} makers over {trends['year'].nunique()} years")
    return trends.sort_values(["year", "maker"]).reset_index(drop=True)
