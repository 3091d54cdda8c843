"""Crash table loading and synthetic dataset creation."""

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from crash_dashboard.config import Config

logger = logging.getLogger(__name__)

MAKERS = ["Ford", "General Motors", "Toyota", "Honda", "Chrysler", "Nissan", "Volkswagen", "Saab"]
MAKER_WEIGHTS = [0.27, 0.26, 0.13, 0.10, 0.12, 0.07, 0.04, 0.01]

ROAD_TYPES = ["Interstate", "Highway", "Local", "Rural"]
LIGHTING = ["Daylight", "Dark", "Dark-Lighted", "Dawn", "Dusk"]
WEATHER = ["Clear", "Rain", "Snow", "Fog", "Cloudy"]
STATES = {"AL": "Alabama", "CA": "California", "MT": "Montana", "OH": "Ohio", "TX": "Texas", "WY": "Wyoming"}

# Log-odds contributions of the synthetic outcome model
BASE_LOG_ODDS = -1.6
NIGHT_EFFECT = 0.7
SPEEDING_EFFECT = 0.9
DRUNK_EFFECT = 1.1
ROAD_EFFECTS = {"Interstate": 0.3, "Highway": 0.4, "Local": -0.4, "Rural": 0.6}


def create_county_table(cfg: Config) -> pd.DataFrame:
    """Create a synthetic county table with population figures.

    Args:
        cfg: Configuration object with data parameters

    Returns:
        DataFrame with fips, name, state, state_name and population columns
    """
    rng = np.random.default_rng(cfg.random_state)
    n = cfg.data.n_counties
    states = rng.choice(list(STATES), size=n)
    counties = pd.DataFrame({
        "fips": [f"{i + 1:05d}" for i in range(n)],
        "name": [f"County {i + 1}" for i in range(n)],
        "state": states,
        "state_name": [STATES[s] for s in states],
        "population": rng.integers(5_000, 1_000_000, size=n),
    })
    return counties


def create_crash_dataset(cfg: Config, counties: pd.DataFrame) -> pd.DataFrame:
    """Create a reproducible synthetic crash table.

    Each row is one crash with categorical and binary predictors, a manufacturer,
    a death count and a binary outcome drawn from a logistic model in which
    night-time driving, speeding, drunk drivers and rural roads raise the odds.

    Args:
        cfg: Configuration object with dataset parameters
        counties: County table used to place crashes (population weighted)

    Returns:
        DataFrame with predictors and the outcome column named by cfg.data.outcome_col
    """
    rng = np.random.default_rng(cfg.random_state)
    n = cfg.data.n_samples
    first_year, last_year = cfg.data.years

    county_weights = counties["population"].to_numpy(dtype=float)
    county_idx = rng.choice(len(counties), size=n, p=county_weights / county_weights.sum())

    df = pd.DataFrame({
        "year": rng.integers(first_year, last_year + 1, size=n),
        "maker": rng.choice(MAKERS, size=n, p=MAKER_WEIGHTS),
        "night": rng.binomial(1, 0.35, size=n),
        "speeding": rng.binomial(1, 0.2, size=n),
        "drunk_dr": rng.binomial(1, 0.25, size=n),
        "roadtype": rng.choice(ROAD_TYPES, size=n),
        "lighting": rng.choice(LIGHTING, size=n),
        "weathercond": rng.choice(WEATHER, size=n, p=[0.6, 0.15, 0.08, 0.05, 0.12]),
        "hour": rng.integers(0, 24, size=n),
        "month": rng.integers(1, 13, size=n),
        "fips": counties["fips"].to_numpy()[county_idx],
        "st": counties["state"].to_numpy()[county_idx],
        "deaths": 1 + rng.poisson(0.3, size=n),
    })

    log_odds = (
        BASE_LOG_ODDS
        + NIGHT_EFFECT * df["night"]
        + SPEEDING_EFFECT * df["speeding"]
        + DRUNK_EFFECT * df["drunk_dr"]
        + df["roadtype"].map(ROAD_EFFECTS)
    )
    probability = 1 / (1 + np.exp(-log_odds))
    df[cfg.data.outcome_col] = rng.binomial(1, probability.to_numpy())

    logger.debug(f"Synthetic crash table: {n} rows, outcome rate {df[cfg.data.outcome_col].mean():.3f}")
    return df


def _read_table(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    if path.suffix == ".csv":
        return pd.read_csv(path)
    if path.suffix in {".pkl", ".pickle"}:
        return pd.read_pickle(path)
    raise ValueError(f"Unsupported table format '{path.suffix}' for {path} (expected .csv or .pkl)")


def load_crash_data(path: str | Path, cfg: Config) -> pd.DataFrame:
    """Load a precomputed crash table and name its outcome column.

    Args:
        path: Location of a .csv or .pkl crash table
        cfg: Configuration object; ``data.outcome_source_col`` is renamed to
            ``data.outcome_col`` when set

    Returns:
        Crash table
    """
    df = _read_table(Path(path))
    source_col = cfg.data.outcome_source_col
    if source_col is not None and source_col != cfg.data.outcome_col:
        if source_col not in df.columns:
            raise KeyError(f"Outcome source column '{source_col}' not found in {path}")
        df = df.rename(columns={source_col: cfg.data.outcome_col})
    if "fips" in df.columns:
        df["fips"] = df["fips"].astype(str).str.zfill(5)
    logger.info(f"Loaded {len(df):,} crash rows from {path}")
    return df


def load_county_table(path: str | Path) -> pd.DataFrame:
    """Load the county layer table (fips, name, state_name, population[, total])."""
    counties = _read_table(Path(path))
    if "fips" in counties.columns:
        counties["fips"] = counties["fips"].astype(str).str.zfill(5)
    return counties


def load_geojson(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"GeoJSON file not found: {path}")
    with open(path) as f:
        return json.load(f)
