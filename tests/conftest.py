"""Shared pytest fixtures for test suite."""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from crash_dashboard.config import Config  # noqa: E402
from crash_dashboard.data import create_county_table, create_crash_dataset  # noqa: E402

CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "dashboard_config.yaml"


@pytest.fixture
def config():
    """Load test configuration from YAML."""
    return Config.from_yaml(CONFIG_PATH)


@pytest.fixture
def small_config(config):
    """Configuration with a 1000-row synthetic crash table."""
    return config.model_copy(update={"data": config.data.model_copy(update={"n_samples": 1000, "n_counties": 20})})


@pytest.fixture
def counties(small_config):
    """Synthetic county table."""
    return create_county_table(small_config)


@pytest.fixture
def crash_df(small_config, counties):
    """Synthetic 1000-row crash table."""
    return create_crash_dataset(small_config, counties)


@pytest.fixture
def binary_df():
    """1000 rows with two binary predictors that drive the outcome."""
    rng = np.random.default_rng(7)
    n = 1000
    night = rng.binomial(1, 0.4, n)
    speeding = rng.binomial(1, 0.3, n)
    log_odds = -1.0 + 1.2 * night + 1.5 * speeding
    depvar = rng.binomial(1, 1 / (1 + np.exp(-log_odds)))
    return pd.DataFrame({"night": night, "speeding": speeding, "depvar": depvar})
