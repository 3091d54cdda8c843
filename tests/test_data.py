"""Tests for crash table creation and loading."""

import json

import pandas as pd
import pytest

from crash_dashboard.data import (
    create_county_table,
    create_crash_dataset,
    load_county_table,
    load_crash_data,
    load_geojson,
)


class TestCreateCountyTable:
    """Tests for create_county_table function."""

    def test_row_count(self, small_config, counties):
        """Test one row per configured county."""
        assert len(counties) == small_config.data.n_counties

    def test_fips_are_zero_padded(self, counties):
        """Test that FIPS codes are five-character strings."""
        assert counties["fips"].str.len().eq(5).all()
        assert counties["fips"].is_unique

    def test_population_positive(self, counties):
        """Test that every county has a positive population."""
        assert (counties["population"] > 0).all()


class TestCreateCrashDataset:
    """Tests for create_crash_dataset function."""

    def test_creates_dataframe(self, crash_df):
        """Test that a DataFrame is returned."""
        assert isinstance(crash_df, pd.DataFrame)

    def test_correct_number_of_samples(self, small_config, crash_df):
        """Test that dataset has correct number of samples."""
        assert len(crash_df) == small_config.data.n_samples

    def test_outcome_values_binary(self, small_config, crash_df):
        """Test that outcome column contains only 0 and 1."""
        assert set(crash_df[small_config.data.outcome_col].unique()).issubset({0, 1})

    def test_has_dashboard_columns(self, crash_df):
        """Test that predictors used by the dashboard are present."""
        for col in ["year", "maker", "night", "speeding", "drunk_dr", "roadtype", "fips", "deaths"]:
            assert col in crash_df.columns

    def test_years_within_bounds(self, small_config, crash_df):
        """Test that crash years fall inside the configured range."""
        first, last = small_config.data.years
        assert crash_df["year"].between(first, last).all()

    def test_crashes_placed_in_known_counties(self, crash_df, counties):
        """Test that every crash references a county in the county table."""
        assert crash_df["fips"].isin(counties["fips"]).all()

    def test_deaths_at_least_one(self, crash_df):
        """Test that each fatal crash has at least one death."""
        assert (crash_df["deaths"] >= 1).all()

    def test_risk_factors_raise_outcome_rate(self, crash_df):
        """Test that speeding crashes have a higher outcome rate."""
        rates = crash_df.groupby("speeding")["depvar"].mean()
        assert rates[1] > rates[0]

    def test_reproducibility(self, small_config, counties):
        """Test that same config produces same dataset."""
        df1 = create_crash_dataset(small_config, counties)
        df2 = create_crash_dataset(small_config, counties)
        pd.testing.assert_frame_equal(df1, df2)


class TestLoaders:
    """Tests for file loaders."""

    def test_load_csv_renames_outcome(self, tmp_path, config):
        """Test that the configured source column becomes the outcome column."""
        path = tmp_path / "crashes.csv"
        pd.DataFrame({"night": [0, 1], "fatal_flag": [1, 0]}).to_csv(path, index=False)
        cfg = config.model_copy(update={"data": config.data.model_copy(update={"outcome_source_col": "fatal_flag"})})

        df = load_crash_data(path, cfg)

        assert "depvar" in df.columns
        assert "fatal_flag" not in df.columns
        assert df["depvar"].tolist() == [1, 0]

    def test_load_csv_restores_fips(self, tmp_path, config):
        """Test county codes read back as numbers are zero padded again."""
        path = tmp_path / "crashes.csv"
        pd.DataFrame({"fips": ["01001", "48201"], "depvar": [1, 0]}).to_csv(path, index=False)
        assert load_crash_data(path, config)["fips"].tolist() == ["01001", "48201"]

    def test_load_pickle(self, tmp_path, config, crash_df):
        """Test loading a pickled crash table."""
        path = tmp_path / "crashes.pkl"
        crash_df.to_pickle(path)
        pd.testing.assert_frame_equal(load_crash_data(path, config), crash_df)

    def test_missing_source_column(self, tmp_path, config):
        """Test that a missing outcome source column raises KeyError."""
        path = tmp_path / "crashes.csv"
        pd.DataFrame({"night": [0, 1]}).to_csv(path, index=False)
        cfg = config.model_copy(update={"data": config.data.model_copy(update={"outcome_source_col": "fatal_flag"})})
        with pytest.raises(KeyError, match="fatal_flag"):
            load_crash_data(path, cfg)

    def test_unsupported_format(self, tmp_path, config):
        """Test that unknown file formats are rejected."""
        path = tmp_path / "crashes.rds"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported table format"):
            load_crash_data(path, config)

    def test_missing_file(self, tmp_path, config):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_crash_data(tmp_path / "nope.csv", config)

    def test_county_fips_zero_padded(self, tmp_path):
        """Test that numeric FIPS codes read from CSV are re-padded."""
        path = tmp_path / "counties.csv"
        pd.DataFrame({"fips": ["01001"], "name": ["Autauga"], "population": [55000]}).to_csv(path, index=False)
        assert load_county_table(path)["fips"].tolist() == ["01001"]

    def test_load_geojson(self, tmp_path):
        """Test reading a GeoJSON document."""
        path = tmp_path / "counties.geojson"
        path.write_text(json.dumps({"type": "FeatureCollection", "features": []}))
        assert load_geojson(path)["type"] == "FeatureCollection"

    def test_create_county_table_reproducible(self, small_config):
        """Test that county tables are reproducible."""
        pd.testing.assert_frame_equal(create_county_table(small_config), create_county_table(small_config))
