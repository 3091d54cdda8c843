"""
Configuration management using Pydantic models.
This module defines type-safe configuration models that can be loaded from YAML files
and validated at runtime.
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from crash_dashboard.constants import DEFAULT_ABBREVIATION, DEFAULT_OUTCOME_COL, N_DECILES, PER_POPULATION


class DataConfig(BaseModel):
    crash_path: Optional[Path] = Field(default=None, description="Precomputed crash table (.csv or .pkl)")
    county_path: Optional[Path] = Field(default=None, description="Precomputed county layer table")
    geojson_path: Optional[Path] = Field(default=None, description="County polygons as GeoJSON")
    outcome_col: str = Field(default=DEFAULT_OUTCOME_COL)
    outcome_source_col: Optional[str] = Field(
        default=None, description="Column renamed to outcome_col after loading"
    )
    n_samples: int = Field(default=5000, gt=0, le=1_000_000, description="Rows of the synthetic crash table")
    n_counties: int = Field(default=60, gt=0, le=5000)
    years: tuple[int, int] = Field(default=(1975, 2013))

    @field_validator("years")
    @classmethod
    def validate_years(cls, v: tuple[int, int]) -> tuple[int, int]:
        if v[0] > v[1]:
            raise ValueError(f"years must be ordered (first, last), got {v}")
        return v


class ModelConfig(BaseModel):
    holdout_fraction: float = Field(default=0.1, gt=0.0, lt=1.0)
    family: str = Field(default="logistic_regression")
    predictors: list[str] = Field(min_length=1, description="Predictors selected by default")
    use_smote: bool = Field(default=False)
    family_params: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Estimator keyword overrides per model family"
    )

    @field_validator("predictors")
    @classmethod
    def validate_predictors(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("predictors must not contain duplicates")
        return v


class TrendsConfig(BaseModel):
    min_share_pct: float = Field(default=2.0, ge=0.0, le=100.0)
    min_year: int = Field(default=1980)


class GeoConfig(BaseModel):
    per_population: int = Field(default=PER_POPULATION, gt=0)
    n_quantiles: int = Field(default=N_DECILES, ge=2, le=20)
    palette: str = Field(default="YlOrRd")
    center: tuple[float, float] = Field(default=(39.833, -98.583), description="Map centre (lat, lng)")
    zoom: int = Field(default=3, ge=0, le=18)
    fill_opacity: float = Field(default=0.6, ge=0.0, le=1.0)

    @field_validator("center")
    @classmethod
    def validate_center(cls, v: tuple[float, float]) -> tuple[float, float]:
        lat, lng = v
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValueError(f"center must be a valid (lat, lng) pair, got {v}")
        return v


class VisualizationConfig(BaseModel):
    top_n_features: int = Field(default=15, gt=0, le=50)
    mosaic_abbreviations: dict[str, int] = Field(
        default_factory=dict, description="Label abbreviation length per mosaic variable"
    )
    default_abbreviation: int = Field(default=DEFAULT_ABBREVIATION, gt=0)

    @field_validator("mosaic_abbreviations")
    @classmethod
    def validate_abbreviations(cls, v: dict[str, int]) -> dict[str, int]:
        bad = {name: length for name, length in v.items() if length <= 0}
        if bad:
            raise ValueError(f"abbreviation lengths must be positive: {bad}")
        return v


class Config(BaseModel):
    data: DataConfig = Field(default_factory=DataConfig)
    model: ModelConfig
    trends: TrendsConfig = Field(default_factory=TrendsConfig)
    geo: GeoConfig = Field(default_factory=GeoConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    random_state: int = Field(ge=0)

    @model_validator(mode="after")
    def validate_cross_references(self) -> "Config":
        if self.data.outcome_col in self.model.predictors:
            raise ValueError(f"outcome column '{self.data.outcome_col}' cannot also be a predictor")
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            config_dict = yaml.safe_load(f)
        return cls(**config_dict)
