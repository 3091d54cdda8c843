"""Dashboard context: data and settings built once and shared by every view."""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import pandas as pd

from crash_dashboard.analysis import maker_fatality_trends
from crash_dashboard.config import Config
from crash_dashboard.data import (
    create_county_table,
    create_crash_dataset,
    load_county_table,
    load_crash_data,
    load_geojson,
)
from crash_dashboard.geo import build_county_layer
from crash_dashboard.models import EvaluationResult, ModelFamily, ModelSpec, build_model_registry, evaluate
from crash_dashboard.validation import validate_dataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardContext:
    """Everything the dashboard views read; treated as read-only after construction."""
    config: Config
    crashes: pd.DataFrame
    counties: Optional[pd.DataFrame] = None
    county_layer: Optional[pd.DataFrame] = None
    geojson: Optional[dict[str, Any]] = None
    maker_trends: Optional[pd.DataFrame] = None
    registry: Mapping[str, ModelFamily] = field(default_factory=build_model_registry)

    @property
    def outcome_col(self) -> str:
        return self.config.data.outcome_col

    def default_spec(self) -> ModelSpec:
        return ModelSpec(
            predictor_names=tuple(self.config.model.predictors),
            holdout_fraction=self.config.model.holdout_fraction,
            model_family=self.config.model.family,
        )

    def evaluate(self, spec: Optional[ModelSpec] = None) -> EvaluationResult:
        """Run the evaluation pipeline for ``spec`` (default: the configured spec)."""
        if spec is None:
            spec = self.default_spec()
        return evaluate(
            self.crashes,
            self.outcome_col,
            spec.predictor_names,
            spec.holdout_fraction,
            spec.model_family,
            random_state=self.config.random_state,
            registry=self.registry,
            use_smote=self.config.model.use_smote,
            model_params=self.config.model.family_params.get(spec.model_family),
        )


def build_context(cfg: Config) -> DashboardContext:
    """Load (or synthesize) the crash and county tables and derive shared views.

    When ``cfg.data.crash_path`` is unset a synthetic crash table and county
    table are generated from ``cfg.random_state``.
    """
    if cfg.data.crash_path is not None:
        crashes = load_crash_data(cfg.data.crash_path, cfg)
        counties = load_county_table(cfg.data.county_path) if cfg.data.county_path is not None else None
    else:
        logger.info("No crash table configured, generating synthetic data")
        counties = create_county_table(cfg)
        crashes = create_crash_dataset(cfg, counties)

    validate_dataset(crashes, cfg)

    maker_trends = None
    if {"maker", "year", "deaths"}.issubset(crashes.columns):
        maker_trends = maker_fatality_trends(crashes, cfg.trends)

    county_layer = None
    if counties is not None and {"fips", "deaths"}.issubset(crashes.columns):
        county_layer = build_county_layer(crashes, counties, cfg.geo)

    geojson = load_geojson(cfg.data.geojson_path) if cfg.data.geojson_path is not None else None

    logger.info(
        f"Context ready: {len(crashes):,} crashes, "
        f"{0 if counties is None else len(counties)} counties"
    )
    return DashboardContext(
        config=cfg,
        crashes=crashes,
        counties=counties,
        county_layer=county_layer,
        geojson=geojson,
        maker_trends=maker_trends,
        registry=build_model_registry(),
    )
