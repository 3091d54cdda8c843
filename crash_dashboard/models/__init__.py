"""Model evaluation pipeline, model family registry and metrics."""

from .metrics import RocCurve, assign_deciles, decile_table, feature_importance, roc_curve_points
from .pipeline import (
    EvaluationResult,
    FitError,
    FittedModel,
    ModelSpec,
    build_pipeline,
    describe_evaluation,
    evaluate,
    fit_model,
)
from .registry import (
    ModelFamily,
    build_model_registry,
    direct_prediction,
    positive_class_probability,
    posterior_probability,
    register_family,
)

__all__ = [
    "evaluate",
    "fit_model",
    "build_pipeline",
    "describe_evaluation",
    "EvaluationResult",
    "FitError",
    "FittedModel",
    "ModelSpec",
    "RocCurve",
    "assign_deciles",
    "decile_table",
    "roc_curve_points",
    "feature_importance",
    "ModelFamily",
    "build_model_registry",
    "register_family",
    "direct_prediction",
    "positive_class_probability",
    "posterior_probability",
]
