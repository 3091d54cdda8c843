"""Calibration, ROC and feature-importance metrics for fitted models."""

import logging
from typing import Optional, TypedDict

import numpy as np
import numpy.typing as npt
import pandas as pd
from sklearn.inspection import permutation_importance
from sklearn.metrics import auc as area_under_curve
from sklearn.metrics import roc_curve

from crash_dashboard.constants import N_DECILES
from crash_dashboard.validation import InvalidSpecError

logger = logging.getLogger(__name__)


class RocCurve(TypedDict):
    """ROC curve traced over every score threshold.

    Attributes:
        fpr: False positive rates, non-decreasing, from 0 to 1
        tpr: True positive rates, non-decreasing, from 0 to 1
        thresholds: Score thresholds, decreasing (first entry is +inf)
        auc: Area under the curve (0 to 1)
    """
    fpr: npt.NDArray[np.float64]
    tpr: npt.NDArray[np.float64]
    thresholds: npt.NDArray[np.float64]
    auc: float


def assign_deciles(scores: npt.ArrayLike, n_buckets: int = N_DECILES) -> npt.NDArray[np.int64]:
    """Assign each score to one of ``n_buckets`` equal-count buckets.

    Bucket 1 holds the lowest scores. Ties keep row order, so bucket sizes
    differ by at most one.
    """
    scores = np.asarray(scores, dtype=float)
    n = len(scores)
    if n == 0:
        return np.empty(0, dtype=np.int64)
    order = np.argsort(scores, kind="stable")
    ranks = np.empty(n, dtype=np.int64)
    ranks[order] = np.arange(n)
    return ranks * n_buckets // n + 1


def decile_table(
    scores: npt.ArrayLike,
    outcomes: npt.ArrayLike,
    n_buckets: int = N_DECILES,
) -> pd.DataFrame:
    """Mean outcome per score bucket.

    Args:
        scores: Model scores for the test partition
        outcomes: True 0/1 outcomes aligned with ``scores``
        n_buckets: Number of buckets (default: 10)

    Returns:
        DataFrame with exactly ``n_buckets`` rows and columns
        decile, mean_outcome, count, mean_score. Buckets that receive no rows
        (fewer rows than buckets) have count 0 and NaN means.
    """
    scores = np.asarray(scores, dtype=float)
    outcomes = np.asarray(outcomes, dtype=float)
    frame = pd.DataFrame({
        "decile": assign_deciles(scores, n_buckets),
        "outcome": outcomes,
        "score": scores,
    })
    grouped = frame.groupby("decile").agg(
        mean_outcome=("outcome", "mean"),
        count=("outcome", "size"),
        mean_score=("score", "mean"),
    )
    grouped = grouped.reindex(pd.RangeIndex(1, n_buckets + 1, name="decile"))
    grouped["count"] = grouped["count"].fillna(0).astype(int)
    return grouped.reset_index()


def roc_curve_points(y_true: npt.ArrayLike, scores: npt.ArrayLike) -> RocCurve:
    """Full ROC curve and AUC for scores against 0/1 outcomes.

    Raises:
        InvalidSpecError: If the outcomes contain a single class
    """
    y_true = np.asarray(y_true, dtype=int)
    classes = np.unique(y_true)
    if len(classes) < 2:
        raise InvalidSpecError(
            f"Test partition contains a single outcome class {classes.tolist()}; ROC curve is undefined"
        )
    fpr, tpr, thresholds = roc_curve(y_true, np.asarray(scores, dtype=float), drop_intermediate=False)
    return {
        "fpr": fpr,
        "tpr": tpr,
        "thresholds": thresholds,
        "auc": float(area_under_curve(fpr, tpr)),
    }


def feature_importance(
    model,
    X: Optional[pd.DataFrame] = None,
    y: Optional[pd.Series] = None,
    random_state: int = 0,
    n_repeats: int = 5,
) -> pd.DataFrame:
    """Per-feature coefficients or importances of a fitted model.

    Linear models report their coefficients and tree models their native
    importances, both on encoded feature names. Other estimators fall back to
    permutation importance (AUC drop) on the raw predictors, which needs
    ``X`` and ``y``.

    Returns:
        DataFrame with 'feature' and 'importance' columns, sorted by absolute
        importance (largest first)
    """
    clf = model.pipeline.named_steps["clf"]
    if hasattr(clf, "coef_") or hasattr(clf, "feature_importances_"):
        names = model.pipeline.named_steps["preprocess"].get_feature_names_out()
        values = np.ravel(clf.coef_) if hasattr(clf, "coef_") else np.asarray(clf.feature_importances_)
    else:
        if X is None or y is None:
            raise ValueError(
                f"{type(clf).__name__} has no native importances; pass X and y for permutation importance"
            )
        result = permutation_importance(
            model.pipeline,
            X[list(model.predictor_names)],
            y,
            scoring="roc_auc",
            n_repeats=n_repeats,
            random_state=random_state,
        )
        names = list(model.predictor_names)
        values = result.importances_mean

    importance = pd.DataFrame({"feature": list(names), "importance": values.astype(float)})
    order = importance["importance"].abs().sort_values(ascending=False).index
    return importance.loc[order].reset_index(drop=True)
