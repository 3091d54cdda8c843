"""
Registry of model families and their scoring-extraction rules.

Each family pairs an estimator class with the function that turns the fitted
model's output into a score for the ROC curve and the decile table. New
families are added by registering another ``ModelFamily``; nothing that
consumes scores needs to change.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import numpy as np
import pandas as pd
from lightgbm import LGBMClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.tree import DecisionTreeClassifier

from crash_dashboard.constants import POSITIVE_CLASS

ScoreFn = Callable[[Any, pd.DataFrame], np.ndarray]


def positive_class_probability(model: Any, X: pd.DataFrame) -> np.ndarray:
    """Probability of the positive class from ``predict_proba``."""
    proba = model.predict_proba(X)
    classes = list(model.classes_)
    return proba[:, classes.index(POSITIVE_CLASS)].astype(float)


def posterior_probability(model: Any, X: pd.DataFrame) -> np.ndarray:
    """Posterior probability of the positive class.

    Naive Bayes exposes its posterior through ``predict_proba``; the value is
    taken as is, without any calibration.
    """
    return positive_class_probability(model, X)


def direct_prediction(model: Any, X: pd.DataFrame) -> np.ndarray:
    """The model's own numeric prediction.

    Uses the decision function (log-odds for logistic regression) when the
    final estimator has one, otherwise ``predict``.
    """
    if hasattr(model, "decision_function"):
        values = model.decision_function(X)
    else:
        values = model.predict(X)
    return pd.to_numeric(pd.Series(np.ravel(values))).to_numpy(dtype=float)


@dataclass(frozen=True)
class ModelFamily:
    name: str
    estimator: type
    score: ScoreFn = direct_prediction
    default_params: Mapping[str, Any] = field(default_factory=dict)
    seeded: bool = True

    def build(self, params: Mapping[str, Any] | None = None, random_state: int = 0) -> Any:
        """Instantiate an unfitted estimator, defaults overridden by ``params``."""
        kwargs = {**self.default_params, **(params or {})}
        if self.seeded:
            kwargs["random_state"] = random_state
        return self.estimator(**kwargs)


def build_model_registry() -> dict[str, ModelFamily]:
    """Return a fresh registry with the built-in model families."""
    families = [
        ModelFamily("logistic_regression", LogisticRegression, direct_prediction, {"max_iter": 1000}),
        ModelFamily("random_forest", RandomForestClassifier, positive_class_probability, {"n_estimators": 200}),
        ModelFamily("naive_bayes", GaussianNB, posterior_probability, seeded=False),
        ModelFamily("decision_tree", DecisionTreeClassifier, positive_class_probability, {"max_depth": 5}),
        ModelFamily("gradient_boosting", LGBMClassifier, positive_class_probability, {"verbose": -1}),
    ]
    return {family.name: family for family in families}


def register_family(registry: dict[str, ModelFamily], family: ModelFamily) -> dict[str, ModelFamily]:
    if family.name in registry:
        raise ValueError(f"Model family '{family.name}' is already registered")
    registry[family.name] = family
    return registry
