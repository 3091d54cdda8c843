"""Model evaluation pipeline: partition, fit, score, calibrate and trace ROC."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, TypedDict

import numpy as np
import numpy.typing as npt
import pandas as pd
from imblearn.over_sampling import SMOTE
from imblearn.pipeline import Pipeline
from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.metrics import classification_report
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import FunctionTransformer, OneHotEncoder, StandardScaler

from crash_dashboard.constants import MIN_TRAIN_CLASSES, SCORE_COL, SMOTE_K_NEIGHBORS
from crash_dashboard.models.metrics import RocCurve, decile_table, roc_curve_points
from crash_dashboard.models.registry import ModelFamily, build_model_registry
from crash_dashboard.validation import (
    InvalidSpecError,
    coerce_outcome,
    validate_model_spec,
    validate_train_test_split,
)

logger = logging.getLogger(__name__)


class FitError(RuntimeError):
    """Raised when a model cannot be fitted for the requested family or data."""
    pass


@dataclass(frozen=True)
class ModelSpec:
    """User selection driving one evaluation."""
    predictor_names: tuple[str, ...]
    holdout_fraction: float
    model_family: str


@dataclass(frozen=True)
class FittedModel:
    """A fitted pipeline bound to the model family that produced it."""
    family: ModelFamily
    pipeline: Pipeline
    predictor_names: tuple[str, ...]
    outcome_column: str

    def score(self, frame: pd.DataFrame) -> npt.NDArray[np.float64]:
        """Score rows with the family's extraction rule."""
        return self.family.score(self.pipeline, frame[list(self.predictor_names)])


class EvaluationResult(TypedDict):
    """Type definition for model evaluation results.

    Attributes:
        model: Fitted model
        train: Training partition (predictors and outcome)
        test: Test partition with an added 'score' column
        deciles: Ten-row calibration table (decile, mean_outcome, count, mean_score)
        roc: ROC curve over the test partition
        auc: ROC AUC score (0 to 1)
    """
    model: FittedModel
    train: pd.DataFrame
    test: pd.DataFrame
    deciles: pd.DataFrame
    roc: RocCurve
    auc: float


def split_categorical_numeric(df: pd.DataFrame, columns: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split columns into categorical and numeric (including boolean) lists."""
    categorical, numeric = [], []
    for col in columns:
        if not (pd.api.types.is_bool_dtype(df[col]) or pd.api.types.is_numeric_dtype(df[col])):
            categorical.append(col)
        else:
            numeric.append(col)
    return categorical, numeric


def _as_float(X: Any) -> npt.NDArray[np.float64]:
    if isinstance(X, pd.DataFrame):
        return X.to_numpy(dtype=float, na_value=np.nan)
    return np.asarray(X, dtype=float)


def build_pipeline(
    estimator: Any,
    categorical_cols: list[str],
    numeric_cols: list[str],
    use_smote: bool = False,
    smote_k_neighbors: int = SMOTE_K_NEIGHBORS,
    random_state: int = 0,
) -> Pipeline:
    """Build pipeline with preprocessing and modeling steps.

    Pipeline steps:
    1. ColumnTransformer - categorical: most-frequent imputation and one-hot
       encoding (unknown categories ignored); numeric and boolean:
       cast to float, median imputation and standardization
    2. SMOTE (optional) - Oversample minority class
    3. Classifier

    Args:
        estimator: Unfitted classifier
        categorical_cols: Columns to one-hot encode
        numeric_cols: Columns to impute and scale
        use_smote: Whether to include SMOTE oversampling step
        smote_k_neighbors: Number of nearest neighbors for SMOTE (default: 5)
        random_state: Random state for SMOTE reproducibility

    Returns:
        Configured imbalanced-learn Pipeline object
    """
    transformers = []
    if categorical_cols:
        transformers.append((
            "categorical",
            Pipeline([
                ("imputer", SimpleImputer(strategy="most_frequent")),
                ("onehot", OneHotEncoder(handle_unknown="ignore", sparse_output=False)),
            ]),
            categorical_cols,
        ))
    if numeric_cols:
        transformers.append((
            "numeric",
            Pipeline([
                ("to_float", FunctionTransformer(_as_float, feature_names_out="one-to-one")),
                ("imputer", SimpleImputer(strategy="median")),
                ("scaler", StandardScaler()),
            ]),
            numeric_cols,
        ))

    steps = [("preprocess", ColumnTransformer(transformers, sparse_threshold=0.0))]

    if use_smote:
        steps.append((
            "smote",
            SMOTE(random_state=random_state, k_neighbors=smote_k_neighbors)
        ))
        logger.debug(f"SMOTE configured with k_neighbors={smote_k_neighbors}")

    steps.append(("clf", estimator))

    return Pipeline(steps)


def fit_model(
    train: pd.DataFrame,
    outcome_column: str,
    predictor_names: list[str],
    model_family: str,
    registry: Mapping[str, ModelFamily],
    random_state: int = 0,
    use_smote: bool = False,
    model_params: Optional[Mapping[str, Any]] = None,
) -> FittedModel:
    """Fit the requested model family on the training partition.

    Raises:
        FitError: If the family is not registered, the training partition holds a
            single outcome class or fewer rows than predictors, or the estimator
            fails to fit
    """
    family = registry.get(model_family)
    if family is None:
        raise FitError(f"Unknown model family '{model_family}'. Known families: {sorted(registry)}")

    y_train = train[outcome_column]
    class_counts = y_train.value_counts()
    if len(class_counts) < MIN_TRAIN_CLASSES:
        raise FitError(
            f"Cannot fit {model_family}: training partition has a single outcome class "
            f"{class_counts.index.tolist()}"
        )
    if len(train) < len(predictor_names):
        raise FitError(
            f"Cannot fit {model_family}: {len(train)} training rows for {len(predictor_names)} predictors"
        )

    smote_k_neighbors = SMOTE_K_NEIGHBORS
    if use_smote:
        minority = int(class_counts.min())
        if minority < 2:
            raise FitError(f"Cannot fit {model_family} with SMOTE: minority class has {minority} sample")
        smote_k_neighbors = min(SMOTE_K_NEIGHBORS, minority - 1)

    categorical_cols, numeric_cols = split_categorical_numeric(train, predictor_names)
    pipeline = build_pipeline(
        family.build(model_params, random_state),
        categorical_cols,
        numeric_cols,
        use_smote=use_smote,
        smote_k_neighbors=smote_k_neighbors,
        random_state=random_state,
    )

    try:
        pipeline.fit(train[predictor_names], y_train)
    except (ValueError, TypeError) as e:
        raise FitError(f"Fitting {model_family} failed: {e}") from e

    logger.debug(
        f"Fitted {model_family} on {len(train):,} rows "
        f"({len(categorical_cols)} categorical, {len(numeric_cols)} numeric predictors)"
    )
    return FittedModel(
        family=family,
        pipeline=pipeline,
        predictor_names=tuple(predictor_names),
        outcome_column=outcome_column,
    )


def evaluate(
    dataset: pd.DataFrame,
    outcome_column: str,
    predictor_names: Iterable[str],
    holdout_fraction: float,
    model_family: str,
    random_state: int = 0,
    registry: Optional[Mapping[str, ModelFamily]] = None,
    use_smote: bool = False,
    model_params: Optional[Mapping[str, Any]] = None,
) -> EvaluationResult:
    """Fit a model on a random partition of ``dataset`` and score the holdout.

    Steps:
    1. Validate the model spec and split rows into train/test, with
       ``holdout_fraction`` of rows (rounded up) held out
    2. Fit the requested model family on the training rows
    3. Score the test rows with the family's extraction rule
    4. Build the decile calibration table and the ROC curve

    The input dataset is not modified.

    Args:
        dataset: Crash table
        outcome_column: Binary (or binarizable) outcome column
        predictor_names: Predictor columns
        holdout_fraction: Test-set proportion, strictly between 0 and 1
        model_family: Registered model family name
        random_state: Seed for the split and seeded estimators
        registry: Model families (default: a fresh built-in registry)
        use_smote: Oversample the minority class before fitting
        model_params: Estimator keyword overrides

    Returns:
        EvaluationResults dictionary

    Raises:
        InvalidSpecError: Malformed spec or a single-class test partition
        FitError: Unknown family or degenerate training data
    """
    predictors = validate_model_spec(dataset, outcome_column, predictor_names, holdout_fraction)
    if registry is None:
        registry = build_model_registry()

    frame = dataset[predictors].copy()
    frame[outcome_column] = coerce_outcome(dataset[outcome_column])

    try:
        train, test = train_test_split(
            frame, test_size=holdout_fraction, random_state=random_state, shuffle=True
        )
    except ValueError as e:
        raise InvalidSpecError(f"Cannot split {len(frame)} rows with holdout_fraction={holdout_fraction}: {e}") from e
    validate_train_test_split(train, test, outcome_column)

    model = fit_model(
        train,
        outcome_column,
        predictors,
        model_family,
        registry,
        random_state=random_state,
        use_smote=use_smote,
        model_params=model_params,
    )

    test = test.copy()
    test[SCORE_COL] = model.score(test)

    deciles = decile_table(test[SCORE_COL], test[outcome_column])
    roc = roc_curve_points(test[outcome_column], test[SCORE_COL])

    logger.info(
        f"{model_family}: {len(train):,} train / {len(test):,} test rows, "
        f"ROC AUC: {roc['auc']:.4f}, Gini: {2 * roc['auc'] - 1:.4f}"
    )
    if logger.isEnabledFor(logging.DEBUG):
        y_pred = model.pipeline.predict(test[predictors])
        logger.debug(
            "\nClassification report (default threshold):\n"
            + classification_report(test[outcome_column], y_pred, zero_division=0)
        )

    return {
        "model": model,
        "train": train,
        "test": test,
        "deciles": deciles,
        "roc": roc,
        "auc": roc["auc"],
    }


def describe_evaluation(result: EvaluationResult) -> str:
    """Plain-text model summary for the dashboard's summary panel."""
    model = result["model"]
    test = result["test"]
    outcome_rate = test[model.outcome_column].mean()
    lines = [
        f"Model family: {model.family.name} ({type(model.pipeline.named_steps['clf']).__name__})",
        f"Predictors: {', '.join(model.predictor_names)}",
        f"Train rows: {len(result['train']):,}  Test rows: {len(test):,}",
        f"Test outcome rate: {outcome_rate:.4f}",
        f"ROC AUC: {result['auc']:.4f}",
        "Decile mean outcome (low to high score): "
        + ", ".join("nan" if pd.isna(v) else f"{v:.3f}" for v in result["deciles"]["mean_outcome"]),
    ]
    return "\n".join(lines)
