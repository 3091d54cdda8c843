"""Tests for pipeline building and model evaluation."""

import logging

import numpy as np
import pandas as pd
import pytest
from imblearn.pipeline import Pipeline
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import LogisticRegression

from crash_dashboard.models import (
    FitError,
    FittedModel,
    build_model_registry,
    build_pipeline,
    describe_evaluation,
    evaluate,
    fit_model,
)
from crash_dashboard.models.pipeline import split_categorical_numeric
from crash_dashboard.validation import InvalidSpecError

FAMILIES = ["logistic_regression", "random_forest", "naive_bayes", "decision_tree", "gradient_boosting"]


class TestBuildPipeline:
    """Tests for build_pipeline function."""

    def test_returns_pipeline(self):
        """Test that function returns Pipeline object."""
        pipeline = build_pipeline(LogisticRegression(), ["roadtype"], ["night"])
        assert isinstance(pipeline, Pipeline)

    def test_step_order_without_smote(self):
        """Test that steps are in correct order without SMOTE."""
        pipeline = build_pipeline(LogisticRegression(), ["roadtype"], ["night"])
        assert [name for name, _ in pipeline.steps] == ["preprocess", "clf"]

    def test_step_order_with_smote(self):
        """Test that steps are in correct order with SMOTE."""
        pipeline = build_pipeline(LogisticRegression(), ["roadtype"], ["night"], use_smote=True)
        assert [name for name, _ in pipeline.steps] == ["preprocess", "smote", "clf"]

    def test_preprocess_transformers(self):
        """Test categorical and numeric columns get their own transformers."""
        pipeline = build_pipeline(LogisticRegression(), ["roadtype"], ["night", "hour"])
        preprocess = pipeline.named_steps["preprocess"]
        assert isinstance(preprocess, ColumnTransformer)
        names = [name for name, _, _ in preprocess.transformers]
        assert names == ["categorical", "numeric"]

    def test_boolean_columns_are_numeric(self):
        """Test bool columns go down the numeric branch."""
        df = pd.DataFrame({"drunk": [True, False], "roadtype": ["Local", "Rural"], "hour": [1, 2]})
        assert split_categorical_numeric(df, ["drunk", "roadtype", "hour"]) == (["roadtype"], ["drunk", "hour"])

    def test_numeric_only(self):
        """Test a purely numeric predictor set skips the encoder."""
        pipeline = build_pipeline(LogisticRegression(), [], ["night"])
        names = [name for name, _, _ in pipeline.named_steps["preprocess"].transformers]
        assert names == ["numeric"]


class TestFitModel:
    """Tests for fit_model function."""

    def test_returns_fitted_model(self, binary_df):
        """Test a fitted model is bound to its family."""
        model = fit_model(binary_df, "depvar", ["night", "speeding"], "logistic_regression", build_model_registry())
        assert isinstance(model, FittedModel)
        assert model.family.name == "logistic_regression"
        assert model.predictor_names == ("night", "speeding")

    def test_unknown_family(self, binary_df):
        """Test an unregistered family raises FitError naming it."""
        with pytest.raises(FitError, match="Unknown model family 'unknown'"):
            fit_model(binary_df, "depvar", ["night"], "unknown", build_model_registry())

    def test_single_class(self, binary_df):
        """Test a single-class training partition raises FitError."""
        train = binary_df.assign(depvar=0)
        with pytest.raises(FitError, match="single outcome class"):
            fit_model(train, "depvar", ["night"], "logistic_regression", build_model_registry())

    def test_fewer_rows_than_predictors(self):
        """Test too few training rows raises FitError."""
        train = pd.DataFrame({"a": [0, 1], "b": [1, 0], "c": [1, 1], "depvar": [0, 1]})
        with pytest.raises(FitError, match="2 training rows for 3 predictors"):
            fit_model(train, "depvar", ["a", "b", "c"], "logistic_regression", build_model_registry())

    def test_smote_with_single_minority_sample(self):
        """Test SMOTE cannot run with one minority sample."""
        train = pd.DataFrame({"a": range(20), "depvar": [1] + [0] * 19})
        with pytest.raises(FitError, match="SMOTE"):
            fit_model(train, "depvar", ["a"], "logistic_regression", build_model_registry(), use_smote=True)

    def test_model_params_passed(self, binary_df):
        """Test estimator overrides reach the classifier."""
        model = fit_model(
            binary_df, "depvar", ["night"], "random_forest", build_model_registry(),
            model_params={"n_estimators": 7},
        )
        assert model.pipeline.named_steps["clf"].n_estimators == 7

    def test_random_state_passed(self, binary_df):
        """Test the seed reaches seeded estimators."""
        model = fit_model(binary_df, "depvar", ["night"], "random_forest", build_model_registry(), random_state=11)
        assert model.pipeline.named_steps["clf"].random_state == 11


class TestEvaluate:
    """Tests for the evaluate function."""

    def test_scenario_logistic_regression(self, binary_df):
        """Test 1000 rows with 10% holdout gives 100 test rows and a consistent decile table."""
        result = evaluate(binary_df, "depvar", {"night", "speeding"}, 0.1, "logistic_regression", random_state=1)

        assert len(result["test"]) == 100
        assert len(result["train"]) == 900
        deciles = result["deciles"]
        assert len(deciles) == 10
        weighted = (deciles["mean_outcome"] * deciles["count"]).sum() / deciles["count"].sum()
        assert weighted == pytest.approx(result["test"]["depvar"].mean())

    def test_partition_sizes_sum(self, binary_df):
        """Test train and test partitions cover the dataset."""
        result = evaluate(binary_df, "depvar", ["night"], 0.25, "logistic_regression")
        assert len(result["train"]) + len(result["test"]) == len(binary_df)
        assert len(result["test"]) / len(binary_df) == pytest.approx(0.25, abs=1 / len(binary_df))

    def test_partitions_disjoint(self, binary_df):
        """Test no row appears in both partitions."""
        result = evaluate(binary_df, "depvar", ["night"], 0.3, "logistic_regression")
        assert not set(result["train"].index) & set(result["test"].index)

    def test_invalid_holdout(self, binary_df):
        """Test holdout_fraction = 1.5 raises InvalidSpecError."""
        with pytest.raises(InvalidSpecError):
            evaluate(binary_df, "depvar", ["night"], 1.5, "logistic_regression")

    def test_empty_predictors(self, binary_df):
        """Test an empty predictor set raises InvalidSpecError."""
        with pytest.raises(InvalidSpecError):
            evaluate(binary_df, "depvar", set(), 0.1, "logistic_regression")

    def test_unknown_family(self, binary_df):
        """Test model_family = 'unknown' raises FitError."""
        with pytest.raises(FitError):
            evaluate(binary_df, "depvar", ["night"], 0.1, "unknown")

    def test_single_class_test_partition(self, binary_df, monkeypatch):
        """Test a single-class test partition raises InvalidSpecError."""
        df = binary_df.copy()
        df.loc[df.index[-10:], "depvar"] = 0

        def last_rows_held_out(frame, **kwargs):
            return frame.iloc[:-10], frame.iloc[-10:]

        monkeypatch.setattr("crash_dashboard.models.pipeline.train_test_split", last_rows_held_out)
        with pytest.raises(InvalidSpecError, match="single outcome class"):
            evaluate(df, "depvar", ["night", "speeding"], 0.01, "logistic_regression")

    @pytest.mark.parametrize("family", ["logistic_regression", "random_forest"])
    def test_boolean_predictor(self, binary_df, family):
        """Test bool-dtype predictors are fitted and scored."""
        df = binary_df.assign(night=binary_df["night"].astype(bool))
        result = evaluate(df, "depvar", ["night", "speeding"], 0.2, family)
        assert not result["test"]["score"].isna().any()
        assert result["auc"] > 0.55

    def test_classification_report_only_at_debug(self, binary_df, monkeypatch, caplog):
        """Test the classification report is built only when debug logging is on."""
        calls = []

        def fake_report(*args, **kwargs):
            calls.append(args)
            return "report"

        monkeypatch.setattr("crash_dashboard.models.pipeline.classification_report", fake_report)
        with caplog.at_level(logging.INFO, logger="crash_dashboard.models.pipeline"):
            evaluate(binary_df, "depvar", ["night"], 0.2, "logistic_regression")
        assert calls == []

        with caplog.at_level(logging.DEBUG, logger="crash_dashboard.models.pipeline"):
            evaluate(binary_df, "depvar", ["night"], 0.2, "logistic_regression")
        assert len(calls) == 1
        assert "Classification report" in caplog.text

    @pytest.mark.parametrize("family", FAMILIES)
    def test_all_families(self, crash_df, family):
        """Test every built-in family evaluates on the crash table."""
        result = evaluate(crash_df, "depvar", ["night", "speeding", "drunk_dr", "roadtype"], 0.2, family)
        assert len(result["deciles"]) == 10
        assert 0 <= result["auc"] <= 1
        assert result["auc"] > 0.55
        assert "score" in result["test"].columns

    @pytest.mark.parametrize("family", ["random_forest", "naive_bayes", "decision_tree", "gradient_boosting"])
    def test_probability_scores_in_unit_interval(self, crash_df, family):
        """Test probability-scored families produce scores in [0, 1]."""
        result = evaluate(crash_df, "depvar", ["night", "speeding", "roadtype"], 0.2, family)
        scores = result["test"]["score"]
        assert (scores >= 0).all()
        assert (scores <= 1).all()

    def test_logistic_scores_are_log_odds(self, binary_df):
        """Test logistic regression scores are its decision function."""
        result = evaluate(binary_df, "depvar", ["night", "speeding"], 0.2, "logistic_regression")
        model = result["model"]
        expected = model.pipeline.decision_function(result["test"][["night", "speeding"]])
        np.testing.assert_array_almost_equal(result["test"]["score"], expected)

    def test_reproducibility(self, crash_df):
        """Test that same random_state produces same results."""
        args = (crash_df, "depvar", ["night", "speeding", "roadtype"], 0.2, "random_forest")
        result1 = evaluate(*args, random_state=5)
        result2 = evaluate(*args, random_state=5)

        assert result1["auc"] == result2["auc"]
        assert list(result1["test"].index) == list(result2["test"].index)
        np.testing.assert_array_equal(result1["test"]["score"], result2["test"]["score"])

    def test_different_seeds_change_split(self, binary_df):
        """Test that the seed controls the partition."""
        result1 = evaluate(binary_df, "depvar", ["night"], 0.2, "logistic_regression", random_state=1)
        result2 = evaluate(binary_df, "depvar", ["night"], 0.2, "logistic_regression", random_state=2)
        assert list(result1["test"].index) != list(result2["test"].index)

    def test_dataset_not_modified(self, crash_df):
        """Test the input dataset is left untouched."""
        before = crash_df.copy()
        evaluate(crash_df, "depvar", ["night", "roadtype"], 0.2, "naive_bayes")
        pd.testing.assert_frame_equal(crash_df, before)

    def test_string_outcome(self, binary_df):
        """Test a yes/no outcome column is binarized."""
        df = binary_df.assign(depvar=binary_df["depvar"].map({1: "yes", 0: "no"}))
        result = evaluate(df, "depvar", ["night", "speeding"], 0.2, "logistic_regression")
        assert set(result["test"]["depvar"].unique()).issubset({0, 1})

    def test_smote(self, crash_df):
        """Test evaluation with SMOTE oversampling."""
        result = evaluate(crash_df, "depvar", ["night", "speeding", "drunk_dr"], 0.2, "logistic_regression",
                          use_smote=True)
        assert "smote" in result["model"].pipeline.named_steps
        assert 0 <= result["auc"] <= 1

    def test_missing_predictor_values(self, crash_df):
        """Test missing predictor values are imputed."""
        df = crash_df.copy()
        df.loc[:50, "roadtype"] = np.nan
        df["hour"] = df["hour"].astype(float)
        df.loc[20:80, "hour"] = np.nan
        result = evaluate(df, "depvar", ["roadtype", "hour", "speeding"], 0.2, "logistic_regression")
        assert not result["test"]["score"].isna().any()


class TestDescribeEvaluation:
    """Tests for the text model summary."""

    def test_contains_family_and_auc(self, binary_df):
        """Test the summary names the family and reports AUC."""
        result = evaluate(binary_df, "depvar", ["night", "speeding"], 0.2, "logistic_regression")
        text = describe_evaluation(result)
        assert "logistic_regression" in text
        assert "LogisticRegression" in text
        assert f"{result['auc']:.4f}" in text
        assert "Train rows: 800" in text
