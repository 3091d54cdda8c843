"""
Visualization module for the crash analytics dashboard.

This module provides the figures behind the dashboard views, including:
- ROC curves and decile accuracy plots for the evaluated model
- Coefficient / feature importance charts
- Manufacturer fatality trends
- Per-category outcome rates, counts and mosaic plots
"""

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from statsmodels.graphics.mosaicplot import mosaic

from crash_dashboard.analysis import (
    abbreviate_label,
    abbreviation_length,
    category_outcome_rates,
    contingency_table,
    pearson_residuals,
)
from crash_dashboard.config import VisualizationConfig
from crash_dashboard.constants import DEFAULT_OUTCOME_COL
from crash_dashboard.models import EvaluationResult, RocCurve
from crash_dashboard.validation import coerce_outcome


def plot_roc_curve(
    roc: RocCurve,
    ax: Optional[plt.Axes] = None,
    title: str = "ROC Curve",
) -> plt.Axes:
    """Plot ROC (Receiver Operating Characteristic) curve.

    Args:
        roc: ROC curve from the evaluation pipeline
        ax: Matplotlib axes object (optional, creates new if None)
        title: Plot title

    Returns:
        Matplotlib axes object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    ax.plot(roc["fpr"], roc["tpr"], label=f"Model (AUC = {roc['auc']:.3f})", linewidth=2.5, color="steelblue")
    ax.plot([0, 1], [0, 1], "--", c="gray", linewidth=1, label="Random Classifier", alpha=0.7)

    ax.set_xlabel("False Positive Rate", fontsize=12)
    ax.set_ylabel("True Positive Rate", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(loc="lower right", fontsize=11)
    ax.grid(alpha=0.3)
    ax.set_xlim([-0.02, 1.02])
    ax.set_ylim([-0.02, 1.02])

    return ax


def plot_decile_accuracy(
    deciles: pd.DataFrame,
    ax: Optional[plt.Axes] = None,
    title: str = "Observed Fatality Rate by Score Decile",
) -> plt.Axes:
    """Plot mean observed outcome per score decile.

    A well-ranked model shows rates rising from decile 1 (lowest scores) to 10.

    Args:
        deciles: Decile table with decile, mean_outcome and count columns
        ax: Matplotlib axes object (optional, creates new if None)
        title: Plot title

    Returns:
        Matplotlib axes object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    ax.bar(deciles["decile"], deciles["mean_outcome"], color="darkorange", edgecolor="black", linewidth=0.5)
    ax.plot(deciles["decile"], deciles["mean_outcome"], marker="o", color="black", linewidth=1.5)

    for _, row in deciles.iterrows():
        if not pd.isna(row["mean_outcome"]):
            ax.annotate(
                f'n={int(row["count"])}',
                (row["decile"], row["mean_outcome"]),
                textcoords="offset points",
                xytext=(0, 8),
                ha="center",
                fontsize=8,
                alpha=0.7,
            )

    ax.set_xticks(deciles["decile"])
    ax.set_xlabel("Score Decile (1 = lowest)", fontsize=12)
    ax.set_ylabel("Observed Fatality Rate", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.grid(axis="y", alpha=0.3)
    ax.set_ylim([0, 1.05])

    return ax


def plot_feature_importance(
    feature_importance: pd.DataFrame,
    top_n: int = 15,
    ax: Optional[plt.Axes] = None,
    title: str = "Model Coefficients",
) -> plt.Axes:
    """Plot horizontal bar chart of coefficients or importances.

    Args:
        feature_importance: DataFrame with 'feature' and 'importance' columns
        top_n: Number of top features to display
        ax: Matplotlib axes object (optional, creates new if None)
        title: Plot title

    Returns:
        Matplotlib axes object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    top_features = feature_importance.head(top_n).copy()
    colors = np.where(top_features["importance"] >= 0, "steelblue", "indianred")

    ax.barh(top_features["feature"], top_features["importance"], color=colors, edgecolor="black", linewidth=0.5)
    ax.axvline(0, color="black", linewidth=0.8)

    ax.set_xlabel("Value", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.invert_yaxis()  # Largest magnitude at top
    ax.grid(axis="x", alpha=0.3)

    for i, imp in enumerate(top_features["importance"]):
        ax.text(imp, i, f" {imp:.3f}", va="center", fontsize=9)

    return ax


def plot_maker_trends(
    trends: pd.DataFrame,
    normalized: bool = False,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot yearly deaths per manufacturer, raw or normalized by row share.

    Args:
        trends: Output of ``maker_fatality_trends``
        normalized: Plot norm_fatal instead of sumfatal
        ax: Matplotlib axes object (optional, creates new if None)

    Returns:
        Matplotlib axes object
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    value_col = "norm_fatal" if normalized else "sumfatal"
    for maker, group in trends.groupby("maker"):
        ax.plot(group["year"], group[value_col], linewidth=2, label=maker)

    first, last = (trends["year"].min(), trends["year"].max()) if len(trends) else ("", "")
    suffix = " (Normalized)" if normalized else ""
    ax.set_title(f"Automotive Deaths by Manufacturer, {first}-{last}{suffix}", fontsize=14, fontweight="bold")
    ax.set_xlabel("Year", fontsize=12)
    ax.set_ylabel("Number of Deaths", fontsize=12)
    if len(trends):
        ax.legend(loc="best", fontsize=9)
    ax.grid(alpha=0.3)

    return ax


def plot_category_rates(
    df: pd.DataFrame,
    variable: str,
    outcome_col: str = DEFAULT_OUTCOME_COL,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Bar chart of the outcome rate within each category of ``variable``."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 5))

    rates = category_outcome_rates(df, variable, outcome_col)
    ax.bar(rates["value"].astype(str), rates["avg"], color="steelblue")
    ax.set_xlabel("Variable Categories", fontsize=10)
    ax.set_ylabel("Pct Fatalities in Category", fontsize=10)
    ax.set_title(f"Likelihood of Fatality Given: {variable}", fontsize=12, fontweight="bold")
    ax.tick_params(axis="x", labelrotation=90, labelsize=8)

    return ax


def plot_category_counts(
    df: pd.DataFrame,
    variable: str,
    outcome_col: str = DEFAULT_OUTCOME_COL,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Bar chart of the number of observations in each category of ``variable``."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 5))

    rates = category_outcome_rates(df, variable, outcome_col)
    ax.bar(rates["value"].astype(str), rates["n"], color="indianred")
    ax.set_xlabel("Category", fontsize=10)
    ax.set_ylabel("Count", fontsize=10)
    ax.set_title(f"No. of Observations for: {variable}", fontsize=12, fontweight="bold")
    ax.tick_params(axis="x", labelrotation=90, labelsize=8)

    return ax


def plot_mosaic(
    df: pd.DataFrame,
    variable: str,
    cfg: VisualizationConfig,
    outcome_col: str = DEFAULT_OUTCOME_COL,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Mosaic plot of outcome against ``variable``, shaded by Pearson residuals.

    Tiles for the positive outcome are red and the rest steel blue; opacity
    grows with the magnitude of the residual. Category labels are abbreviated
    to the length configured for the variable.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 6))

    outcome = coerce_outcome(df[outcome_col])
    data = pd.DataFrame({variable: df[variable].astype(str), outcome_col: outcome.astype(str)})

    residuals = pearson_residuals(contingency_table(df, variable, outcome_col))
    residual_by_key = {
        (str(category), str(level)): residuals.at[category, level]
        for category in residuals.index
        for level in residuals.columns
    }
    max_residual = max((abs(r) for r in residual_by_key.values()), default=0.0) or 1.0
    length = abbreviation_length(variable, cfg)

    def properties(key):
        residual = residual_by_key.get(tuple(key), 0.0)
        color = "red" if key[1] == "1" else "steelblue"
        return {"color": color, "alpha": 0.3 + 0.7 * abs(residual) / max_residual}

    def labelizer(key):
        return abbreviate_label(key[0], length)

    mosaic(data, index=[variable, outcome_col], ax=ax, properties=properties, labelizer=labelizer, gap=0.01)
    ax.set_title(f"{outcome_col} ~ {variable}", fontsize=12, fontweight="bold")

    return ax


def plot_model_diagnostics(
    result: EvaluationResult,
    feature_importance: pd.DataFrame,
    top_n_features: int = 15,
    figsize: tuple[int, int] = (16, 12),
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Create a 2x2 model dashboard: ROC, deciles, coefficients, score histogram.

    Args:
        result: Output of the evaluation pipeline
        feature_importance: DataFrame with 'feature' and 'importance' columns
        top_n_features: Number of top features to show
        figsize: Figure size (width, height)
        save_path: Optional path to save figure (e.g., 'diagnostics.png')

    Returns:
        Matplotlib figure object
    """
    fig, axes = plt.subplots(2, 2, figsize=figsize)
    family = result["model"].family.name
    fig.suptitle(f"Model Performance Dashboard - {family}", fontsize=18, fontweight="bold", y=0.98)

    plot_roc_curve(result["roc"], ax=axes[0, 0])
    plot_decile_accuracy(result["deciles"], ax=axes[0, 1])
    plot_feature_importance(feature_importance, top_n=top_n_features, ax=axes[1, 0])

    test = result["test"]
    outcome_col = result["model"].outcome_column
    for level, color in ((0, "steelblue"), (1, "red")):
        axes[1, 1].hist(test.loc[test[outcome_col] == level, "score"], bins=30, alpha=0.6, color=color,
                        label=f"{outcome_col} = {level}")
    axes[1, 1].set_xlabel("Score", fontsize=12)
    axes[1, 1].set_ylabel("Count", fontsize=12)
    axes[1, 1].set_title("Score Distribution by Outcome", fontsize=14, fontweight="bold")
    axes[1, 1].legend(loc="best", fontsize=11)

    plt.tight_layout(rect=[0, 0, 1, 0.96])

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig
