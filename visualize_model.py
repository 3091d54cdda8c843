"""
Render the dashboard figures to files.

Evaluates the configured model and writes the model diagnostics dashboard,
manufacturer trend charts, variable analysis charts for each configured
predictor and, when county polygons are configured, the choropleth map.

Usage:
    python visualize_model.py [config/dashboard_config.yaml] [output_dir]
"""

import logging
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from crash_dashboard.config import Config  # noqa: E402
from crash_dashboard.context import build_context  # noqa: E402
from crash_dashboard.geo import build_fatality_map  # noqa: E402
from crash_dashboard.models import feature_importance  # noqa: E402
from crash_dashboard.visualization import (  # noqa: E402
    plot_category_counts,
    plot_category_rates,
    plot_maker_trends,
    plot_model_diagnostics,
    plot_mosaic,
)

logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO,
    format="%(name)s | %(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def main():
    """Evaluate the configured model and save every dashboard figure."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config/dashboard_config.yaml"
    output_dir = Path(sys.argv[2] if len(sys.argv) > 2 else "figures")
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("Fatal Crash Dashboard - Figures")
    logger.info("=" * 60)

    config = Config.from_yaml(config_path)
    context = build_context(config)

    result = context.evaluate()
    importance = feature_importance(
        result["model"],
        result["test"],
        result["test"][context.outcome_col],
        random_state=config.random_state,
    )
    plot_model_diagnostics(
        result,
        importance,
        top_n_features=config.visualization.top_n_features,
        save_path=str(output_dir / "model_diagnostics.png"),
    )
    plt.close("all")

    if context.maker_trends is not None:
        fig, axes = plt.subplots(1, 2, figsize=(18, 6))
        plot_maker_trends(context.maker_trends, ax=axes[0])
        plot_maker_trends(context.maker_trends, normalized=True, ax=axes[1])
        fig.tight_layout()
        fig.savefig(output_dir / "maker_trends.png", dpi=150)
        plt.close(fig)

    for variable in config.model.predictors:
        fig, axes = plt.subplots(1, 3, figsize=(22, 6))
        plot_category_rates(context.crashes, variable, context.outcome_col, ax=axes[0])
        plot_category_counts(context.crashes, variable, context.outcome_col, ax=axes[1])
        plot_mosaic(context.crashes, variable, config.visualization, context.outcome_col, ax=axes[2])
        fig.tight_layout()
        fig.savefig(output_dir / f"variable_{variable}.png", dpi=150)
        plt.close(fig)

    if context.county_layer is not None and context.geojson is not None:
        fatality_map = build_fatality_map(context.county_layer, context.geojson, config.geo)
        fatality_map.save(str(output_dir / "fatality_map.html"))

    logger.info(f"Figures written to {output_dir}")


if __name__ == "__main__":
    main()
