"""
Fatal-crash model evaluation.

This script builds the dashboard context (loading the configured crash table, or
generating a synthetic one), prints the summary table for the configured
predictors and evaluates the configured model family on a random holdout.

Usage:
    python main.py [config/dashboard_config.yaml] [model_family]
"""

import logging
import sys
import warnings

from crash_dashboard.analysis import summarize_variables
from crash_dashboard.config import Config
from crash_dashboard.context import build_context
from crash_dashboard.models import ModelSpec, describe_evaluation

warnings.filterwarnings("ignore", category=UserWarning, module="sklearn")

logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO,
    format="%(name)s | %(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def main():
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config/dashboard_config.yaml"
    logger.info(f"Loading config from {config_path}")
    config = Config.from_yaml(config_path)

    context = build_context(config)

    summary = summarize_variables(context.crashes, config.model.predictors, context.outcome_col)
    logger.info("\nSummary table:\n" + summary.to_string(index=False))

    spec = context.default_spec()
    if len(sys.argv) > 2:
        spec = ModelSpec(spec.predictor_names, spec.holdout_fraction, sys.argv[2])

    result = context.evaluate(spec)
    logger.info("\n" + describe_evaluation(result))
    logger.info("Evaluation complete")


if __name__ == "__main__":
    main()
