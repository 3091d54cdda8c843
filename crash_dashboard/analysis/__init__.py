"""Descriptive analysis: summary tables, manufacturer trends, contingency tables."""

from .contingency import (
    abbreviate_label,
    abbreviation_length,
    association_test,
    contingency_table,
    pearson_residuals,
)
from .summaries import category_outcome_rates, summarize_variable, summarize_variables
from .trends import maker_fatality_trends

__all__ = [
    "category_outcome_rates",
    "summarize_variable",
    "summarize_variables",
    "maker_fatality_trends",
    "contingency_table",
    "pearson_residuals",
    "association_test",
    "abbreviation_length",
    "abbreviate_label",
]
