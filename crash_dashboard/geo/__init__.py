"""County-level fatality rate and choropleth modules."""

from .choropleth import (
    build_county_layer,
    build_fatality_map,
    class_colors,
    county_fatality_rates,
    popup_html,
    quantile_classes,
)

__all__ = [
    "county_fatality_rates",
    "quantile_classes",
    "class_colors",
    "popup_html",
    "build_county_layer",
    "build_fatality_map",
]
