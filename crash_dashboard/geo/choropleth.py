"""County fatality rates and the choropleth map built from them."""

import copy
import logging
from typing import Any, Optional

import branca.colormap
import folium
import matplotlib
import numpy as np
import pandas as pd
from matplotlib.colors import to_hex

from crash_dashboard.config import GeoConfig
from crash_dashboard.constants import DISPLAY_DECIMALS, NA_COLOR, PER_POPULATION

logger = logging.getLogger(__name__)


def county_fatality_rates(
    crashes: pd.DataFrame,
    counties: pd.DataFrame,
    cfg: GeoConfig,
    fips_col: str = "fips",
    deaths_col: str = "deaths",
) -> pd.DataFrame:
    """Total deaths and deaths per ``cfg.per_population`` residents for each county.

    Counties without crashes, or without a positive population, get a missing rate.

    Args:
        crashes: Crash table with a county FIPS column and a death count column
        counties: County table with fips and population columns

    Returns:
        Copy of ``counties`` with added total and scaled columns
    """
    totals = crashes.groupby(fips_col)[deaths_col].sum().rename("total")
    layer = counties.merge(totals, left_on="fips", right_index=True, how="left")

    population = layer["population"].where(layer["population"] > 0)
    layer["scaled"] = layer["total"] / population * cfg.per_population
    logger.debug(f"County rates: {layer['scaled'].notna().sum()} of {len(layer)} counties have a rate")
    return layer


def quantile_classes(values: pd.Series, n_classes: int) -> pd.Series:
    """Assign values to ``n_classes`` equal-count classes (1 = lowest).

    Ties are broken by position; missing values stay missing. With fewer
    non-missing values than classes, each value gets its own class.
    """
    classes = pd.Series(pd.NA, index=values.index, dtype="Int64")
    present = values.dropna()
    if present.empty:
        return classes
    q = min(n_classes, len(present))
    ranks = present.rank(method="first")
    classes.loc[present.index] = pd.qcut(ranks, q, labels=False).astype(int) + 1
    return classes


def class_colors(n_classes: int, palette: str = "YlOrRd") -> list[str]:
    """Hex colors sampled evenly from a matplotlib colormap."""
    cmap = matplotlib.colormaps[palette]
    return [to_hex(cmap(x)) for x in np.linspace(0.0, 1.0, n_classes)]


def popup_html(row: pd.Series, per_population: int = PER_POPULATION) -> str:
    scaled = "NA" if pd.isna(row["scaled"]) else f"{row['scaled']:.{DISPLAY_DECIMALS}f}"
    total = "NA" if pd.isna(row["total"]) else f"{int(row['total'])}"
    return (
        f"<strong>County:</strong> {row['name']}"
        f"<br><strong>State:</strong> {row['state_name']}"
        f"<br><strong>County Population: </strong> {int(row['population'])}"
        f"<br><strong>Total Fatalities: </strong> {total}"
        f"<br><strong>Deaths per {per_population:,}:</strong> {scaled}"
    )


def build_county_layer(crashes: pd.DataFrame, counties: pd.DataFrame, cfg: GeoConfig) -> pd.DataFrame:
    """County rates with quantile class, fill color and popup text.

    Returns:
        DataFrame with fips, name, state_name, population, total, scaled,
        quantile, color and popup columns
    """
    layer = county_fatality_rates(crashes, counties, cfg)
    layer["quantile"] = quantile_classes(layer["scaled"], cfg.n_quantiles)
    colors = class_colors(cfg.n_quantiles, cfg.palette)
    layer["color"] = [NA_COLOR if pd.isna(q) else colors[int(q) - 1] for q in layer["quantile"]]
    layer["popup"] = layer.apply(popup_html, axis=1, per_population=cfg.per_population)
    return layer


def _feature_fips(feature: dict[str, Any]) -> Optional[str]:
    properties = feature.get("properties") or {}
    for key in ("fips", "GEOID", "geoid"):
        if key in properties:
            return str(properties[key]).zfill(5)
    if "id" in feature:
        return str(feature["id"]).zfill(5)
    return None


def build_fatality_map(layer: pd.DataFrame, geojson: dict[str, Any], cfg: GeoConfig) -> folium.Map:
    """Choropleth of county fatality rates with popups and a quantile legend.

    Args:
        layer: Output of ``build_county_layer``
        geojson: County polygons; each feature is matched on a fips/GEOID
            property or its id
        cfg: Geo configuration (centre, zoom, palette, opacity)

    Returns:
        folium Map
    """
    by_fips = layer.set_index("fips")
    data = copy.deepcopy(geojson)
    unmatched = 0
    for feature in data.get("features", []):
        fips = _feature_fips(feature)
        properties = feature.setdefault("properties", {})
        if fips in by_fips.index:
            properties["fill_color"] = by_fips.at[fips, "color"]
            properties["popup"] = by_fips.at[fips, "popup"]
        else:
            unmatched += 1
            properties["fill_color"] = NA_COLOR
            properties["popup"] = "No data"
    if unmatched:
        logger.warning(f"{unmatched} map features have no matching county in the layer")

    fatality_map = folium.Map(location=list(cfg.center), zoom_start=cfg.zoom, tiles="OpenStreetMap")
    folium.GeoJson(
        data,
        name=f"Fatalities per {cfg.per_population:,}",
        style_function=lambda feature: {
            "fillColor": feature["properties"]["fill_color"],
            "fillOpacity": cfg.fill_opacity,
            "color": "#444444",
            "weight": 0.5,
        },
        popup=folium.GeoJsonPopup(fields=["popup"], labels=False),
    ).add_to(fatality_map)

    scaled = layer["scaled"].dropna()
    if len(scaled) >= 2:
        colors = class_colors(cfg.n_quantiles, cfg.palette)
        breaks = np.quantile(scaled, np.linspace(0.0, 1.0, cfg.n_quantiles + 1))
        legend = branca.colormap.StepColormap(
            colors,
            index=list(breaks),
            vmin=float(breaks[0]),
            vmax=float(breaks[-1]),
            caption=f"Fatalities per {cfg.per_population:,} (Percentile)",
        )
        legend.add_to(fatality_map)

    return fatality_map
