"""Crash table loading and synthetic dataset modules."""

from .dataset import (
    create_county_table,
    create_crash_dataset,
    load_county_table,
    load_crash_data,
    load_geojson,
)

__all__ = [
    "create_county_table",
    "create_crash_dataset",
    "load_county_table",
    "load_crash_data",
    "load_geojson",
]
