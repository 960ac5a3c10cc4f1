"""Ads Monitor - year-over-year paid search dashboards."""

__version__ = "0.1.0"
