"""Determinants of economic growth from World Bank WDI country-year data."""

__version__ = "1.0.0"
