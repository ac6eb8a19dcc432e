"""Aggregating weather proxy for the Open-Meteo APIs."""

__version__ = "1.0.0"
