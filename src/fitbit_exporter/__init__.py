"""Prometheus exporter for Fitbit activity metrics."""

__version__ = "0.1.0"
