"""Grafana Mimir ruler and alertmanager configuration as declarative resources."""

__version__ = "0.1.0"
