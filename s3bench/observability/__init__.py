"""Metrics exporters."""
