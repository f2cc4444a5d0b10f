"""Benchmark phases and their coordinator."""
