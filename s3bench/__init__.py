"""
Throughput benchmark for S3-compatible object stores.
"""

__version__ = "2.0.0"
