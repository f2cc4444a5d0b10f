"""
Common utilities for the S3 benchmark.
"""

from .key_registry import KeyRegistry
from .phase_runner import PhaseWorker, RunWindow, run_phase
from .result_aggregator import AtomicCounter, ResultAggregator

__all__ = ['AtomicCounter', 'KeyRegistry', 'PhaseWorker', 'ResultAggregator', 'RunWindow', 'run_phase']
