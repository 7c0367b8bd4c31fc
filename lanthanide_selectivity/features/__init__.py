"""
Features Layer

Aggregation of per-run simulation summaries to per-mutant feature vectors.

Module structure:
    aggregator.py   - Run → Mutant level aggregation and feature matrix
"""

from .aggregator import (
    SimulationFeatureAggregator,
    FEATURE_KEYS,
    FEATURE_NAMES,
    get_feature_vector,
)

__all__ = [
    'SimulationFeatureAggregator',
    'FEATURE_KEYS',
    'FEATURE_NAMES',
    'get_feature_vector',
]
