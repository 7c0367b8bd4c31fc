"""
Lanthanide Selectivity Toolkit

A Python package for analyzing lanthanide-binding selectivity of protein
variants (mutants) from replicate ICP measurements.

Main Components:
    - Lanthanide reference tables and unit conversion
    - Replicate groups with outlier detection and quality assessment
    - Regression against water exchange rates (k_ex)
    - Two-sample hypothesis tests with effect sizes
    - Selectivity metrics (entropy, light/heavy discrimination, k_ex strength)
    - Principal Component Analysis of simulation features
    - Mutant ranking and pipeline orchestration
"""

__version__ = '0.1.0'

# Core classes for easy import
from .data.replicates import ReplicateGroup
from .analysis.ranking import MutantRanker, MutantAnalysis
# Pipeline classes are defined in pipeline/__init__.py, not separate modules
from .pipeline import AnalysisPipeline, AnalysisConfig, load_config

__all__ = [
    'ReplicateGroup',
    'MutantRanker',
    'MutantAnalysis',
    'AnalysisPipeline',
    'AnalysisConfig',
    'load_config',
]
