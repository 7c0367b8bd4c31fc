"""
Feature Aggregation

Aggregate per-run simulation summaries to per-mutant features.

Each run is a flat dictionary of numeric summaries (coordination numbers,
geometry percentages, binding-site descriptors, water exchange and
coordination stability) plus the run's dominant geometry. Runs of the same
mutant are combined into one feature dictionary, and mutants are stacked into
a feature matrix for PCA.
"""

from typing import List, Dict, Optional, Mapping, Any
from collections import Counter
import warnings

import numpy as np
import pandas as pd


# Aggregated feature key -> run keys summed per run before averaging
RUN_FIELDS: Dict[str, List[str]] = {
    'total_coord_mean': ['total_coordination'],
    'water_coord_mean': ['water_coordination'],
    'protein_coord_mean': ['protein_coordination'],
    'geometry_tricapped_pct': ['tricapped_trigonal_prismatic'],
    'geometry_octahedral_pct': ['octahedral'],
    'geometry_high_coord_pct': ['high_coordination_10', 'high_coordination_11'],
    'binding_volume_mean': ['binding_site_volume'],
    'radius_gyration_mean': ['radius_of_gyration'],
    'asymmetry_mean': ['asymmetry'],
    'accessibility_mean': ['accessibility_score'],
    'water_exchange_rate': ['exchange_rate'],
    'residence_time_mean': ['mean_residence_time'],
    'total_change_freq': ['total_change_freq'],
    'water_change_freq': ['water_change_freq'],
    'protein_change_freq': ['protein_change_freq'],
}

# Features whose spread across runs is also reported (population std)
SPREAD_FIELDS: Dict[str, str] = {
    'total_coord_std': 'total_coord_mean',
    'binding_volume_std': 'binding_volume_mean',
}

# Feature vector order used for PCA
FEATURE_KEYS: List[str] = list(RUN_FIELDS.keys())

FEATURE_NAMES: List[str] = [
    'Total Coordination',
    'Water Coordination',
    'Protein Coordination',
    'Tricapped Trigonal %',
    'Octahedral %',
    'High Coordination %',
    'Binding Volume',
    'Radius of Gyration',
    'Asymmetry',
    'Accessibility',
    'Water Exchange Rate',
    'Residence Time',
    'Total Change Freq',
    'Water Change Freq',
    'Protein Change Freq',
]


def get_feature_vector(features: Mapping[str, Any]) -> np.ndarray:
    """
    Numeric feature vector in FEATURE_KEYS order.

    Args:
        features: Aggregated feature dictionary

    Returns:
        Array of shape (len(FEATURE_KEYS),); missing features are 0
    """
    return np.array([float(features.get(key, 0.0)) for key in FEATURE_KEYS])


class SimulationFeatureAggregator:
    """
    Aggregate run-level simulation summaries to mutant-level features.

    Usage:
        aggregator = SimulationFeatureAggregator(config)
        features = aggregator.aggregate(runs, mutant='Rub15')
        matrix = aggregator.build_feature_matrix({'Rub15': features, ...})
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize feature aggregator.

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}

        agg_config = self.config.get('features', {}).get('aggregation', {})

        # Minimum number of runs required for aggregation
        self.min_runs = agg_config.get('min_runs', 1)

    def _run_values(self, runs: List[Dict[str, Any]], keys: List[str]) -> np.ndarray:
        values = []
        for run in runs:
            present = [run[k] for k in keys if k in run and run[k] is not None]
            values.append(float(np.sum(present)) if present else np.nan)
        return np.array(values, dtype=float)

    def aggregate(
        self,
        runs: List[Dict[str, Any]],
        mutant: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Aggregate runs of one mutant.

        Args:
            runs: List of run dictionaries
            mutant: Optional mutant name to include in output

        Returns:
            Dictionary with the mean of each feature over runs (NaN omitted,
            0 when no run reports it), population std for total coordination
            and binding volume, the most common dominant geometry and the
            run count

        Raises:
            ValueError: If fewer than min_runs runs are given
        """
        if len(runs) < self.min_runs:
            raise ValueError(
                f"Insufficient runs for aggregation. "
                f"Got {len(runs)}, need at least {self.min_runs}"
            )

        aggregated: Dict[str, Any] = {}

        if mutant is not None:
            aggregated['mutant'] = mutant

        aggregated['n_runs'] = len(runs)

        per_run: Dict[str, np.ndarray] = {}
        for feature, keys in RUN_FIELDS.items():
            values = self._run_values(runs, keys)
            per_run[feature] = values

            valid = values[~np.isnan(values)]
            aggregated[feature] = float(np.mean(valid)) if len(valid) > 0 else 0.0

        for spread_feature, source in SPREAD_FIELDS.items():
            valid = per_run[source][~np.isnan(per_run[source])]
            aggregated[spread_feature] = float(np.std(valid)) if len(valid) > 0 else 0.0

        geometries = Counter(run.get('dominant_geometry') or 'unknown' for run in runs)
        aggregated['dominant_geometry'] = geometries.most_common(1)[0][0] if geometries else 'unknown'

        return aggregated

    def aggregate_mutants(
        self,
        runs_by_mutant: Mapping[str, List[Dict[str, Any]]]
    ) -> Dict[str, Dict[str, Any]]:
        """
        Aggregate every mutant.

        Mutants with too few runs are skipped with a warning.

        Args:
            runs_by_mutant: Mutant name -> run dictionaries

        Returns:
            Mutant name -> aggregated features
        """
        aggregated = {}

        for mutant, runs in runs_by_mutant.items():
            if len(runs) < self.min_runs:
                warnings.warn(
                    f"Skipping {mutant}: {len(runs)} runs, need at least {self.min_runs}"
                )
                continue
            aggregated[mutant] = self.aggregate(runs, mutant=mutant)

        return aggregated

    def build_feature_matrix(self, mutant_features: Mapping[str, Mapping[str, Any]]) -> pd.DataFrame:
        """
        Stack aggregated features into a matrix.

        Args:
            mutant_features: Mutant name -> aggregated features

        Returns:
            DataFrame with mutants as rows and FEATURE_NAMES as columns
        """
        rows = [get_feature_vector(features) for features in mutant_features.values()]

        if not rows:
            return pd.DataFrame(columns=FEATURE_NAMES, dtype=float)

        return pd.DataFrame(
            np.vstack(rows),
            index=list(mutant_features.keys()),
            columns=FEATURE_NAMES
        )
