"""
Replicate Group Data Structure

This module defines the core data structure for one mutant's replicate
measurements (buffer-normalized µM per element) with its metadata.
"""

from typing import Optional, Dict, Any, List, Tuple
import re
import copy

import numpy as np
import pandas as pd

from .chemistry import (
    calculate_selectivity,
    mg_l_to_micromolar,
    replicate_statistics,
)


def parse_mutant_name(name: str) -> Tuple[str, str]:
    """
    Split a sample group name into base mutant name and condition.

    'Rub15-H2O' -> ('Rub15', 'H2O'), 'Rub15_atc' -> ('Rub15', 'ATC'),
    anything else -> (name, 'unknown').

    Args:
        name: Replicate group name

    Returns:
        Tuple of (base_name, condition)
    """
    lower = name.lower()

    for suffix, condition in (('h2o', 'H2O'), ('atc', 'ATC')):
        if f'-{suffix}' in lower or f'_{suffix}' in lower or lower.endswith(suffix):
            base_name = re.sub(rf'[-_]?{suffix}$', '', name, flags=re.IGNORECASE)
            base_name = re.sub(r'[-_]$', '', base_name)
            return base_name, condition

    return name, 'unknown'


class ReplicateGroup:
    """
    Represents one mutant's replicate measurements with metadata.

    This is the core input structure for ranking:
    - Per-replicate molarity (µM, buffer-normalized) for each element
    - Group name and parsed condition
    - Additional metadata (batch, notes, ...)

    Attributes:
        name (str): Group name, e.g. 'Rub15-H2O'
        measurements (pd.DataFrame): Rows = replicates, columns = elements (µM)
        metadata (dict): Additional metadata
    """

    def __init__(
        self,
        name: str,
        measurements: pd.DataFrame,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize a replicate group.

        Args:
            name: Group name
            measurements: Per-replicate µM values (rows = replicates, columns = elements)
            metadata: Optional additional metadata
        """
        if not isinstance(measurements, pd.DataFrame):
            raise TypeError("measurements must be a pandas DataFrame")

        self.name = str(name)
        self.measurements = measurements.astype(float)
        self.metadata = metadata if metadata is not None else {}

    @classmethod
    def from_concentrations(
        cls,
        name: str,
        concentrations: pd.DataFrame,
        buffer: Optional[Dict[str, float]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> 'ReplicateGroup':
        """
        Create from mg/L concentrations.

        Converts every value to µM and subtracts the buffer (given in µM).

        Args:
            name: Group name
            concentrations: Per-replicate mg/L values
            buffer: Optional buffer molarity per element (µM)
            metadata: Optional metadata

        Returns:
            ReplicateGroup instance
        """
        molarity = pd.DataFrame(
            {
                element: [mg_l_to_micromolar(v, element) for v in concentrations[element]]
                for element in concentrations.columns
            },
            index=concentrations.index
        )

        if buffer:
            for element in molarity.columns:
                molarity[element] = molarity[element] - buffer.get(element, 0.0)

        return cls(name, molarity, metadata=metadata)

    @property
    def base_name(self) -> str:
        """Mutant name without the condition suffix."""
        return parse_mutant_name(self.name)[0]

    @property
    def condition(self) -> str:
        """Condition parsed from the name ('H2O', 'ATC' or 'unknown')."""
        return parse_mutant_name(self.name)[1]

    @property
    def elements(self) -> List[str]:
        return list(self.measurements.columns)

    @property
    def replicate_names(self) -> List[str]:
        return [str(idx) for idx in self.measurements.index]

    @property
    def n_replicates(self) -> int:
        return len(self.measurements)

    def total_molarity(self, elements: Optional[List[str]] = None) -> np.ndarray:
        """
        Total bound metal per replicate.

        Negative (below buffer) values are clamped to 0 before summing.

        Args:
            elements: Elements to include (None = all)

        Returns:
            Array of shape (n_replicates,)
        """
        frame = self._select(elements)
        return frame.clip(lower=0.0).sum(axis=1).to_numpy(dtype=float)

    def selectivity(self, elements: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Per-replicate selectivity (% of total positive moles).

        Args:
            elements: Elements to include (None = all)

        Returns:
            DataFrame with the same shape as the selected measurements
        """
        frame = self._select(elements)
        rows = [calculate_selectivity(row.to_dict()) for _, row in frame.iterrows()]
        return pd.DataFrame(rows, index=frame.index, columns=frame.columns)

    def statistics(self, elements: Optional[List[str]] = None) -> pd.DataFrame:
        """Per-element mean, std and CV% of the molarity."""
        return replicate_statistics(self._select(elements))

    def _select(self, elements: Optional[List[str]]) -> pd.DataFrame:
        if elements is None:
            return self.measurements
        # Elements not measured in this group contribute 0
        return self.measurements.reindex(columns=elements, fill_value=0.0)

    def copy(self) -> 'ReplicateGroup':
        """Create a deep copy of the group."""
        return ReplicateGroup(
            name=self.name,
            measurements=self.measurements.copy(),
            metadata=copy.deepcopy(self.metadata)
        )

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def __repr__(self) -> str:
        return (
            f"ReplicateGroup(name='{self.name}', "
            f"n_replicates={self.n_replicates}, "
            f"elements={self.elements})"
        )

    def __len__(self) -> int:
        """Number of replicates."""
        return self.n_replicates
