"""
Chemistry Helpers

Unit conversion and per-element summaries for ICP measurements.

Features:
- mg/L <-> µM conversion using atomic weights
- Buffer (blank) subtraction
- Selectivity: % of total positive moles per element
- Replicate mean, standard deviation and CV% per element
"""

from typing import Dict, Mapping
import warnings

import numpy as np
import pandas as pd

from .constants import ATOMIC_WEIGHTS


def mg_l_to_micromolar(mg_l: float, element: str) -> float:
    """
    Convert mg/L to µM.

    (mg/L) / (g/mol) * 1000 = µM

    Args:
        mg_l: Concentration in mg/L
        element: Element symbol

    Returns:
        Concentration in µM (0.0 for unknown elements)
    """
    atomic_weight = ATOMIC_WEIGHTS.get(element)
    if not atomic_weight:
        warnings.warn(f"Unknown element: {element}")
        return 0.0
    return mg_l / atomic_weight * 1000.0


def micromolar_to_mg_l(micromolar: float, element: str) -> float:
    """Convert µM to mg/L (0.0 for unknown elements)."""
    atomic_weight = ATOMIC_WEIGHTS.get(element)
    if not atomic_weight:
        return 0.0
    return micromolar * atomic_weight / 1000.0


def calculate_selectivity(molarity: Mapping[str, float]) -> Dict[str, float]:
    """
    Calculate selectivity (% of total moles for each element).

    Only positive values (above detection limit) contribute; negative
    values get 0%.

    Args:
        molarity: Element -> µM

    Returns:
        Element -> percentage of total positive moles
    """
    total_moles = sum(max(0.0, value) for value in molarity.values())

    if total_moles == 0:
        return {element: 0.0 for element in molarity}

    return {
        element: max(0.0, value) / total_moles * 100.0
        for element, value in molarity.items()
    }


def normalize_by_buffer(
    molarity: Mapping[str, float],
    buffer_molarity: Mapping[str, float]
) -> Dict[str, float]:
    """Subtract buffer values element-wise (missing buffer elements count as 0)."""
    return {
        element: value - buffer_molarity.get(element, 0.0)
        for element, value in molarity.items()
    }


def replicate_statistics(measurements: pd.DataFrame) -> pd.DataFrame:
    """
    Summarize replicate measurements per element.

    Args:
        measurements: DataFrame with replicates as rows and elements as columns

    Returns:
        DataFrame indexed by element with columns:
        - mean
        - std (sample std, 0 when fewer than 2 replicates)
        - cv (percent, 0 when the mean is 0)
        - n
    """
    values = measurements.astype(float)
    n = len(values)

    mean = values.mean(axis=0) if n > 0 else pd.Series(0.0, index=values.columns)
    if n >= 2:
        std = values.std(axis=0, ddof=1)
    else:
        std = pd.Series(0.0, index=values.columns)

    mean = mean.fillna(0.0)
    std = std.fillna(0.0)

    abs_mean = mean.abs()
    cv = pd.Series(
        np.where(abs_mean > 0, std / abs_mean.where(abs_mean > 0, 1.0) * 100.0, 0.0),
        index=values.columns
    )

    return pd.DataFrame({
        'mean': mean,
        'std': std,
        'cv': cv,
        'n': n
    })
