"""
Data Layer

Lanthanide reference tables, unit conversion and replicate groups.
"""

from .constants import (
    LANTHANIDE_ORDER,
    ATOMIC_WEIGHTS,
    LIGHT_REE,
    HEAVY_REE,
    WATER_EXCHANGE_RATES,
    IONIC_RADII,
    UNPAIRED_ELECTRONS,
    sort_by_atomic_number,
    elements_with_kex,
)
from .chemistry import (
    mg_l_to_micromolar,
    micromolar_to_mg_l,
    calculate_selectivity,
    normalize_by_buffer,
    replicate_statistics,
)
from .replicates import ReplicateGroup, parse_mutant_name

__all__ = [
    # Reference tables
    'LANTHANIDE_ORDER',
    'ATOMIC_WEIGHTS',
    'LIGHT_REE',
    'HEAVY_REE',
    'WATER_EXCHANGE_RATES',
    'IONIC_RADII',
    'UNPAIRED_ELECTRONS',
    'sort_by_atomic_number',
    'elements_with_kex',

    # Chemistry
    'mg_l_to_micromolar',
    'micromolar_to_mg_l',
    'calculate_selectivity',
    'normalize_by_buffer',
    'replicate_statistics',

    # Core data structures
    'ReplicateGroup',
    'parse_mutant_name',
]
