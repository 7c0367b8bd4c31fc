"""
Lanthanide Reference Tables

Physical constants for the lanthanide series used throughout the analysis.
"""

from typing import Dict, List

# Standard order of lanthanides (by atomic number)
LANTHANIDE_ORDER: List[str] = [
    'La', 'Ce', 'Pr', 'Nd', 'Pm', 'Sm', 'Eu', 'Gd',
    'Tb', 'Dy', 'Ho', 'Er', 'Tm', 'Yb', 'Lu'
]

# Atomic weights (g/mol)
ATOMIC_WEIGHTS: Dict[str, float] = {
    'La': 138.905,
    'Ce': 140.116,
    'Pr': 140.908,
    'Nd': 144.242,
    'Pm': 145.0,  # radioactive, rarely measured
    'Sm': 150.36,
    'Eu': 151.964,
    'Gd': 157.25,
    'Tb': 158.925,
    'Dy': 162.500,
    'Ho': 164.930,
    'Er': 167.259,
    'Tm': 168.934,
    'Yb': 173.045,
    'Lu': 174.967,
}

# Light vs heavy REE partition
LIGHT_REE: List[str] = ['La', 'Ce', 'Pr', 'Nd', 'Pm', 'Sm', 'Eu']
HEAVY_REE: List[str] = ['Gd', 'Tb', 'Dy', 'Ho', 'Er', 'Tm', 'Yb', 'Lu']

# Water exchange rates (k_ex) in units of 10^8 s^-1
# Reference: Helm & Merbach, Chem. Rev. 2005
WATER_EXCHANGE_RATES: Dict[str, float] = {
    'La': 2.1,
    'Ce': 3.3,
    'Pr': 4.4,
    'Nd': 5.2,
    'Sm': 7.4,
    'Eu': 6.6,
    'Gd': 6.7,
    'Tb': 5.2,
    'Dy': 4.2,
    'Ho': 2.8,
    'Er': 1.9,
    'Tm': 1.4,
    'Yb': 0.8,
    'Lu': 0.6,
}

# Ionic radii (Angstrom, +3 oxidation state, CN=6)
IONIC_RADII: Dict[str, float] = {
    'La': 1.032,
    'Ce': 1.01,
    'Pr': 0.99,
    'Nd': 0.983,
    'Pm': 0.97,
    'Sm': 0.958,
    'Eu': 0.947,
    'Gd': 0.938,
    'Tb': 0.923,
    'Dy': 0.912,
    'Ho': 0.901,
    'Er': 0.89,
    'Tm': 0.88,
    'Yb': 0.868,
    'Lu': 0.861,
}

# Unpaired 4f electrons of the Ln(III) ions
UNPAIRED_ELECTRONS: Dict[str, int] = {
    'La': 0,
    'Ce': 1,
    'Pr': 2,
    'Nd': 3,
    'Pm': 4,
    'Sm': 5,
    'Eu': 6,
    'Gd': 7,
    'Tb': 6,
    'Dy': 5,
    'Ho': 4,
    'Er': 3,
    'Tm': 2,
    'Yb': 1,
    'Lu': 0,
}


def sort_by_atomic_number(elements: List[str]) -> List[str]:
    """Sort element symbols by position in the lanthanide series (unknowns last)."""
    def _key(element: str) -> int:
        if element in LANTHANIDE_ORDER:
            return LANTHANIDE_ORDER.index(element)
        return len(LANTHANIDE_ORDER)

    return sorted(elements, key=_key)


def elements_with_kex(elements: List[str]) -> List[str]:
    """Filter to elements with a known water exchange rate, in series order."""
    return sort_by_atomic_number([e for e in elements if e in WATER_EXCHANGE_RATES])
