"""
data_constants.py
=================

Overview:
    Physical constants, HITRAN reference conditions and a small molecule table
    for quick global access.
"""

import math

# SI
kb = 1.380649e-23          # J K^-1
c_light = 2.99792458e8     # m s^-1
h = 6.62607015e-34         # J s
N_A = 6.0221415e23         # molecules mol^-1 (value used for the column densities)
amu = 1.66053906892e-27    # kg

# Second radiation constant h c / k in cm K
c2 = 1.4387769

# HITRAN reference conditions
T_ref = 296.0              # K
p_ref_hPa = 1013.25        # hPa

# Dry air and water vapour molar masses (kg/mol)
M_dry = 28.9647e-3
M_h2o = 18.01528e-3

# Gravity and Earth radius
g0 = 9.8196                # m s^-2
R_earth = 6.371e6          # m
R_dry = 287.058            # J kg^-1 K^-1

# Gaussian FWHM / sigma
fwhm_to_sigma = 2.0 * math.sqrt(2.0 * math.log(2.0))

# HITRAN molecule table (main isotopologue masses in g/mol).
# rot_exp is the exponent j of the classical rotational partition function Q ~ T^j
# (1 for linear molecules, 1.5 for non-linear ones).
HITRAN_MOLECULES = [
    {"id": 1, "symbol": "H2O", "molecular_weight": 18.010565, "rot_exp": 1.5},
    {"id": 2, "symbol": "CO2", "molecular_weight": 43.989830, "rot_exp": 1.0},
    {"id": 3, "symbol": "O3", "molecular_weight": 47.984745, "rot_exp": 1.5},
    {"id": 4, "symbol": "N2O", "molecular_weight": 44.001062, "rot_exp": 1.0},
    {"id": 5, "symbol": "CO", "molecular_weight": 27.994915, "rot_exp": 1.0},
    {"id": 6, "symbol": "CH4", "molecular_weight": 16.031300, "rot_exp": 1.5},
    {"id": 7, "symbol": "O2", "molecular_weight": 31.989830, "rot_exp": 1.0},
    {"id": 8, "symbol": "NO", "molecular_weight": 29.997989, "rot_exp": 1.0},
    {"id": 9, "symbol": "SO2", "molecular_weight": 63.961901, "rot_exp": 1.5},
    {"id": 10, "symbol": "NO2", "molecular_weight": 45.992904, "rot_exp": 1.5},
    {"id": 11, "symbol": "NH3", "molecular_weight": 17.026549, "rot_exp": 1.5},
    {"id": 13, "symbol": "OH", "molecular_weight": 17.002740, "rot_exp": 1.0},
    {"id": 19, "symbol": "OCS", "molecular_weight": 59.966986, "rot_exp": 1.0},
    {"id": 20, "symbol": "H2CO", "molecular_weight": 30.010565, "rot_exp": 1.5},
    {"id": 22, "symbol": "N2", "molecular_weight": 28.006148, "rot_exp": 1.0},
    {"id": 23, "symbol": "HCN", "molecular_weight": 27.010899, "rot_exp": 1.0},
    {"id": 26, "symbol": "C2H2", "molecular_weight": 26.015650, "rot_exp": 1.0},
]

_BY_ID = {entry["id"]: entry for entry in HITRAN_MOLECULES}
_BY_SYMBOL = {entry["symbol"]: entry for entry in HITRAN_MOLECULES}


def molecule_entry(key):
    """Look up a molecule by HITRAN id (int) or symbol (str)."""
    table = _BY_ID if isinstance(key, int) else _BY_SYMBOL
    if key not in table:
        raise KeyError(f"Unknown HITRAN molecule {key!r}.")
    return table[key]
