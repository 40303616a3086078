"""
read_hitran.py
==============

Overview:
    Reads HITRAN 2004+ fixed-width `.par` records (160 characters per line)
    and returns a LineList restricted to one molecule/isotope and a wavenumber
    window.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from .line_list import LineList

__all__ = [
    "HITRAN_160_FIELDS",
    "parse_par_record",
    "read_hitran_par",
]

# (name, start, end) character slices of the 160-character HITRAN format
HITRAN_160_FIELDS: Tuple[Tuple[str, int, int], ...] = (
    ("molecule_id", 0, 2),
    ("isotope_id", 2, 3),
    ("nu", 3, 15),
    ("intensity", 15, 25),
    ("einstein_a", 25, 35),
    ("gamma_air", 35, 40),
    ("gamma_self", 40, 45),
    ("e_lower", 45, 55),
    ("n_air", 55, 59),
    ("delta_air", 59, 67),
)

# HITRAN packs isotopologue numbers above 9 into a single character
_ISO_CHAR = {"0": 10, "A": 11, "B": 12}


def _isotope_number(char: str) -> int:
    char = char.strip()
    if char in _ISO_CHAR:
        return _ISO_CHAR[char]
    return int(char)


def parse_par_record(line: str) -> Dict[str, float]:
    """Parse one `.par` record into a dict of numeric fields."""
    if len(line.rstrip("\r\n")) < 67:
        raise ValueError(f"HITRAN record too short ({len(line)} characters).")
    record: Dict[str, float] = {}
    for name, start, end in HITRAN_160_FIELDS:
        text = line[start:end]
        if name == "isotope_id":
            record[name] = _isotope_number(text)
        elif name == "molecule_id":
            record[name] = int(text)
        else:
            # Fortran-style exponents such as 1.234D-20 show up in older files
            record[name] = float(text.replace("D", "E").replace("d", "e"))
    return record


def read_hitran_par(
    path,
    molecule_id: int,
    isotope_id: Optional[int],
    nu_min: float,
    nu_max: float,
) -> LineList:
    """Read a HITRAN `.par` file, filtering at load time.

    Parameters
    ----------
    path : str or `~pathlib.Path`
        Path to the `.par` file.
    molecule_id : int
        HITRAN molecule number (e.g. 2 for CO2).
    isotope_id : int or None
        HITRAN isotopologue number; None keeps all isotopologues.
    nu_min, nu_max : float
        Wavenumber window in cm^-1 (inclusive).

    Returns
    -------
    LineList
        Lines in file order. An empty window yields an empty LineList.
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"HITRAN file not found: {path}")
    if nu_min > nu_max:
        raise ValueError(f"Invalid wavenumber window [{nu_min}, {nu_max}].")

    print(f"[Line] Reading HITRAN lines for molecule {molecule_id} iso {isotope_id} @ {path}")

    columns: Dict[str, List[float]] = {
        "nu": [], "intensity": [], "gamma_air": [], "gamma_self": [],
        "e_lower": [], "n_air": [], "delta_air": [],
    }
    with path.open("r", encoding="ascii", errors="replace") as handle:
        for lineno, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            # Cheap pre-filter on the molecule id before parsing the whole record
            try:
                mol = int(line[0:2])
            except ValueError:
                raise ValueError(f"{path}:{lineno}: cannot parse molecule id {line[0:2]!r}") from None
            if mol != molecule_id:
                continue
            try:
                record = parse_par_record(line)
            except ValueError as exc:
                raise ValueError(f"{path}:{lineno}: malformed HITRAN record ({exc})") from None
            if isotope_id is not None and record["isotope_id"] != isotope_id:
                continue
            if not nu_min <= record["nu"] <= nu_max:
                continue
            for name in columns:
                columns[name].append(record[name])

    n_lines = len(columns["nu"])
    print(f"[Line] Kept {n_lines} lines in [{nu_min}, {nu_max}] cm^-1")
    return LineList(
        molecule_id=int(molecule_id),
        isotope_id=int(isotope_id) if isotope_id is not None else 0,
        nu_min=float(nu_min),
        nu_max=float(nu_max),
        **{name: np.asarray(values, dtype=np.float64) for name, values in columns.items()},
    )
