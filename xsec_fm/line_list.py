"""
line_list.py
============

Overview:
    Immutable spectroscopic line lists for one (molecule, isotope) pair,
    restricted to a wavenumber window.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

import numpy as np

__all__ = [
    "LineTransition",
    "LineList",
]

_COLUMNS = ("nu", "intensity", "gamma_air", "gamma_self", "e_lower", "n_air", "delta_air")


@dataclass(frozen=True)
class LineTransition:
    """A single transition record (HITRAN units, reference 296 K / 1 atm)."""
    nu: float               # cm^-1
    intensity: float        # cm^-1 / (molecule cm^-2)
    gamma_air: float        # cm^-1 atm^-1, HWHM
    e_lower: float          # cm^-1
    n_air: float            # temperature exponent of gamma_air
    gamma_self: float = 0.0
    delta_air: float = 0.0  # cm^-1 atm^-1, pressure shift
    molecule_id: int = 0
    isotope_id: int = 0


def _frozen(values, n: int) -> np.ndarray:
    arr = np.array(values, dtype=np.float64).reshape(-1)
    if arr.shape[0] != n:
        raise ValueError(f"Line list column has length {arr.shape[0]}, expected {n}.")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class LineList:
    """Ordered, read-only column store of transitions.

    The order of the input is kept as given so that summation over lines is
    reproducible. All columns are NumPy float64 arrays of equal length.
    """
    molecule_id: int
    isotope_id: int
    nu_min: float
    nu_max: float
    nu: np.ndarray
    intensity: np.ndarray
    gamma_air: np.ndarray
    e_lower: np.ndarray
    n_air: np.ndarray
    gamma_self: np.ndarray = field(default=None)
    delta_air: np.ndarray = field(default=None)

    def __post_init__(self):
        nu = np.array(self.nu, dtype=np.float64).reshape(-1)
        n = nu.shape[0]
        if not self.nu_min <= self.nu_max:
            raise ValueError(f"Invalid window [{self.nu_min}, {self.nu_max}].")
        for name in _COLUMNS:
            value = getattr(self, name)
            if value is None:
                value = np.zeros(n)
            object.__setattr__(self, name, _frozen(value, n))
        if n and (np.any(self.nu < self.nu_min) or np.any(self.nu > self.nu_max)):
            raise ValueError(
                f"Line centres must lie inside the window [{self.nu_min}, {self.nu_max}]."
            )
        if np.any(~np.isfinite(self.intensity)) or np.any(self.intensity < 0.0):
            raise ValueError("Line intensities must be finite and non-negative.")

    def __len__(self) -> int:
        return int(self.nu.shape[0])

    @classmethod
    def from_transitions(
        cls,
        transitions: Iterable[LineTransition],
        nu_min: Optional[float] = None,
        nu_max: Optional[float] = None,
        molecule_id: Optional[int] = None,
        isotope_id: Optional[int] = None,
    ) -> "LineList":
        """Build a line list from transition records, dropping lines outside the window."""
        records = list(transitions)
        if molecule_id is None:
            molecule_id = records[0].molecule_id if records else 0
        if isotope_id is None:
            isotope_id = records[0].isotope_id if records else 0
        if nu_min is None:
            nu_min = min((r.nu for r in records), default=0.0)
        if nu_max is None:
            nu_max = max((r.nu for r in records), default=0.0)
        kept = [r for r in records if nu_min <= r.nu <= nu_max]
        columns = {name: [getattr(r, name) for r in kept] for name in _COLUMNS}
        return cls(
            molecule_id=int(molecule_id),
            isotope_id=int(isotope_id),
            nu_min=float(nu_min),
            nu_max=float(nu_max),
            **columns,
        )

    @classmethod
    def empty(cls, molecule_id: int, isotope_id: int, nu_min: float, nu_max: float) -> "LineList":
        return cls.from_transitions([], nu_min, nu_max, molecule_id, isotope_id)

    def restrict(self, nu_min: float, nu_max: float) -> "LineList":
        """Sub-list of the lines with nu_min <= nu <= nu_max (order preserved)."""
        lo = max(float(nu_min), self.nu_min)
        hi = min(float(nu_max), self.nu_max)
        if lo > hi:
            return LineList.empty(self.molecule_id, self.isotope_id, float(nu_min), float(nu_min))
        mask = (self.nu >= lo) & (self.nu <= hi)
        return LineList(
            molecule_id=self.molecule_id,
            isotope_id=self.isotope_id,
            nu_min=lo,
            nu_max=hi,
            **{name: getattr(self, name)[mask] for name in _COLUMNS},
        )

    def transitions(self) -> Iterator[LineTransition]:
        for i in range(len(self)):
            yield LineTransition(
                **{name: float(getattr(self, name)[i]) for name in _COLUMNS},
                molecule_id=self.molecule_id,
                isotope_id=self.isotope_id,
            )
