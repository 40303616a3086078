"""
partition_fn.py
===============

Overview:
    Total internal partition functions Q(T) used to scale line intensities
    from the HITRAN reference temperature.

    - PowerLawPartition: classical rotational approximation Q ~ T^j
      (vibrational contributions neglected, adequate for atmospheric T).
    - TabulatedPartition: linear interpolation of a (T, Q) table, e.g. the
      HITRAN `q<N>.txt` files.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .data_constants import T_ref, molecule_entry

__all__ = [
    "PowerLawPartition",
    "TabulatedPartition",
    "default_partition",
    "read_partition_table",
]


@dataclass(frozen=True)
class PowerLawPartition:
    rot_exp: float = 1.0

    def __call__(self, temperature):
        return np.asarray(temperature, dtype=float) ** self.rot_exp

    def ratio(self, temperature: float) -> float:
        """Q(T_ref) / Q(T)."""
        return float((T_ref / temperature) ** self.rot_exp)


@dataclass(frozen=True)
class TabulatedPartition:
    temp: np.ndarray
    q: np.ndarray

    def __post_init__(self):
        temp = np.asarray(self.temp, dtype=float)
        q = np.asarray(self.q, dtype=float)
        if temp.ndim != 1 or temp.shape != q.shape or temp.size < 2:
            raise ValueError("Partition table needs matching 1D temperature and Q columns (>= 2 rows).")
        order = np.argsort(temp)
        object.__setattr__(self, "temp", temp[order])
        object.__setattr__(self, "q", q[order])

    def __call__(self, temperature):
        temperature = np.asarray(temperature, dtype=float)
        if np.any(temperature < self.temp[0]) or np.any(temperature > self.temp[-1]):
            raise ValueError(
                f"Temperature outside partition table domain [{self.temp[0]}, {self.temp[-1]}] K."
            )
        return np.interp(temperature, self.temp, self.q)

    def ratio(self, temperature: float) -> float:
        return float(self(T_ref) / self(temperature))


def read_partition_table(path) -> TabulatedPartition:
    """Read a two-column (T, Q) table such as HITRAN's `q<N>.txt`."""
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Partition function table not found: {path}")
    data = np.loadtxt(path, comments="#")
    if data.ndim == 1 or data.shape[1] < 2:
        raise ValueError(f"Partition table '{path}' must have two columns (T, Q).")
    return TabulatedPartition(temp=data[:, 0], q=data[:, 1])


def default_partition(molecule_id: int) -> PowerLawPartition:
    try:
        entry = molecule_entry(int(molecule_id))
    except KeyError:
        print(f"[warn] No partition data for molecule {molecule_id}; assuming linear rotor.")
        return PowerLawPartition(1.0)
    return PowerLawPartition(float(entry["rot_exp"]))
