"""
read_met.py
===========

Overview:
    Reader for gridded meteorological fields on hybrid sigma-pressure levels
    (MERRA-2 style HDF5/netCDF4 files).

    Layout expected in the file:
        - latitude / longitude coordinate vectors
        - T and specific humidity with axes (time, lev, lat, lon)
        - surface pressure with axes (time, lat, lon), Pa
        - hybrid coefficients a (Pa) and b (dimensionless) with n_lev + 1
          entries, stored as root attributes or as datasets
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import h5py
import numpy as np

__all__ = [
    "MetFields",
    "DEFAULT_MET_NAMES",
    "read_met_h5",
]


DEFAULT_MET_NAMES: Dict[str, str] = {
    "lat": "YDim",
    "lon": "XDim",
    "T": "T",
    "q": "QV",
    "ps": "PS",
    "a": "ak",
    "b": "bk",
}


@dataclass(frozen=True)
class MetFields:
    lat: np.ndarray     # (n_lat,)
    lon: np.ndarray     # (n_lon,)
    T: np.ndarray       # (n_time, n_lev, n_lat, n_lon), K
    q: np.ndarray       # (n_time, n_lev, n_lat, n_lon), kg/kg
    ps: np.ndarray      # (n_time, n_lat, n_lon), Pa
    a: np.ndarray       # (n_lev + 1,), Pa
    b: np.ndarray       # (n_lev + 1,)

    def __post_init__(self):
        for name in ("lat", "lon", "T", "q", "ps", "a", "b"):
            object.__setattr__(self, name, np.asarray(getattr(self, name), dtype=np.float64))
        n_time, n_lev, n_lat, n_lon = self.T.shape
        if self.q.shape != self.T.shape:
            raise ValueError(f"q shape {self.q.shape} does not match T shape {self.T.shape}.")
        if self.ps.shape != (n_time, n_lat, n_lon):
            raise ValueError(f"ps shape {self.ps.shape} must be {(n_time, n_lat, n_lon)}.")
        if self.lat.shape != (n_lat,) or self.lon.shape != (n_lon,):
            raise ValueError("lat/lon vectors do not match the field dimensions.")
        if self.a.shape != (n_lev + 1,) or self.b.shape != (n_lev + 1,):
            raise ValueError(f"Hybrid coefficients need {n_lev + 1} entries.")

    @property
    def n_time(self) -> int:
        return int(self.T.shape[0])

    @property
    def n_lev(self) -> int:
        return int(self.T.shape[1])


def _read_coefficient(handle: h5py.File, name: str) -> np.ndarray:
    if name in handle.attrs:
        return np.asarray(handle.attrs[name], dtype=np.float64).reshape(-1)
    # netCDF4 files converted from HDF-EOS keep global attributes in a group
    for group_name in ("HDF_GLOBAL", "HDF_GLOBAL_ATTRIBUTES"):
        if group_name in handle and name in handle[group_name].attrs:
            return np.asarray(handle[group_name].attrs[name], dtype=np.float64).reshape(-1)
    if f"HDF_GLOBAL.{name}" in handle.attrs:
        return np.asarray(handle.attrs[f"HDF_GLOBAL.{name}"], dtype=np.float64).reshape(-1)
    if name in handle:
        return np.asarray(handle[name][()], dtype=np.float64).reshape(-1)
    raise KeyError(f"Hybrid coefficient '{name}' not found as attribute or dataset.")


def _read_dataset(handle: h5py.File, name: str) -> np.ndarray:
    if name not in handle:
        raise KeyError(f"Dataset '{name}' not found in {handle.filename}.")
    return np.asarray(handle[name][()], dtype=np.float64)


def read_met_h5(path, names: Optional[Dict[str, str]] = None) -> MetFields:
    """Read meteorological fields from an HDF5/netCDF4 file.

    Parameters
    ----------
    path : str or `~pathlib.Path`
        File to read.
    names : dict, optional
        Overrides for the dataset/attribute names in `DEFAULT_MET_NAMES`.

    Returns
    -------
    MetFields
        Fields as float64 NumPy arrays. The file is closed on return.
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Meteorological file not found: {path}")
    keys = dict(DEFAULT_MET_NAMES)
    if names:
        keys.update(names)

    print(f"[Profile] Reading met fields @ {path}")
    with h5py.File(path, "r") as handle:
        fields = MetFields(
            lat=_read_dataset(handle, keys["lat"]),
            lon=_read_dataset(handle, keys["lon"]),
            T=_read_dataset(handle, keys["T"]),
            q=_read_dataset(handle, keys["q"]),
            ps=_read_dataset(handle, keys["ps"]),
            a=_read_coefficient(handle, keys["a"]),
            b=_read_coefficient(handle, keys["b"]),
        )
    print(f"[Profile] Met grid: {fields.n_time} times x {fields.n_lev} levels x "
          f"{fields.lat.size} lat x {fields.lon.size} lon")
    return fields
