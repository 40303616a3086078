"""
read_solar.py
=============

Overview:
    Reads a two-column solar reference table (wavenumber in cm^-1,
    transmission or normalised irradiance) and interpolates it onto the
    model wavenumber grid. Values outside the table are held at the end
    values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import jax.numpy as jnp
import numpy as np

__all__ = ["read_solar_table", "read_solar_spectrum"]


def read_solar_table(path) -> tuple[np.ndarray, np.ndarray]:
    """Native (nu, value) columns of a solar table, sorted by wavenumber."""
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Solar table not found: {path}")
    data = np.loadtxt(path, comments="#")
    if data.ndim == 1 or data.shape[1] < 2:
        raise ValueError(f"Solar table '{path}' must have at least two columns (nu, value).")
    nu = np.asarray(data[:, 0], dtype=float)
    value = np.asarray(data[:, 1], dtype=float)
    if np.any(~np.isfinite(value)):
        raise ValueError(f"Solar table '{path}' contains non-finite values.")
    sort_idx = np.argsort(nu)
    return nu[sort_idx], value[sort_idx]


def read_solar_spectrum(
    path,
    nu_grid: Iterable[float],
    base_dir: Optional[Path] = None,
) -> jnp.ndarray:
    """Read the solar table at `path` and interpolate it onto `nu_grid`."""
    path = Path(path).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = (Path(base_dir) / path).resolve()
    nu_native, value_native = read_solar_table(path)
    nu_grid = np.asarray(nu_grid, dtype=float)

    if nu_grid[0] < nu_native[0] or nu_grid[-1] > nu_native[-1]:
        print(f"[warn] Solar table @ {path} covers [{nu_native[0]}, {nu_native[-1]}] cm^-1; "
              f"holding end values outside it.")
    solar = np.interp(
        nu_grid,
        nu_native,
        value_native,
        left=value_native[0],
        right=value_native[-1],
    )
    print(f"[info] Solar reference from {path}: {nu_native.size} native points")
    return jnp.asarray(solar)
