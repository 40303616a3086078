"""
vert_profile.py
===============

Overview:
    Layered atmospheric state for a single column: pressures, temperatures,
    humidity and the dry-air / water-vapour vertical column densities (VCDs,
    molecules cm^-2) of each layer.

    Layers are ordered from the top of the atmosphere to the surface, i.e.
    half-level pressures increase with index and the last half level is the
    surface pressure.

Gravity schemes:
    - "constant"          : g0 = 9.8196 m s^-2 for every layer
    - "latitude"          : 1980 international gravity formula at the surface
    - "latitude_altitude" : latitude formula reduced by (R / (R + z))^2 with the
                            layer height z from the hypsometric equation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .data_constants import M_dry, M_h2o, N_A, R_dry, R_earth, g0
from .read_met import MetFields

__all__ = [
    "AtmosphericProfile",
    "GRAVITY_SCHEMES",
    "gravity_at_latitude",
    "layer_gravity",
    "column_densities",
    "read_atmos_profile",
    "flat_profile",
    "total_dry_column",
]

GRAVITY_SCHEMES = ("constant", "latitude", "latitude_altitude")

# Molecular masses in kg per molecule
_M_DRY_MOLEC = M_dry / N_A
_M_H2O_MOLEC = M_h2o / N_A

# m^2 -> cm^2
_AREA_CM2 = 100.0 ** 2


@dataclass(frozen=True)
class AtmosphericProfile:
    lat: float
    lon: float
    psurf: float          # Pa
    T: np.ndarray         # (nlay,), K
    q: np.ndarray         # (nlay,), kg/kg
    p: np.ndarray         # (nlay,), Pa
    p_half: np.ndarray    # (nlay + 1,), Pa
    vmr_h2o: np.ndarray   # (nlay,)
    vcd_dry: np.ndarray   # (nlay,), molecules cm^-2
    vcd_h2o: np.ndarray   # (nlay,), molecules cm^-2
    gravity: np.ndarray   # (nlay,), m s^-2

    def __post_init__(self):
        n = np.asarray(self.T).shape[0]
        if np.asarray(self.p_half).shape[0] != n + 1:
            raise ValueError(
                f"Profile has {n} layers but {np.asarray(self.p_half).shape[0]} half levels."
            )
        for name in ("vcd_dry", "vcd_h2o"):
            value = np.asarray(getattr(self, name))
            if np.any(~np.isfinite(value)) or np.any(value < 0.0):
                raise ValueError(f"{name} must be finite and non-negative.")

    @property
    def n_layers(self) -> int:
        return int(np.asarray(self.T).shape[0])


def gravity_at_latitude(lat_deg: float) -> float:
    """Normal gravity on the ellipsoid (1980 international formula), m s^-2."""
    phi = np.deg2rad(lat_deg)
    return float(
        9.780327 * (1.0 + 0.0053024 * np.sin(phi) ** 2 - 0.0000058 * np.sin(2.0 * phi) ** 2)
    )


def _layer_heights(p_half: np.ndarray, p: np.ndarray, T: np.ndarray, g_surf: float) -> np.ndarray:
    # Hypsometric integration from the surface (last half level) upward
    n = T.shape[0]
    z_mid = np.zeros(n)
    z_below = 0.0
    for i in range(n - 1, -1, -1):
        scale = R_dry * T[i] / g_surf
        z_mid[i] = z_below + scale * np.log(p_half[i + 1] / p[i])
        if p_half[i] > 0.0:
            z_below = z_below + scale * np.log(p_half[i + 1] / p_half[i])
    return z_mid


def layer_gravity(
    scheme: Union[str, float],
    lat: float,
    p_half: np.ndarray,
    p: np.ndarray,
    T: np.ndarray,
) -> np.ndarray:
    """Per-layer gravitational acceleration for a named scheme or a fixed value."""
    n = np.asarray(T).shape[0]
    if not isinstance(scheme, str):
        value = float(scheme)
        if not np.isfinite(value) or value <= 0.0:
            raise ValueError(f"Gravity must be positive, got {scheme}.")
        return np.full(n, value)
    key = scheme.strip().lower()
    if key == "constant":
        return np.full(n, g0)
    if key == "latitude":
        return np.full(n, gravity_at_latitude(lat))
    if key == "latitude_altitude":
        g_surf = gravity_at_latitude(lat)
        z = _layer_heights(np.asarray(p_half), np.asarray(p), np.asarray(T), g_surf)
        return g_surf * (R_earth / (R_earth + z)) ** 2
    raise NotImplementedError(f"Unknown gravity scheme '{scheme}'. Options: {', '.join(GRAVITY_SCHEMES)}.")


def column_densities(p_half, q, gravity):
    """Water-vapour VMR and dry/wet VCDs of each layer.

    Parameters
    ----------
    p_half : array_like, shape (nlay + 1,)
        Half-level pressures in Pa, increasing downward.
    q : array_like, shape (nlay,)
        Specific humidity in kg/kg.
    gravity : array_like, shape (nlay,)
        Gravitational acceleration in m s^-2.

    Returns
    -------
    vmr_h2o, vcd_dry, vcd_h2o : `~numpy.ndarray`, shape (nlay,)
        VMR of water vapour and VCDs in molecules cm^-2.
    """
    p_half = np.asarray(p_half, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    gravity = np.asarray(gravity, dtype=np.float64)

    if np.any(~np.isfinite(q)) or np.any(q < 0.0) or np.any(q >= 1.0):
        raise ValueError("Specific humidity must lie in [0, 1).")
    dp = np.diff(p_half)
    if np.any(~np.isfinite(dp)) or np.any(dp < 0.0):
        bad = int(np.argmax(~np.isfinite(dp) | (dp < 0.0)))
        raise ValueError(f"Half-level pressures must increase downward (layer {bad} has dp={dp[bad]}).")

    vmr_h2o = q * (M_dry / M_h2o)
    vmr_dry = 1.0 - vmr_h2o
    mass = vmr_dry * _M_DRY_MOLEC + vmr_h2o * _M_H2O_MOLEC
    vcd_dry = vmr_dry * dp / (mass * gravity * _AREA_CM2)
    vcd_h2o = vmr_h2o * dp / (mass * gravity * _AREA_CM2)

    for name, value in (("vcd_dry", vcd_dry), ("vcd_h2o", vcd_h2o)):
        if np.any(~np.isfinite(value)) or np.any(value < 0.0):
            raise ValueError(f"Computed {name} contains non-finite or negative values.")
    return vmr_h2o, vcd_dry, vcd_h2o


def _build_profile(lat, lon, p_half, T, q, gravity) -> AtmosphericProfile:
    p_half = np.asarray(p_half, dtype=np.float64)
    T = np.asarray(T, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    if p_half.ndim != 1 or T.ndim != 1 or p_half.shape[0] != T.shape[0] + 1:
        raise ValueError(f"Need nlay + 1 half levels for nlay layers (got {p_half.shape}, {T.shape}).")
    if q.shape != T.shape:
        raise ValueError(f"q shape {q.shape} does not match T shape {T.shape}.")
    if np.any(~np.isfinite(T)) or np.any(T <= 0.0):
        raise ValueError("Layer temperatures must be finite and > 0 K.")

    p = 0.5 * (p_half[1:] + p_half[:-1])
    g = layer_gravity(gravity, lat, p_half, p, T)
    vmr_h2o, vcd_dry, vcd_h2o = column_densities(p_half, q, g)
    return AtmosphericProfile(
        lat=float(lat),
        lon=float(lon),
        psurf=float(p_half[-1]),
        T=T,
        q=q,
        p=p,
        p_half=p_half,
        vmr_h2o=vmr_h2o,
        vcd_dry=vcd_dry,
        vcd_h2o=vcd_h2o,
        gravity=g,
    )


def read_atmos_profile(
    met: MetFields,
    lat: float,
    lon: float,
    time_index: int,
    gravity: Union[str, float] = "constant",
) -> AtmosphericProfile:
    """Nearest-cell column from gridded met fields.

    Parameters
    ----------
    met : MetFields
        Gridded fields, see `read_met.read_met_h5`.
    lat, lon : float
        Target location in degrees; the nearest grid cell is used.
    time_index : int
        0-based time slot, must satisfy 0 <= time_index < met.n_time.
    gravity : str or float
        Gravity scheme name or a fixed value in m s^-2.

    Returns
    -------
    AtmosphericProfile
    """
    time_index = int(time_index)
    if not 0 <= time_index < met.n_time:
        raise ValueError(f"time_index {time_index} outside [0, {met.n_time}).")

    i_lat = int(np.argmin(np.abs(met.lat - lat)))
    i_lon = int(np.argmin(np.abs(met.lon - lon)))

    T = met.T[time_index, :, i_lat, i_lon]
    q = met.q[time_index, :, i_lat, i_lon]
    psurf = float(met.ps[time_index, i_lat, i_lon])
    p_half = met.a + met.b * psurf

    profile = _build_profile(lat, lon, p_half, T, q, gravity)
    print(f"[Profile] Cell ({met.lat[i_lat]:.3f}, {met.lon[i_lon]:.3f}) t={time_index}: "
          f"{profile.n_layers} layers, psurf={psurf:.1f} Pa")
    return profile


def flat_profile(
    p_half,
    T,
    q=None,
    lat: float = 0.0,
    lon: float = 0.0,
    gravity: Union[str, float] = "constant",
) -> AtmosphericProfile:
    """Profile from explicit half-level pressures (Pa), temperatures and humidity."""
    T = np.atleast_1d(np.asarray(T, dtype=np.float64))
    if q is None:
        q = np.zeros_like(T)
    q = np.broadcast_to(np.asarray(q, dtype=np.float64), T.shape)
    return _build_profile(lat, lon, p_half, T, q, gravity)


def total_dry_column(profile: AtmosphericProfile, gravity: Optional[float] = None) -> float:
    """Dry-air column (molecules cm^-2) from the total pressure difference.

    Uses the layer gravities of `profile`, or a single value if given, and
    assumes the column is entirely dry air.
    """
    dp = np.diff(profile.p_half)
    g = profile.gravity if gravity is None else np.full(dp.shape, float(gravity))
    return float(np.sum(dp / g) / (_M_DRY_MOLEC * _AREA_CM2))
