"""
opacity_line.py
===============

Overview:
    Line-by-line absorption cross sections (cm^2 molecule^-1) of one gas at a
    single pressure and temperature.

    All per-line quantities (scaled intensities, widths, shifted centres) are
    computed on the host in NumPy. The accumulation over lines then runs on
    device as a `lax.scan` over fixed-size chunks of lines, so the memory
    footprint is O(chunk_size * n_nu) regardless of the line count.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Optional

import jax
import jax.numpy as jnp
import numpy as np
from jax import lax

from .data_constants import amu, c2, c_light, kb, molecule_entry, p_ref_hPa, T_ref
from .line_list import LineList
from .lineshape_kernels import PROFILE_KERNELS
from .partition_fn import default_partition

__all__ = [
    "LineShapeKind",
    "LineShapeModel",
    "line_strength",
    "doppler_hwhm",
    "lorentz_hwhm",
    "cross_section",
]


class LineShapeKind(str, Enum):
    DOPPLER = "doppler"
    LORENTZ = "lorentz"
    VOIGT = "voigt"

    @classmethod
    def from_name(cls, name) -> "LineShapeKind":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for kind in cls:
            if kind.value == key:
                return kind
        raise NotImplementedError(f"Unknown line shape '{name}'. Options: doppler, lorentz, voigt.")


@dataclass(frozen=True)
class LineShapeModel:
    """Line list plus everything needed to turn it into a cross section.

    Attributes
    ----------
    kind : LineShapeKind
        Profile used for every line.
    lines : LineList
        Transitions of a single molecule/isotope.
    wing_cutoff : float
        Lines contribute exactly zero further than this from their centre (cm^-1).
    molecular_mass : float, optional
        g mol^-1; defaults to the molecule table entry for `lines.molecule_id`.
    partition : object, optional
        Anything with a ``ratio(T) -> Q(T_ref)/Q(T)`` method.
    chunk_size : int
        Lines evaluated per scan step.
    """
    kind: LineShapeKind
    lines: LineList
    wing_cutoff: float = 40.0
    molecular_mass: Optional[float] = None
    partition: Optional[object] = None
    chunk_size: int = 256

    def __post_init__(self):
        object.__setattr__(self, "kind", LineShapeKind.from_name(self.kind))
        if not np.isfinite(self.wing_cutoff) or self.wing_cutoff <= 0.0:
            raise ValueError(f"wing_cutoff must be positive, got {self.wing_cutoff}.")
        if int(self.chunk_size) < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}.")
        object.__setattr__(self, "chunk_size", int(self.chunk_size))
        if self.molecular_mass is None:
            try:
                entry = molecule_entry(int(self.lines.molecule_id))
            except KeyError:
                raise ValueError(
                    f"No molecular mass known for molecule {self.lines.molecule_id}; pass molecular_mass."
                ) from None
            object.__setattr__(self, "molecular_mass", float(entry["molecular_weight"]))
        elif self.molecular_mass <= 0.0:
            raise ValueError(f"molecular_mass must be positive, got {self.molecular_mass}.")
        if self.partition is None:
            object.__setattr__(self, "partition", default_partition(self.lines.molecule_id))


def line_strength(model: LineShapeModel, temperature_K: float) -> np.ndarray:
    """Line intensities scaled from T_ref to `temperature_K` (HITRAN convention)."""
    lines = model.lines
    T = float(temperature_K)
    q_ratio = model.partition.ratio(T)
    boltz = np.exp(-c2 * lines.e_lower * (1.0 / T - 1.0 / T_ref))
    stim = np.expm1(-c2 * lines.nu / T) / np.expm1(-c2 * lines.nu / T_ref)
    return lines.intensity * q_ratio * boltz * stim


def doppler_hwhm(nu0, temperature_K: float, molecular_mass: float) -> np.ndarray:
    """Doppler HWHM in cm^-1 for line centres `nu0` and mass in g mol^-1."""
    mass_kg = molecular_mass * amu
    return np.asarray(nu0, dtype=float) / c_light * np.sqrt(
        2.0 * np.log(2.0) * kb * temperature_K / mass_kg
    )


def lorentz_hwhm(
    gamma_air,
    n_air,
    pressure_hPa: float,
    temperature_K: float,
    gamma_self=0.0,
    vmr_self: float = 0.0,
) -> np.ndarray:
    """Pressure-broadened HWHM in cm^-1."""
    gamma_air = np.asarray(gamma_air, dtype=float)
    gamma_ref = (1.0 - vmr_self) * gamma_air + vmr_self * np.asarray(gamma_self, dtype=float)
    return gamma_ref * (pressure_hPa / p_ref_hPa) * (T_ref / temperature_K) ** np.asarray(n_air, dtype=float)


@partial(jax.jit, static_argnames=("kind",))
def _accumulate_lines(nu, centres, strengths, alpha_d, gamma_l, wing_cutoff, kind):
    kernel = PROFILE_KERNELS[kind]

    def _step(acc, chunk):
        nu0, s, a, g = chunk
        dnu = nu[None, :] - nu0[:, None]
        shape = kernel(dnu, a[:, None], g[:, None])
        contrib = jnp.where(jnp.abs(dnu) <= wing_cutoff, s[:, None] * shape, 0.0)
        return acc + jnp.sum(contrib, axis=0), None

    acc, _ = lax.scan(_step, jnp.zeros_like(nu), (centres, strengths, alpha_d, gamma_l))
    # Rounding in the rational approximation can leave -1e-30 level residue
    return jnp.maximum(acc, 0.0)


def _chunked(values: np.ndarray, n_chunks: int, chunk: int, fill: float) -> jnp.ndarray:
    out = np.full(n_chunks * chunk, fill, dtype=np.float64)
    out[: values.shape[0]] = values
    return jnp.asarray(out.reshape(n_chunks, chunk))


def cross_section(
    model: LineShapeModel,
    nu_grid,
    pressure_hPa: float,
    temperature_K: float,
    vmr_self: float = 0.0,
) -> jnp.ndarray:
    """Absorption cross section of `model` on `nu_grid`.

    Parameters
    ----------
    model : LineShapeModel
        Lines and profile settings.
    nu_grid : array_like, shape (nnu,)
        Strictly increasing wavenumbers in cm^-1.
    pressure_hPa : float
        Layer pressure in hPa.
    temperature_K : float
        Layer temperature in K.
    vmr_self : float
        Volume mixing ratio of the absorber itself, weighting gamma_self.

    Returns
    -------
    sigma : `~jax.numpy.ndarray`, shape (nnu,)
        Cross sections in cm^2 molecule^-1, all >= 0.
    """
    nu = np.asarray(nu_grid, dtype=np.float64)
    if nu.ndim != 1 or nu.size == 0:
        raise ValueError("nu_grid must be a non-empty 1D array.")
    if nu.size > 1 and np.any(np.diff(nu) <= 0.0):
        raise ValueError("nu_grid must be strictly increasing.")
    p = float(pressure_hPa)
    T = float(temperature_K)
    if not np.isfinite(p) or p <= 0.0:
        raise ValueError(f"Pressure must be finite and > 0 hPa, got {pressure_hPa}.")
    if not np.isfinite(T) or T <= 0.0:
        raise ValueError(f"Temperature must be finite and > 0 K, got {temperature_K}.")
    if not 0.0 <= vmr_self <= 1.0:
        raise ValueError(f"vmr_self must lie in [0, 1], got {vmr_self}.")

    lines = model.lines.restrict(nu[0] - model.wing_cutoff, nu[-1] + model.wing_cutoff)
    if len(lines) == 0:
        return jnp.zeros(nu.shape)

    sub = LineShapeModel(
        kind=model.kind,
        lines=lines,
        wing_cutoff=model.wing_cutoff,
        molecular_mass=model.molecular_mass,
        partition=model.partition,
        chunk_size=model.chunk_size,
    )
    strengths = line_strength(sub, T)
    centres = lines.nu + lines.delta_air * (p / p_ref_hPa)
    alpha_d = doppler_hwhm(lines.nu, T, model.molecular_mass)
    gamma_l = lorentz_hwhm(lines.gamma_air, lines.n_air, p, T, lines.gamma_self, vmr_self)
    if model.kind is LineShapeKind.LORENTZ and np.any(gamma_l <= 0.0):
        raise ValueError("Lorentz profile needs strictly positive pressure widths.")

    chunk = min(model.chunk_size, len(lines))
    n_chunks = -(-len(lines) // chunk)
    # Padding lines carry zero intensity and unit widths
    return _accumulate_lines(
        jnp.asarray(nu),
        _chunked(centres, n_chunks, chunk, float(nu[0])),
        _chunked(strengths, n_chunks, chunk, 0.0),
        _chunked(alpha_d, n_chunks, chunk, 1.0),
        _chunked(gamma_l, n_chunks, chunk, 1.0),
        float(model.wing_cutoff),
        model.kind.value,
    )
