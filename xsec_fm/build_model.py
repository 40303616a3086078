"""
build_model.py
==============
"""

from __future__ import annotations
from typing import Callable, Optional, Sequence, Union

import jax
import jax.numpy as jnp
import numpy as np

from .aux_functions import poly_basis_matrix, rescale_x
from .instru_convolve import KernelInstrument, conv_spectra
from .state_vector import StateLayout, StateVector
from .vert_profile import AtmosphericProfile

__all__ = [
    'COLUMN_BASES',
    'column_basis_matrix',
    'validate_state',
    'build_forward_model',
    'simulate',
    'optical_depth_layers',
]

COLUMN_BASES = ("dry", "h2o")

StateLike = Union[StateVector, jnp.ndarray, np.ndarray, Sequence[float]]


def column_basis_matrix(
    profile: AtmosphericProfile,
    layout: StateLayout,
    column_basis: Optional[Sequence[str]] = None,
) -> np.ndarray:
    """Per-layer column multiplying each gas's state entries, shape (n_layers, n_gas).

    "dry" uses the dry-air VCD, so the state holds the dry VMR. "h2o" uses
    the water-vapour VCD, so the state scales the native humidity profile.
    """
    if column_basis is None:
        column_basis = ("dry",) * layout.n_gas
    column_basis = tuple(str(c).strip().lower() for c in column_basis)
    if len(column_basis) != layout.n_gas:
        raise ValueError(f"Need one column basis per gas ({layout.n_gas}), got {len(column_basis)}.")
    columns = []
    for gas, basis in zip(layout.gas_names, column_basis):
        if basis == "dry":
            columns.append(np.asarray(profile.vcd_dry, dtype=np.float64))
        elif basis == "h2o":
            columns.append(np.asarray(profile.vcd_h2o, dtype=np.float64))
        else:
            raise NotImplementedError(f"Unknown column basis '{basis}' for gas {gas}. Options: dry, h2o.")
    return np.stack(columns, axis=1)


def validate_state(layout: StateLayout, state: StateLike) -> np.ndarray:
    """Flat, concrete copy of `state` after the host-side contract checks."""
    if isinstance(state, StateVector):
        state = layout.pack(state)
    flat = np.asarray(state, dtype=np.float64).reshape(-1)
    if flat.shape[0] != layout.size:
        raise ValueError(
            f"State vector has length {flat.shape[0]}, expected {layout.size} "
            f"({layout.n_layers} layers x {layout.n_gas} gases + {layout.n_poly} coefficients)."
        )
    if np.any(~np.isfinite(flat)):
        raise ValueError("State vector contains non-finite values.")
    vmr = flat[: layout.n_vmr]
    if np.any(vmr < 0.0):
        bad = int(np.argmax(vmr < 0.0))
        raise ValueError(f"Negative VMR in state entry {layout.labels()[bad]} ({vmr[bad]}).")
    return flat


def _check_inputs(tensor, profile, nu_grid, layout, solar, air_mass_factor):
    nu = np.asarray(nu_grid, dtype=np.float64)
    n_nu = nu.shape[0]
    if tuple(tensor.shape) != (n_nu, layout.n_layers, layout.n_gas):
        raise ValueError(
            f"Cross-section tensor has shape {tuple(tensor.shape)}, expected "
            f"{(n_nu, layout.n_layers, layout.n_gas)} from the grid and state layout."
        )
    if profile.n_layers != layout.n_layers:
        raise ValueError(f"Profile has {profile.n_layers} layers, layout expects {layout.n_layers}.")
    if not np.isfinite(air_mass_factor) or air_mass_factor <= 0.0:
        raise ValueError(f"Air-mass factor must be positive, got {air_mass_factor}.")
    if solar is not None and np.asarray(solar).shape != (n_nu,):
        raise ValueError(f"Solar spectrum has shape {np.asarray(solar).shape}, expected ({n_nu},).")
    return nu


def build_forward_model(
    tensor: jnp.ndarray,
    profile: AtmosphericProfile,
    instrument: KernelInstrument,
    nu_grid,
    layout: StateLayout,
    solar: Optional[jnp.ndarray] = None,
    air_mass_factor: float = 1.0,
    column_basis: Optional[Sequence[str]] = None,
    poly_basis: str = "power",
) -> Callable[[jnp.ndarray], jnp.ndarray]:
    """Build a JIT-compiled direct-path forward model.

    Parameters
    ----------
    tensor : `~jax.numpy.ndarray`, shape (nnu, nlay, ngas)
        Cross sections in cm^2 molecule^-1.
    profile : AtmosphericProfile
        Supplies the dry/wet VCDs of each layer.
    instrument : KernelInstrument
        Kernel and output grid.
    nu_grid : array_like, shape (nnu,)
        High-resolution grid of `tensor`.
    layout : StateLayout
        Ordering of the flat state vector.
    solar : `~jax.numpy.ndarray`, optional
        Solar reference on `nu_grid`; a flat unit spectrum if omitted.
    air_mass_factor : float
        Slant-path enhancement of the vertical optical depth.
    column_basis : sequence of str, optional
        Per-gas "dry" (default) or "h2o", see `column_basis_matrix`.
    poly_basis : str
        "power" (sum c_k x^k) or "legendre" (sum c_k P_k(x)) on the rescaled
        output abscissa.

    Returns
    -------
    forward_model : callable
        `forward_model(x_flat) -> spectrum` of shape (len(instrument.nu_out),).

    Notes
    -----
    The pipeline is
        tau[nu] = sum_g sum_l sigma[nu, l, g] * vmr[l, g] * vcd[l, g]
        T[nu]   = exp(-AMF * tau[nu]) * solar[nu]
        I_out   = conv_spectra(instrument, nu, T) * P(x_out)
    Everything except the state vector is closed over as a constant, so the
    model is differentiable with respect to every state entry.
    """
    nu = _check_inputs(tensor, profile, nu_grid, layout, solar, air_mass_factor)
    vcd = jnp.asarray(column_basis_matrix(profile, layout, column_basis))
    sigma = jnp.asarray(tensor)
    solar_arr = jnp.ones(nu.shape) if solar is None else jnp.asarray(solar)
    amf = float(air_mass_factor)

    nu_out = np.asarray(instrument.nu_out)
    if nu_out.size > 1:
        x_out = np.asarray(rescale_x(nu_out))
    else:
        x_out = np.zeros(1)
    basis = jnp.asarray(poly_basis_matrix(x_out, layout.poly_degree, poly_basis))

    print(f"[info] Forward model: {nu.size} -> {nu_out.size} points, {layout.n_gas} gases x "
          f"{layout.n_layers} layers, {layout.n_poly} {poly_basis} coefficients, AMF={amf}")

    @jax.jit
    def forward_model(x: jnp.ndarray) -> jnp.ndarray:
        state = layout.unpack(x)

        # Vertical optical depth summed over layers and gases
        tau = jnp.einsum("nlg,lg->n", sigma, state.vmr * vcd)
        transmission = jnp.exp(-amf * tau) * solar_arr

        convolved = conv_spectra(instrument, nu, transmission)
        return convolved * (basis @ state.poly)

    return forward_model


def simulate(
    state: StateLike,
    tensor: jnp.ndarray,
    profile: AtmosphericProfile,
    instrument: KernelInstrument,
    nu_grid,
    layout: StateLayout,
    solar: Optional[jnp.ndarray] = None,
    air_mass_factor: float = 1.0,
    column_basis: Optional[Sequence[str]] = None,
    poly_basis: str = "power",
) -> jnp.ndarray:
    """One-shot forward evaluation for a `StateVector` or flat state."""
    x = validate_state(layout, state)
    fm = build_forward_model(
        tensor, profile, instrument, nu_grid, layout,
        solar=solar, air_mass_factor=air_mass_factor,
        column_basis=column_basis, poly_basis=poly_basis,
    )
    return fm(jnp.asarray(x))


def optical_depth_layers(
    state: StateLike,
    tensor: jnp.ndarray,
    profile: AtmosphericProfile,
    layout: StateLayout,
    column_basis: Optional[Sequence[str]] = None,
) -> jnp.ndarray:
    """Vertical optical depth of each layer and gas, shape (nnu, nlay, ngas)."""
    x = validate_state(layout, state)
    if tuple(tensor.shape[1:]) != (layout.n_layers, layout.n_gas):
        raise ValueError(f"Tensor shape {tuple(tensor.shape)} does not match the state layout.")
    vcd = jnp.asarray(column_basis_matrix(profile, layout, column_basis))
    vmr = layout.unpack(jnp.asarray(x)).vmr
    return jnp.asarray(tensor) * (vmr * vcd)[None, :, :]
