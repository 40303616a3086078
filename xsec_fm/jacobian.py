"""
jacobian.py
===========

Overview:
    Derivatives of the simulated spectrum with respect to the flat state
    vector, shape (n_out, n_state).

    - jacobian / build_jacobian : forward-mode automatic differentiation
      (`jax.jacfwd`), one JVP per state entry
    - finite_difference_jacobian : centred differences, used to validate the
      automatic derivatives
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

import jax
import jax.numpy as jnp
import numpy as np

from .build_model import StateLike, build_forward_model, validate_state
from .instru_convolve import KernelInstrument
from .state_vector import StateLayout
from .vert_profile import AtmosphericProfile

__all__ = [
    "build_jacobian",
    "jacobian",
    "finite_difference_jacobian",
]


def build_jacobian(forward_model: Callable[[jnp.ndarray], jnp.ndarray]) -> Callable[[jnp.ndarray], jnp.ndarray]:
    """JIT-compiled `x -> d forward_model / dx` via forward-mode AD."""
    return jax.jit(jax.jacfwd(forward_model))


def jacobian(
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
    """Jacobian of the forward model at `state`.

    Parameters
    ----------
    state : StateVector or array_like
        Linearisation point, validated like `simulate`.
    tensor, profile, instrument, nu_grid, layout, solar, air_mass_factor, column_basis, poly_basis
        Forward model inputs, see `build_model.build_forward_model`.

    Returns
    -------
    K : `~jax.numpy.ndarray`, shape (len(instrument.nu_out), layout.size)
        Columns follow the flat state order of `layout`.
    """
    x = validate_state(layout, state)
    fm = build_forward_model(
        tensor, profile, instrument, nu_grid, layout,
        solar=solar, air_mass_factor=air_mass_factor,
        column_basis=column_basis, poly_basis=poly_basis,
    )
    return build_jacobian(fm)(jnp.asarray(x))


def finite_difference_jacobian(
    forward_model: Callable[[jnp.ndarray], jnp.ndarray],
    x,
    rel_step: float = 1.0e-6,
    abs_step: float = 1.0e-12,
) -> np.ndarray:
    """Centred finite-difference Jacobian.

    The step of entry j is h_j = max(rel_step * |x_j|, abs_step).
    """
    x = np.asarray(x, dtype=np.float64).reshape(-1)
    f0 = np.asarray(forward_model(jnp.asarray(x)))
    K = np.zeros((f0.shape[0], x.shape[0]))
    for j in range(x.shape[0]):
        h = max(rel_step * abs(x[j]), abs_step)
        x_plus = x.copy()
        x_minus = x.copy()
        x_plus[j] += h
        x_minus[j] -= h
        f_plus = np.asarray(forward_model(jnp.asarray(x_plus)))
        f_minus = np.asarray(forward_model(jnp.asarray(x_minus)))
        K[:, j] = (f_plus - f_minus) / (2.0 * h)
    return K
