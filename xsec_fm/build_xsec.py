"""
build_xsec.py
=============

Overview:
    Cross-section tensor of shape (n_nu, n_layer, n_gas) for a layered
    profile and a list of line-shape models. Layer columns are filled on the
    host and the tensor is moved to device once at the end.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

import jax.numpy as jnp
import numpy as np
import tqdm

from .opacity_line import LineShapeModel, cross_section
from .vert_profile import AtmosphericProfile

__all__ = [
    "compute_profile_cross_sections",
]

_H2O_ID = 1


def compute_profile_cross_sections(
    profile: AtmosphericProfile,
    models: Sequence[LineShapeModel],
    nu_grid,
    progress: bool = True,
    callback: Optional[Callable[[int, int], None]] = None,
    self_broadening: bool = False,
) -> jnp.ndarray:
    """Evaluate every model at every layer of `profile`.

    Parameters
    ----------
    profile : AtmosphericProfile
        Layer pressures (Pa) and temperatures (K).
    models : sequence of LineShapeModel
        One entry per gas; the gas axis follows this order.
    nu_grid : array_like, shape (nnu,)
        Wavenumber grid in cm^-1.
    progress : bool
        Show a tqdm bar over layers.
    callback : callable, optional
        Called as ``callback(i_layer, n_layers)`` after each finished layer.
    self_broadening : bool
        Weight gamma_self by the layer H2O VMR for H2O models.

    Returns
    -------
    sigma : `~jax.numpy.ndarray`, shape (nnu, nlay, ngas)
        Cross sections in cm^2 molecule^-1.
    """
    models = list(models)
    if not models:
        raise ValueError("At least one line-shape model is required.")
    nu = np.asarray(nu_grid, dtype=np.float64)
    n_layers = profile.n_layers
    n_gas = len(models)

    for j, model in enumerate(models):
        if len(model.lines.restrict(nu[0] - model.wing_cutoff, nu[-1] + model.wing_cutoff)) == 0:
            print(f"[warn] Gas {j} (molecule {model.lines.molecule_id}) has no lines near the grid; "
                  f"its cross sections are zero.")

    print(f"[XSec] Computing cross sections: {nu.size} wavenumbers x {n_layers} layers x {n_gas} gases")
    sigma = np.zeros((nu.size, n_layers, n_gas), dtype=np.float64)
    layers = tqdm.tqdm(range(n_layers), desc="Layers", unit=" layer", disable=not progress)
    for i in layers:
        p_hPa = float(profile.p[i]) / 100.0
        T = float(profile.T[i])
        for j, model in enumerate(models):
            vmr_self = 0.0
            if self_broadening and model.lines.molecule_id == _H2O_ID:
                vmr_self = float(profile.vmr_h2o[i])
            sigma[:, i, j] = np.asarray(cross_section(model, nu, p_hPa, T, vmr_self=vmr_self))
        if callback is not None:
            callback(i, n_layers)

    print(f"[XSec] Tensor shape {sigma.shape}, max {sigma.max():.3e} cm^2/molecule")
    return jnp.asarray(sigma)
