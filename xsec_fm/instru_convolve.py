"""
instru_convolve.py
==================

Overview:
    Instrument line shape convolution and resampling onto the instrument
    output grid.

    The high-resolution spectrum is convolved with a normalised kernel
    sampled on the model grid (same-length output), then a natural cubic
    spline resamples the convolved spectrum onto `nu_out`.

Boundary policies:
    - "replicate" : edge values are repeated beyond the grid (default)
    - "zero"      : the spectrum is zero beyond the grid
    - "reflect"   : the spectrum is mirrored about the first/last sample
"""

from __future__ import annotations

from dataclasses import dataclass

import jax.numpy as jnp
import numpy as np

from .aux_functions import cubic_spline_1d
from .data_constants import fwhm_to_sigma

__all__ = [
    "BOUNDARY_MODES",
    "KernelInstrument",
    "build_gaussian_kernel",
    "build_instrument",
    "conv_spectra",
]

# Boundary policy -> jnp.pad mode
BOUNDARY_MODES = {
    "replicate": "edge",
    "zero": "constant",
    "reflect": "reflect",
}


def build_gaussian_kernel(fwhm: float, res: float, n_sigma: float = 5.0) -> np.ndarray:
    """Gaussian kernel sampled on a grid of spacing `res`, normalised to sum to 1.

    Parameters
    ----------
    fwhm : float
        Full width at half maximum, same units as `res`.
    res : float
        Grid spacing.
    n_sigma : float
        Half-extent of the kernel support in standard deviations.

    Returns
    -------
    kernel : `~numpy.ndarray`, shape (2 * extent + 1,)
        extent = ceil(n_sigma * fwhm / res / 2.3548).
    """
    if not np.isfinite(fwhm) or fwhm <= 0.0:
        raise ValueError(f"FWHM must be positive, got {fwhm}.")
    if not np.isfinite(res) or res <= 0.0:
        raise ValueError(f"Grid spacing must be positive, got {res}.")
    if n_sigma <= 0.0:
        raise ValueError(f"n_sigma must be positive, got {n_sigma}.")

    width = fwhm / res / fwhm_to_sigma
    extent = int(np.ceil(n_sigma * width))
    offsets = np.arange(-extent, extent + 1, dtype=np.float64)
    kernel = np.exp(-0.5 * (offsets / width) ** 2)
    return kernel / np.sum(kernel)


@dataclass(frozen=True)
class KernelInstrument:
    kernel: np.ndarray
    nu_out: np.ndarray
    boundary: str = "replicate"

    def __post_init__(self):
        kernel = np.array(self.kernel, dtype=np.float64).reshape(-1)
        nu_out = np.array(self.nu_out, dtype=np.float64).reshape(-1)
        if kernel.size % 2 != 1:
            raise ValueError(f"Kernel length must be odd, got {kernel.size}.")
        if np.any(~np.isfinite(kernel)) or abs(np.sum(kernel) - 1.0) > 1.0e-10:
            raise ValueError("Kernel must be finite and sum to 1.")
        if nu_out.size == 0 or (nu_out.size > 1 and np.any(np.diff(nu_out) <= 0.0)):
            raise ValueError("nu_out must be non-empty and strictly increasing.")
        key = str(self.boundary).strip().lower()
        if key not in BOUNDARY_MODES:
            raise NotImplementedError(
                f"Unknown boundary policy '{self.boundary}'. Options: {', '.join(BOUNDARY_MODES)}."
            )
        kernel.setflags(write=False)
        nu_out.setflags(write=False)
        object.__setattr__(self, "kernel", kernel)
        object.__setattr__(self, "nu_out", nu_out)
        object.__setattr__(self, "boundary", key)

    @property
    def half_width(self) -> int:
        return self.kernel.size // 2


def _convolve_same(spectrum: jnp.ndarray, kernel: np.ndarray, boundary: str) -> jnp.ndarray:
    extent = kernel.size // 2
    if extent == 0:
        return spectrum * kernel[0]
    padded = jnp.pad(spectrum, extent, mode=BOUNDARY_MODES[boundary])
    # Kernel is symmetric so convolution and correlation coincide
    return jnp.convolve(padded, jnp.asarray(kernel[::-1]), mode="valid")


def conv_spectra(instrument: KernelInstrument, nu, spectrum: jnp.ndarray) -> jnp.ndarray:
    """Convolve `spectrum` (on `nu`) with the instrument kernel and resample onto `nu_out`.

    Parameters
    ----------
    instrument : KernelInstrument
        Kernel, output grid and boundary policy.
    nu : array_like, shape (nnu,)
        Concrete, strictly increasing input grid in cm^-1.
    spectrum : `~jax.numpy.ndarray`, shape (nnu,)
        Spectrum on `nu`; may be traced.

    Returns
    -------
    resampled : `~jax.numpy.ndarray`, shape (nout,)
        Convolved spectrum at `instrument.nu_out`.
    """
    nu = np.asarray(nu, dtype=np.float64)
    if spectrum.shape != nu.shape:
        raise ValueError(f"Spectrum shape {spectrum.shape} does not match grid shape {nu.shape}.")
    if nu.size < 2:
        raise ValueError("Need at least two grid points to resample.")
    nu_out = instrument.nu_out
    if nu_out[0] < nu[0] or nu_out[-1] > nu[-1]:
        raise ValueError(
            f"Output grid [{nu_out[0]}, {nu_out[-1]}] lies outside the input grid [{nu[0]}, {nu[-1]}]."
        )
    if instrument.boundary == "reflect" and instrument.half_width >= nu.size:
        raise ValueError("Reflect boundary needs a grid longer than the kernel half width.")

    convolved = _convolve_same(jnp.asarray(spectrum), instrument.kernel, instrument.boundary)
    return cubic_spline_1d(jnp.asarray(nu_out), jnp.asarray(nu), convolved)


def build_instrument(
    fwhm: float,
    nu_in,
    nu_out,
    n_sigma: float = 5.0,
    boundary: str = "replicate",
) -> KernelInstrument:
    """Gaussian instrument for a uniform input grid `nu_in`."""
    nu_in = np.asarray(nu_in, dtype=np.float64)
    if nu_in.size < 2:
        raise ValueError("Input grid needs at least two points.")
    steps = np.diff(nu_in)
    res = float(np.mean(steps))
    if not np.allclose(steps, res, rtol=1.0e-6, atol=0.0):
        raise ValueError("Gaussian instrument needs a uniform input grid.")
    kernel = build_gaussian_kernel(fwhm, res, n_sigma)
    print(f"[Instrument] Gaussian FWHM={fwhm} cm^-1 on spacing {res:.3e}: {kernel.size} taps, "
          f"{np.asarray(nu_out).size} output points, boundary={boundary}")
    return KernelInstrument(kernel=kernel, nu_out=np.asarray(nu_out, dtype=np.float64), boundary=boundary)
