"""
lineshape_kernels.py
====================

Overview:
    Area-normalised line-shape kernels (units of 1/cm^-1) evaluated on
    wavenumber offsets from the line centre.

    - doppler_profile : Gaussian with HWHM alpha_D
    - lorentz_profile : Cauchy with HWHM gamma_L
    - voigt_profile   : Re w(z) / (sigma sqrt(2 pi)) with the complex probability
      function w(z) = exp(-z^2) erfc(-iz) from `faddeeva`

    `faddeeva` splits the upper half plane into three regions:

    - |x| + y >= 15        : six-term asymptotic series
    - y < 1e-3 (and inner) : expansion about the real axis to third order in
                             y, built from exp(-x^2) and the Dawson function
                             D(x) = sqrt(pi) / 2 Im w(x)
    - otherwise            : Weideman's rational approximation with N = 64
                             terms (SIAM J. Numer. Anal. 31, 1497, 1994)

    The real-axis expansion keeps Re w relatively accurate in the near wings
    of very narrow Lorentz widths, where Re w ~ y / (sqrt(pi) x^2) is many
    orders below |w|.
"""

from __future__ import annotations

import math

import jax.numpy as jnp
import numpy as np

__all__ = [
    "faddeeva",
    "doppler_profile",
    "lorentz_profile",
    "voigt_profile",
    "PROFILE_KERNELS",
]

_SQRT_PI = math.sqrt(math.pi)
_SQRT_2 = math.sqrt(2.0)
_SQRT_2PI = math.sqrt(2.0 * math.pi)
_LN2 = math.log(2.0)
_SQRT_2LN2 = math.sqrt(2.0 * _LN2)


def _weideman_coefficients(n: int) -> tuple[np.ndarray, float]:
    """Polynomial coefficients (highest degree first) and scale L of the N-term expansion."""
    m = 2 * n
    L = math.sqrt(n / math.sqrt(2.0))
    theta = np.arange(-m + 1, m) * np.pi / m
    t = L * np.tan(theta / 2.0)
    f = np.concatenate([[0.0], np.exp(-t * t) * (L * L + t * t)])
    a = np.real(np.fft.fft(np.fft.fftshift(f))) / (2 * m)
    return a[1 : n + 1][::-1].copy(), L


_WEIDEMAN_N = 64
_WEIDEMAN_A, _WEIDEMAN_L = _weideman_coefficients(_WEIDEMAN_N)

# (2k-1)!! / 2^k for k = 0..5
_ASYMPTOTIC = (1.0, 0.5, 0.75, 1.875, 6.5625, 29.53125)

_FAR_FIELD = 15.0
_NEAR_AXIS = 1.0e-3
# Width ratios y = gamma_L / (sigma sqrt 2) at which the Voigt kernel switches
# to its closed-form limits
_Y_DOPPLER = 1.0e-10
_Y_LORENTZ = 1.0e6


def _weideman(z):
    iz = 1j * z
    denom = _WEIDEMAN_L - iz
    Z = (_WEIDEMAN_L + iz) / denom
    p = jnp.polyval(_WEIDEMAN_A, Z)
    return 2.0 * p / (denom * denom) + (1.0 / _SQRT_PI) / denom


def _near_axis(x, y):
    # Taylor series of w about the real axis: Re w = u - y v' - y^2 u''/2 + y^3 v'''/6,
    # Im w = v + y u' - y^2 v''/2 with u = exp(-x^2) and v = 2 D(x) / sqrt(pi)
    w_axis = _weideman(x + 0.0j)
    dawson = 0.5 * _SQRT_PI * jnp.imag(w_axis)
    gauss = jnp.exp(-x * x)
    x2 = x * x

    d1 = 1.0 - 2.0 * x * dawson
    d2 = -2.0 * x + (4.0 * x2 - 2.0) * dawson
    d3 = 4.0 * x2 - 4.0 + (12.0 * x - 8.0 * x2 * x) * dawson

    wr = gauss * (1.0 + y * y * (1.0 - 2.0 * x2)) - (2.0 / _SQRT_PI) * (y * d1 - y ** 3 * d3 / 6.0)
    wi = (2.0 / _SQRT_PI) * (dawson - 0.5 * y * y * d2) - 2.0 * x * y * gauss
    return wr, wi


def _asymptotic(x, y, far):
    # Unused lanes get z = 1 so the series never divides by zero
    z = jnp.where(far, x + 1j * y, 1.0 + 0.0j)
    inv_z2 = 1.0 / (z * z)
    total = jnp.zeros_like(z)
    power = jnp.ones_like(z)
    for coeff in _ASYMPTOTIC:
        total = total + coeff * power
        power = power * inv_z2
    w = 1j * total / (_SQRT_PI * z)
    return jnp.real(w), jnp.imag(w)


def faddeeva(x: jnp.ndarray, y: jnp.ndarray):
    """Complex probability function w(x + iy) for y >= 0.

    Parameters
    ----------
    x : `~jax.numpy.ndarray`
        Real part of the argument.
    y : `~jax.numpy.ndarray`
        Imaginary part (>= 0), broadcastable against `x`.

    Returns
    -------
    wr, wi : `~jax.numpy.ndarray`
        Real (Voigt function K) and imaginary (L) parts of w, both to better
        than 1e-6 relative accuracy.
    """
    x, y = jnp.broadcast_arrays(jnp.asarray(x, dtype=float), jnp.asarray(y, dtype=float))
    far = (jnp.abs(x) + y) >= _FAR_FIELD
    near_axis = (~far) & (y < _NEAR_AXIS)

    w_inner = _weideman(jnp.where(far, 0.0, x) + 1j * jnp.where(far, 1.0, y))
    wr_axis, wi_axis = _near_axis(jnp.where(far, 0.0, x), jnp.where(near_axis, y, 0.0))
    wr_far, wi_far = _asymptotic(x, y, far)

    wr = jnp.where(far, wr_far, jnp.where(near_axis, wr_axis, jnp.real(w_inner)))
    wi = jnp.where(far, wi_far, jnp.where(near_axis, wi_axis, jnp.imag(w_inner)))
    return wr, wi


def doppler_profile(dnu: jnp.ndarray, alpha_d, gamma_l=None) -> jnp.ndarray:
    """Gaussian line shape with half width at half maximum `alpha_d`."""
    del gamma_l
    return (math.sqrt(_LN2 / math.pi) / alpha_d) * jnp.exp(-_LN2 * (dnu / alpha_d) ** 2)


def lorentz_profile(dnu: jnp.ndarray, alpha_d, gamma_l) -> jnp.ndarray:
    """Cauchy line shape with half width at half maximum `gamma_l`."""
    del alpha_d
    return gamma_l / (math.pi * (dnu * dnu + gamma_l * gamma_l))


def voigt_profile(dnu: jnp.ndarray, alpha_d, gamma_l) -> jnp.ndarray:
    """Voigt line shape from the Doppler HWHM `alpha_d` and Lorentz HWHM `gamma_l`.

    Falls back to the exact Gaussian when y < 1e-10 and to the exact
    Lorentzian when y > 1e6, where y = gamma_l / (sigma sqrt 2) and
    sigma = alpha_d / sqrt(2 ln 2).
    """
    dnu = jnp.asarray(dnu, dtype=float)
    alpha_d = jnp.asarray(alpha_d, dtype=float)
    gamma_l = jnp.asarray(gamma_l, dtype=float)

    sigma = alpha_d / _SQRT_2LN2
    scale = sigma * _SQRT_2
    pure_doppler = gamma_l <= _Y_DOPPLER * scale
    pure_lorentz = gamma_l > _Y_LORENTZ * scale

    sigma_safe = jnp.where(sigma > 0.0, sigma, 1.0)
    scale_safe = sigma_safe * _SQRT_2
    gamma_safe = jnp.where(gamma_l > 0.0, gamma_l, 1.0)
    alpha_safe = jnp.where(alpha_d > 0.0, alpha_d, 1.0)

    wr, _ = faddeeva(dnu / scale_safe, gamma_l / scale_safe)
    voigt = wr / (sigma_safe * _SQRT_2PI)

    return jnp.where(
        pure_doppler,
        doppler_profile(dnu, alpha_safe),
        jnp.where(pure_lorentz, lorentz_profile(dnu, alpha_d, gamma_safe), voigt),
    )


PROFILE_KERNELS = {
    "doppler": doppler_profile,
    "lorentz": lorentz_profile,
    "voigt": voigt_profile,
}
