'''
aux_functions.py
================
'''

from __future__ import annotations

import jax.numpy as jnp
import numpy as np
from jax import lax


__all__ = ['natural_spline_moments', 'cubic_spline_1d', 'rescale_x', 'poly_basis_matrix']


def _solve_tridiagonal(a: jnp.ndarray, b: jnp.ndarray, c: jnp.ndarray, d: jnp.ndarray) -> jnp.ndarray:
    """Thomas algorithm for a tridiagonal system (sub-diagonal `a`, diagonal `b`, super-diagonal `c`).

    `a[0]` and `c[-1]` are ignored.
    """

    def _forward(carry, row):
        c_prev, d_prev = carry
        a_i, b_i, c_i, d_i = row
        denom = b_i - a_i * c_prev
        c_new = c_i / denom
        d_new = (d_i - a_i * d_prev) / denom
        return (c_new, d_new), (c_new, d_new)

    zero = jnp.zeros((), dtype=d.dtype)
    _, (c_star, d_star) = lax.scan(_forward, (zero, zero), (a, b, c, d))

    def _backward(x_next, row):
        c_i, d_i = row
        x_i = d_i - c_i * x_next
        return x_i, x_i

    _, x = lax.scan(_backward, zero, (c_star, d_star), reverse=True)
    return x


def natural_spline_moments(x_nodes: jnp.ndarray, y_nodes: jnp.ndarray) -> jnp.ndarray:
    """Second derivatives of the natural cubic spline through (x_nodes, y_nodes).

    Parameters
    ----------
    x_nodes : `~jax.numpy.ndarray`
        1D array of strictly increasing node positions with shape (N,), N >= 2.
    y_nodes : `~jax.numpy.ndarray`
        1D array of values at the nodes with shape (N,).

    Returns
    -------
    M : `~jax.numpy.ndarray`
        Second derivatives at the nodes with shape (N,); M[0] = M[-1] = 0.
        The moments are linear in `y_nodes`, so derivatives propagate exactly.
    """
    x_nodes = jnp.asarray(x_nodes)
    y_nodes = jnp.asarray(y_nodes)
    n = x_nodes.shape[0]
    if n < 3:
        return jnp.zeros_like(y_nodes)

    h = jnp.diff(x_nodes)
    slope = jnp.diff(y_nodes) / h
    rhs = 6.0 * (slope[1:] - slope[:-1])
    sub = h[:-1]
    diag = 2.0 * (h[:-1] + h[1:])
    sup = h[1:]
    interior = _solve_tridiagonal(sub, diag, sup, rhs)
    zero = jnp.zeros((1,), dtype=interior.dtype)
    return jnp.concatenate([zero, interior, zero])


def cubic_spline_1d(x: jnp.ndarray,
                    x_nodes: jnp.ndarray,
                    y_nodes: jnp.ndarray) -> jnp.ndarray:
    """Natural cubic spline interpolation.

    Parameters
    ----------
    x : `~jax.numpy.ndarray`
        Positions at which to evaluate the spline. Must lie inside
        [x_nodes[0], x_nodes[-1]]; callers check this on the host.
    x_nodes : `~jax.numpy.ndarray`
        1D array of strictly increasing node positions with shape (N,).
    y_nodes : `~jax.numpy.ndarray`
        1D array of node values with shape (N,).

    Returns
    -------
    y : `~jax.numpy.ndarray`
        Interpolated values with the same shape as `x`.
    """
    x = jnp.asarray(x)
    x_nodes = jnp.asarray(x_nodes)
    y_nodes = jnp.asarray(y_nodes)
    m_nodes = natural_spline_moments(x_nodes, y_nodes)

    nseg = x_nodes.shape[0] - 1
    idx = jnp.searchsorted(x_nodes, x, side="right") - 1
    idx = jnp.clip(idx, 0, nseg - 1)

    x0 = x_nodes[idx]
    x1 = x_nodes[idx + 1]
    y0 = y_nodes[idx]
    y1 = y_nodes[idx + 1]
    m0 = m_nodes[idx]
    m1 = m_nodes[idx + 1]
    h = x1 - x0

    left = x1 - x
    right = x - x0
    return (
        m0 * left**3 / (6.0 * h)
        + m1 * right**3 / (6.0 * h)
        + (y0 / h - m0 * h / 6.0) * left
        + (y1 / h - m1 * h / 6.0) * right
    )


def rescale_x(a) -> jnp.ndarray:
    """Shift and scale an increasing abscissa so it spans [-1, 1] around its mean."""
    a = jnp.asarray(a)
    a = a - jnp.mean(a)
    return a / (a[-1] - a[0]) * 2.0


def poly_basis_matrix(x, degree: int, kind: str = "power") -> np.ndarray:
    """Columns of the polynomial basis evaluated at `x`, shape (len(x), degree + 1).

    kind = "power" gives x^k, kind = "legendre" gives P_k(x).
    """
    x = np.asarray(x, dtype=np.float64)
    if degree < 0:
        raise ValueError(f"Polynomial degree must be >= 0, got {degree}.")
    key = str(kind).strip().lower()
    if key == "power":
        return np.vander(x, degree + 1, increasing=True)
    if key == "legendre":
        return np.polynomial.legendre.legvander(x, degree)
    raise NotImplementedError(f"Unknown polynomial basis '{kind}'. Options: power, legendre.")
