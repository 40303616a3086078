"""
xsec_fm
=======

Line-by-line absorption cross sections, a layered direct-path forward model
and its Jacobian, written in JAX.
"""

from jax import config as jax_config

# Column densities (~1e25 cm^-2) times cross sections (~1e-26 cm^2) need double precision
jax_config.update("jax_enable_x64", True)

__version__ = "0.1.0"
