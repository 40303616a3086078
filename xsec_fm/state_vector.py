"""
state_vector.py
===============

Overview:
    Layout of the flat retrieval state vector.

    Flat order (gas-major):
        [gas_0 layer_0 .. layer_{L-1}, gas_1 layer_0 .. layer_{L-1}, ...,
         c_0, c_1, ..., c_d]
    i.e. one contiguous block of per-layer VMRs per gas, in `gas_names`
    order, followed by the d + 1 polynomial coefficients (constant term
    first).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Tuple

import jax.numpy as jnp
import numpy as np

__all__ = [
    "StateVector",
    "StateLayout",
]


class StateVector(NamedTuple):
    vmr: jnp.ndarray    # (n_layers, n_gas)
    poly: jnp.ndarray   # (poly_degree + 1,)


@dataclass(frozen=True)
class StateLayout:
    n_layers: int
    gas_names: Tuple[str, ...]
    poly_degree: int

    def __post_init__(self):
        object.__setattr__(self, "gas_names", tuple(str(g) for g in self.gas_names))
        if int(self.n_layers) < 1:
            raise ValueError(f"n_layers must be >= 1, got {self.n_layers}.")
        if not self.gas_names:
            raise ValueError("At least one gas is required.")
        if len(set(self.gas_names)) != len(self.gas_names):
            raise ValueError(f"Gas names must be unique: {self.gas_names}.")
        if int(self.poly_degree) < 0:
            raise ValueError(f"poly_degree must be >= 0, got {self.poly_degree}.")
        object.__setattr__(self, "n_layers", int(self.n_layers))
        object.__setattr__(self, "poly_degree", int(self.poly_degree))

    @property
    def n_gas(self) -> int:
        return len(self.gas_names)

    @property
    def n_vmr(self) -> int:
        return self.n_layers * self.n_gas

    @property
    def n_poly(self) -> int:
        return self.poly_degree + 1

    @property
    def size(self) -> int:
        return self.n_vmr + self.n_poly

    def gas_slice(self, name: str) -> slice:
        """Slice of the flat vector holding the VMR block of `name`."""
        j = self.gas_names.index(name)
        return slice(j * self.n_layers, (j + 1) * self.n_layers)

    @property
    def poly_slice(self) -> slice:
        return slice(self.n_vmr, self.size)

    def labels(self) -> List[str]:
        """Human-readable name of each flat entry, in flat order."""
        names = [f"vmr_{gas}_{i}" for gas in self.gas_names for i in range(self.n_layers)]
        return names + [f"poly_c{k}" for k in range(self.n_poly)]

    def pack(self, state: StateVector) -> jnp.ndarray:
        vmr = jnp.asarray(state.vmr)
        poly = jnp.asarray(state.poly).reshape(-1)
        if vmr.shape != (self.n_layers, self.n_gas):
            raise ValueError(f"VMR block has shape {vmr.shape}, expected {(self.n_layers, self.n_gas)}.")
        if poly.shape != (self.n_poly,):
            raise ValueError(f"Polynomial block has length {poly.shape[0]}, expected {self.n_poly}.")
        return jnp.concatenate([vmr.T.reshape(-1), poly])

    def unpack(self, flat: jnp.ndarray) -> StateVector:
        flat = jnp.asarray(flat)
        if flat.shape != (self.size,):
            raise ValueError(f"State vector has shape {flat.shape}, expected ({self.size},).")
        vmr = flat[: self.n_vmr].reshape(self.n_gas, self.n_layers).T
        return StateVector(vmr=vmr, poly=flat[self.n_vmr:])

    def from_columns(self, vmr_by_gas: Sequence, poly: Sequence[float]) -> jnp.ndarray:
        """Flat vector from one VMR profile (or scalar) per gas plus coefficients."""
        if len(vmr_by_gas) != self.n_gas:
            raise ValueError(f"Need {self.n_gas} VMR entries, got {len(vmr_by_gas)}.")
        columns = [np.broadcast_to(np.asarray(v, dtype=np.float64), (self.n_layers,)) for v in vmr_by_gas]
        vmr = np.stack(columns, axis=1)
        return self.pack(StateVector(vmr=jnp.asarray(vmr), poly=jnp.asarray(poly, dtype=jnp.float64)))
