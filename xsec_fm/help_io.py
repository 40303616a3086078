"""
help_io.py
==========

Overview:
    Writes forward-model products (grids, cross-section tensor, simulated
    spectrum, Jacobian, state) to a single HDF5 file and reads them back.
    Each dataset carries `units` and `axes` attributes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Sequence

import h5py
import numpy as np

__all__ = [
    "OUTPUT_META",
    "save_outputs",
    "load_outputs",
]

# dataset name -> (units, axes)
OUTPUT_META = {
    "nu": ("cm^-1", "nu"),
    "nu_out": ("cm^-1", "nu_out"),
    "cross_sections": ("cm^2 molecule^-1", "nu,layer,gas"),
    "spectrum": ("arbitrary", "nu_out"),
    "jacobian": ("arbitrary per state unit", "nu_out,state"),
    "state": ("vmr | polynomial coefficient", "state"),
    "p": ("Pa", "layer"),
    "T": ("K", "layer"),
    "vcd_dry": ("molecules cm^-2", "layer"),
    "vcd_h2o": ("molecules cm^-2", "layer"),
}


def save_outputs(
    path,
    nu,
    nu_out,
    cross_sections=None,
    spectrum=None,
    jacobian=None,
    state=None,
    state_labels: Optional[Sequence[str]] = None,
    gas_names: Optional[Sequence[str]] = None,
    profile=None,
) -> Path:
    """Save the available products to `path` (overwritten if present)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    datasets: Dict[str, Optional[np.ndarray]] = {
        "nu": nu,
        "nu_out": nu_out,
        "cross_sections": cross_sections,
        "spectrum": spectrum,
        "jacobian": jacobian,
        "state": state,
    }
    if profile is not None:
        for name in ("p", "T", "vcd_dry", "vcd_h2o"):
            datasets[name] = getattr(profile, name)

    with h5py.File(path, "w") as handle:
        for name, value in datasets.items():
            if value is None:
                continue
            dset = handle.create_dataset(name, data=np.asarray(value, dtype=np.float64))
            units, axes = OUTPUT_META[name]
            dset.attrs["units"] = units
            dset.attrs["axes"] = axes
        if state_labels is not None:
            handle.attrs["state_labels"] = [str(s) for s in state_labels]
        if gas_names is not None:
            handle.attrs["gas_names"] = [str(g) for g in gas_names]

    print(f"[info] Outputs saved -> {path}")
    return path


def load_outputs(path) -> Dict[str, object]:
    """Read every dataset and the label attributes of a file written by `save_outputs`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Output file not found: {path}")
    out: Dict[str, object] = {}
    with h5py.File(path, "r") as handle:
        for name in handle.keys():
            out[name] = np.asarray(handle[name][()])
        for key in ("state_labels", "gas_names"):
            if key in handle.attrs:
                out[key] = [v.decode() if isinstance(v, bytes) else str(v) for v in handle.attrs[key]]
    return out
