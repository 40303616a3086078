"""
run_forward.py
==============
"""

import os
import time
import argparse
from pathlib import Path
from typing import List, Optional

import numpy as np

from .help_print import format_duration


__all__ = [
    "main",
    "uniform_grid",
]


def uniform_grid(node) -> np.ndarray:
    """Inclusive uniform grid from a {nu_min, nu_max, dnu} config node."""
    nu_min = float(node.nu_min)
    nu_max = float(node.nu_max)
    dnu = float(node.dnu)
    if dnu <= 0.0 or nu_max <= nu_min:
        raise ValueError(f"Invalid grid: nu_min={nu_min}, nu_max={nu_max}, dnu={dnu}")
    n = int(round((nu_max - nu_min) / dnu)) + 1
    return np.linspace(nu_min, nu_min + (n - 1) * dnu, n)


def _build_profile(cfg, exp_dir: Path):
    from .read_yaml import resolve_path
    from .vert_profile import flat_profile, read_atmos_profile

    prof = cfg.profile
    gravity = getattr(prof, "gravity", "constant")
    met_file = getattr(prof, "met_file", None)
    if met_file:
        from .read_met import read_met_h5
        met = read_met_h5(resolve_path(met_file, exp_dir))
        return read_atmos_profile(
            met,
            float(prof.lat),
            float(prof.lon),
            int(getattr(prof, "time_index", 0)),
            gravity=gravity,
        )
    # Synthetic column given directly in the config
    if getattr(prof, "p_half", None) is None or getattr(prof, "T", None) is None:
        raise KeyError("profile needs either met_file or explicit p_half and T")
    return flat_profile(
        prof.p_half,
        prof.T,
        getattr(prof, "q", None),
        lat=float(getattr(prof, "lat", 0.0)),
        lon=float(getattr(prof, "lon", 0.0)),
        gravity=gravity,
    )


def _build_models(cfg, nu: np.ndarray, exp_dir: Path):
    from .opacity_line import LineShapeModel
    from .partition_fn import read_partition_table
    from .read_hitran import read_hitran_par
    from .read_yaml import resolve_path

    models = []
    for gas in cfg.gases:
        cutoff = float(getattr(gas, "wing_cutoff", 40.0))
        iso = getattr(gas, "isotope_id", None)
        lines = read_hitran_par(
            resolve_path(gas.par, exp_dir),
            int(gas.molecule_id),
            None if iso is None else int(iso),
            float(nu[0]) - cutoff,
            float(nu[-1]) + cutoff,
        )
        partition = None
        q_file = getattr(gas, "partition_file", None)
        if q_file:
            partition = read_partition_table(resolve_path(q_file, exp_dir))
        models.append(
            LineShapeModel(
                kind=getattr(gas, "lineshape", "voigt"),
                lines=lines,
                wing_cutoff=cutoff,
                molecular_mass=getattr(gas, "molecular_mass", None),
                partition=partition,
                chunk_size=int(getattr(gas, "chunk_size", 256)),
            )
        )
    return models


def main(argv: Optional[List[str]] = None) -> None:
    """Run a forward simulation defined by a YAML configuration.

    Reads the profile and line lists, builds the cross-section tensor, the
    instrument and the forward model, evaluates the spectrum (and optionally
    the Jacobian) at the configured state and writes everything to HDF5.

    Returns
    -------
    None
    """

    # Start runtime counter
    t_start = time.perf_counter()

    # Format is --config /path/to/config.yaml
    p = argparse.ArgumentParser(prog="xsec-fm")
    p.add_argument("--config", required=True, help="Path to YAML config file")
    p.add_argument("--no-progress", action="store_true", help="Disable the layer progress bar")
    args = p.parse_args(argv)

    print("[info] Process ID: ", os.getpid())

    # Relative paths in the config resolve against its folder
    config_path = Path(args.config).resolve()
    exp_dir = config_path.parent

    from .read_yaml import read_yaml, resolve_path
    cfg = read_yaml(config_path)

    # Environment must be set before JAX picks a backend
    from .help_runtime import apply_runtime_env
    platform = apply_runtime_env(cfg)

    from .help_print import print_cfg
    print_cfg(cfg)

    from jax import config as jax_config
    jax_config.update("jax_enable_x64", True)
    if platform is not None:
        jax_config.update("jax_platforms", platform)

    import jax
    import jax.numpy as jnp

    print(f"[info] JAX backend: {jax.default_backend()} (requested {platform})")
    print(f"[info] JAX devices: {jax.local_device_count()} {jax.devices()}")

    nu = uniform_grid(cfg.grid)
    print(f"[info] Model grid: N={nu.size}, range=[{nu[0]:.4f}, {nu[-1]:.4f}] cm^-1")

    profile = _build_profile(cfg, exp_dir)
    models = _build_models(cfg, nu, exp_dir)

    from .build_xsec import compute_profile_cross_sections
    self_broadening = bool(getattr(cfg.forward, "self_broadening", False))
    tensor = compute_profile_cross_sections(
        profile, models, nu,
        progress=not args.no_progress,
        self_broadening=self_broadening,
    )

    from .instru_convolve import build_instrument
    inst = cfg.instrument
    nu_out = uniform_grid(inst.nu_out)
    instrument = build_instrument(
        float(inst.fwhm),
        nu,
        nu_out,
        n_sigma=float(getattr(inst, "n_sigma", 5.0)),
        boundary=str(getattr(inst, "boundary", "replicate")),
    )

    solar = None
    solar_file = getattr(cfg.forward, "solar", None)
    if solar_file:
        from .read_solar import read_solar_spectrum
        solar = read_solar_spectrum(resolve_path(solar_file, exp_dir), nu)

    from .state_vector import StateLayout
    fwd = cfg.forward
    gas_names = [str(g.name) for g in cfg.gases]
    poly_degree = int(getattr(fwd, "poly_degree", 0))
    layout = StateLayout(profile.n_layers, gas_names, poly_degree)

    column_basis = [str(getattr(g, "column", "dry")) for g in cfg.gases]
    vmr_init = [getattr(g, "vmr", 1.0 if c == "h2o" else 0.0) for g, c in zip(cfg.gases, column_basis)]
    poly_init = getattr(fwd, "poly_init", None)
    if poly_init is None:
        poly_init = [1.0] + [0.0] * poly_degree
    x0 = layout.from_columns(vmr_init, poly_init)

    from .build_model import simulate
    common = dict(
        solar=solar,
        air_mass_factor=float(getattr(fwd, "air_mass_factor", 1.0)),
        column_basis=column_basis,
        poly_basis=str(getattr(fwd, "poly_basis", "power")),
    )
    t_fm = time.perf_counter()
    spectrum = simulate(x0, tensor, profile, instrument, nu, layout, **common)
    spectrum.block_until_ready()
    print(f"[info] Forward model took:", format_duration(time.perf_counter() - t_fm))

    out_cfg = getattr(cfg, "output", None)
    K = None
    if bool(getattr(out_cfg, "jacobian", True)):
        from .jacobian import jacobian
        t_jac = time.perf_counter()
        K = jacobian(x0, tensor, profile, instrument, nu, layout, **common)
        K.block_until_ready()
        print(f"[info] Jacobian {tuple(K.shape)} took:", format_duration(time.perf_counter() - t_jac))

    from .help_io import save_outputs
    out_path = resolve_path(getattr(out_cfg, "path", "forward_out.h5"), exp_dir)
    save_outputs(
        out_path,
        nu=nu,
        nu_out=nu_out,
        cross_sections=np.asarray(tensor),
        spectrum=np.asarray(spectrum),
        jacobian=None if K is None else np.asarray(K),
        state=np.asarray(jnp.asarray(x0)),
        state_labels=layout.labels(),
        gas_names=gas_names,
        profile=profile,
    )

    # Print overall runtime
    t_end = time.perf_counter()
    print(f"[done] Full model took:", format_duration(t_end - t_start))

# Calling function
if __name__ == "__main__":
    main()
