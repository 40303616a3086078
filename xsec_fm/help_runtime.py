"""
help_runtime.py
===============

Overview:
    Sets JAX/XLA environment variables from the optional `runtime` config
    section. Must run before JAX initialises a backend.
"""

import os

__all__ = ["apply_runtime_env"]


def apply_runtime_env(rc):
    """
    Apply optional rc.runtime settings *before* JAX picks a backend.

    Expected (all optional):

      runtime:
        platform: cpu | gpu | cuda | metal
        threads: 4
        cuda_visible_devices: "0" or "0,1"
        preallocate: true/false
        mem_fraction: 0.8

    Returns
    -------
    platform : str or None
        Normalised platform name, None without a runtime section.
    """
    rt = getattr(rc, "runtime", None)
    if rt is None:
        return None

    plat = str(getattr(rt, "platform", "cpu") or "cpu").lower()
    if plat == "gpu":
        # Rough heuristic: macOS -> metal, else cuda
        sysname = os.uname().sysname.lower() if hasattr(os, "uname") else ""
        plat = "metal" if "darwin" in sysname else "cuda"
    if plat not in ("cpu", "cuda", "metal", "rocm"):
        raise NotImplementedError(f"Unknown runtime.platform '{plat}'. Options: cpu, gpu, cuda, metal, rocm.")

    os.environ["JAX_PLATFORMS"] = plat

    if plat == "cpu":
        n_threads = int(getattr(rt, "threads", 1) or 1)
        os.environ["XLA_FLAGS"] = (
            f"--xla_cpu_multi_thread_eigen=true "
            f"intra_op_parallelism_threads={n_threads}"
        )
        print(f"[info] Platform: CPU ({n_threads} threads)")
    else:
        cvis = getattr(rt, "cuda_visible_devices", None)
        if cvis is not None:
            os.environ["CUDA_VISIBLE_DEVICES"] = str(cvis)
        print(f"[info] Platform: GPU ({plat}, CUDA_VISIBLE_DEVICES={os.environ.get('CUDA_VISIBLE_DEVICES', 'all')})")

    prealloc = getattr(rt, "preallocate", None)
    if prealloc is not None:
        os.environ["XLA_PYTHON_CLIENT_PREALLOCATE"] = "true" if prealloc else "false"

    memfrac = getattr(rt, "mem_fraction", None)
    if memfrac is not None:
        os.environ["XLA_PYTHON_CLIENT_MEM_FRACTION"] = str(memfrac)

    return plat
