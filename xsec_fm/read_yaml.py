"""
read_yaml.py
============

Overview:
    Reads the YAML configuration file and turns it into a dot namespace for easy accessability.
"""

from pathlib import Path
from types import SimpleNamespace
from typing import Iterable, Optional

import yaml

__all__ = [
    "REQUIRED_SECTIONS",
    "read_yaml",
    "require_sections",
    "resolve_path",
]

REQUIRED_SECTIONS = ("grid", "profile", "gases", "instrument", "forward")


def _to_ns(x):
    if isinstance(x, list):
        return [_to_ns(v) for v in x]
    if isinstance(x, dict):
        return SimpleNamespace(**{k: _to_ns(v) for k, v in x.items()})
    return x


def require_sections(cfg: SimpleNamespace, names: Iterable[str] = REQUIRED_SECTIONS) -> None:
    missing = [name for name in names if getattr(cfg, name, None) is None]
    if missing:
        raise KeyError(f"Config is missing required section(s): {', '.join(missing)}")


def read_yaml(path: Path, required: Optional[Iterable[str]] = REQUIRED_SECTIONS):
    '''
      Input: path to YAML configuration file.
      Output: Dot accessible namespace cfg with all YAML parameters
    '''
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    cfg = yaml.safe_load(path.read_text())
    if not isinstance(cfg, dict):
        raise ValueError(f"Config file {path} does not contain a YAML mapping.")

    cfg = _to_ns(cfg)
    if required:
        require_sections(cfg, required)
    return cfg


def resolve_path(value, base_dir: Optional[Path]) -> Path:
    '''
      Relative paths in the config are taken relative to the config file directory.
    '''
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = (Path(base_dir) if base_dir is not None else Path.cwd()) / path
    return path.resolve()
