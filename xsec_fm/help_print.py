"""
help_print.py
=============

Overview:
    Console summaries of the configuration and run timings.
"""

from types import SimpleNamespace
from typing import Any, Dict, List

__all__ = [
    "format_duration",
    "print_cfg",
]


def format_duration(seconds: float) -> str:
    '''
      Input: Seconds
      Output: Seconds converted to Day, hour, min, second
    '''
    days, rem = divmod(seconds, 24 * 3600)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{int(days)}d {int(hours)}h {int(minutes)}m {seconds:.3f}s"


def _format_value(value: Any) -> str:
    if value is None:
        return "None"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, SimpleNamespace):
        entries = [f"{k}={_format_value(v)}" for k, v in vars(value).items()]
        return ", ".join(entries) if entries else "{}"
    if isinstance(value, dict):
        entries = [f"{k}={_format_value(v)}" for k, v in value.items()]
        return ", ".join(entries) if entries else "{}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if all(not isinstance(v, (list, tuple, dict, SimpleNamespace)) for v in value) and len(value) <= 5:
            return "[" + ", ".join(str(v) for v in value) + "]"
        return f"{len(value)} items"
    return str(value)


def _print_kv_table(title: str, data: Dict[str, Any]) -> None:
    """Print a simple key/value table."""
    print()
    print("=" * 60)
    print(title)
    print("=" * 60)

    if not data:
        print("(none)")
        return

    k_width = max(len(k) for k in data.keys())
    for k, v in data.items():
        print(f"{k.ljust(k_width)}  : {_format_value(v)}")


def _print_gas_table(gases: List[SimpleNamespace]) -> None:
    """One row per absorber."""
    print()
    print("=" * 60)
    print("GASES")
    print("=" * 60)

    if not gases:
        print("(no gases defined)")
        return

    all_keys = set()
    for gas in gases:
        all_keys.update(vars(gas).keys())
    preferred = ["name", "par", "molecule_id", "isotope_id", "lineshape"]
    keys = [k for k in preferred if k in all_keys] + \
           [k for k in sorted(all_keys) if k not in preferred]

    rows = [[_format_value(vars(gas).get(k, "")) for k in keys] for gas in gases]
    cols = list(zip(keys, *rows))
    widths = [max(len(str(x)) for x in col) for col in cols]

    def fmt_row(row):
        return "  ".join(str(x).ljust(w) for x, w in zip(row, widths))

    print(fmt_row(keys))
    print("  ".join("-" * w for w in widths))
    for r in rows:
        print(fmt_row(r))


def print_cfg(cfg: SimpleNamespace) -> None:
    """
    Pretty-print the configuration (SimpleNamespace tree)
    in a compact, table-like format.
    """
    print("=" * 60)
    print("CONFIGURATION SUMMARY")
    print("=" * 60)

    for section in ("runtime", "grid", "profile"):
        node = getattr(cfg, section, None) or SimpleNamespace()
        _print_kv_table(section.upper(), dict(vars(node)))

    _print_gas_table(list(getattr(cfg, "gases", []) or []))

    for section in ("instrument", "forward", "output"):
        node = getattr(cfg, section, None) or SimpleNamespace()
        _print_kv_table(section.upper(), dict(vars(node)))
