import numpy as np
import pytest
from jax import config as jax_config

jax_config.update("jax_enable_x64", True)

from xsec_fm.line_list import LineList, LineTransition
from xsec_fm.vert_profile import flat_profile


def format_par_record(mol, iso, nu, intensity, gamma_air=0.07, gamma_self=0.09,
                      e_lower=100.0, n_air=0.70, delta_air=-0.005, einstein_a=1.0e-3):
    """One HITRAN 160-character record (only the first 67 columns are meaningful)."""
    iso_char = {10: "0", 11: "A", 12: "B"}.get(iso, str(iso))
    record = (
        f"{mol:2d}{iso_char:1s}{nu:12.6f}{intensity:10.3E}{einstein_a:10.3E}"
        f"{gamma_air:5.3f}{gamma_self:5.3f}{e_lower:10.4f}{n_air:4.2f}{delta_air:8.5f}"
    )
    return record.ljust(160)


@pytest.fixture
def write_par(tmp_path):
    """Write records (tuples of format_par_record arguments) to a .par file."""
    def _write(records, name="lines.par"):
        path = tmp_path / name
        path.write_text("\n".join(format_par_record(*r) for r in records) + "\n")
        return path
    return _write


@pytest.fixture
def single_co2_line():
    line = LineTransition(
        nu=6200.0,
        intensity=1.0e-23,
        gamma_air=0.05,
        e_lower=0.0,
        n_air=0.7,
        molecule_id=2,
        isotope_id=1,
    )
    return LineList.from_transitions([line], 6150.0, 6250.0)


@pytest.fixture
def two_gas_lines():
    co2 = LineList.from_transitions(
        [
            LineTransition(6199.2, 2.0e-23, 0.07, 50.0, 0.72, gamma_self=0.09, molecule_id=2, isotope_id=1),
            LineTransition(6200.4, 1.2e-23, 0.07, 120.0, 0.72, gamma_self=0.09, molecule_id=2, isotope_id=1),
        ],
        6150.0, 6250.0,
    )
    h2o = LineList.from_transitions(
        [
            LineTransition(6202.1, 5.0e-22, 0.09, 300.0, 0.65, gamma_self=0.4, delta_air=-0.01,
                           molecule_id=1, isotope_id=1),
        ],
        6150.0, 6250.0,
    )
    return co2, h2o


@pytest.fixture
def three_layer_profile():
    return flat_profile(
        p_half=[10000.0, 40000.0, 70000.0, 100000.0],
        T=[230.0, 260.0, 285.0],
        q=[1.0e-4, 2.0e-3, 8.0e-3],
        lat=34.1,
        lon=-118.1,
    )


@pytest.fixture
def flat_ten_layer_profile():
    return flat_profile(p_half=np.arange(11) * 1000.0, T=np.full(10, 250.0), q=np.zeros(10))
