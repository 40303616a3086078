import jax.numpy as jnp
import numpy as np
import pytest

from xsec_fm.state_vector import StateLayout, StateVector


@pytest.fixture
def layout():
    return StateLayout(n_layers=3, gas_names=("CO2", "H2O"), poly_degree=2)


def test_sizes(layout):
    assert layout.n_gas == 2
    assert layout.n_vmr == 6
    assert layout.n_poly == 3
    assert layout.size == 9
    assert layout.poly_slice == slice(6, 9)


def test_flat_order_is_gas_major(layout):
    vmr = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 30.0]])
    flat = np.asarray(layout.pack(StateVector(vmr=vmr, poly=np.array([7.0, 8.0, 9.0]))))
    np.testing.assert_array_equal(flat, [1.0, 2.0, 3.0, 10.0, 20.0, 30.0, 7.0, 8.0, 9.0])
    np.testing.assert_array_equal(flat[layout.gas_slice("H2O")], [10.0, 20.0, 30.0])
    assert layout.labels() == [
        "vmr_CO2_0", "vmr_CO2_1", "vmr_CO2_2",
        "vmr_H2O_0", "vmr_H2O_1", "vmr_H2O_2",
        "poly_c0", "poly_c1", "poly_c2",
    ]


def test_unpack_inverts_pack(layout):
    flat = jnp.arange(layout.size, dtype=jnp.float64)
    state = layout.unpack(flat)
    assert state.vmr.shape == (3, 2)
    assert state.poly.shape == (3,)
    np.testing.assert_array_equal(np.asarray(layout.pack(state)), np.asarray(flat))


def test_from_columns_broadcasts_scalars(layout):
    flat = np.asarray(layout.from_columns([4.0e-4, [0.5, 1.0, 1.5]], [1.0, 0.0, 0.0]))
    np.testing.assert_allclose(flat[:3], 4.0e-4)
    np.testing.assert_allclose(flat[3:6], [0.5, 1.0, 1.5])
    np.testing.assert_allclose(flat[6:], [1.0, 0.0, 0.0])


def test_shape_errors(layout):
    with pytest.raises(ValueError):
        layout.unpack(jnp.zeros(layout.size + 1))
    with pytest.raises(ValueError):
        layout.pack(StateVector(vmr=np.zeros((2, 2)), poly=np.zeros(3)))
    with pytest.raises(ValueError):
        layout.pack(StateVector(vmr=np.zeros((3, 2)), poly=np.zeros(2)))
    with pytest.raises(ValueError):
        layout.from_columns([1.0], [1.0, 0.0, 0.0])


def test_layout_validation():
    with pytest.raises(ValueError):
        StateLayout(0, ("CO2",), 0)
    with pytest.raises(ValueError):
        StateLayout(3, (), 0)
    with pytest.raises(ValueError):
        StateLayout(3, ("CO2", "CO2"), 0)
    with pytest.raises(ValueError):
        StateLayout(3, ("CO2",), -1)
