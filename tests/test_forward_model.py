import jax.numpy as jnp
import numpy as np
import pytest
from scipy.integrate import trapezoid

from xsec_fm.build_model import build_forward_model, optical_depth_layers, simulate
from xsec_fm.build_xsec import compute_profile_cross_sections
from xsec_fm.instru_convolve import build_instrument, conv_spectra
from xsec_fm.jacobian import finite_difference_jacobian, jacobian
from xsec_fm.opacity_line import LineShapeModel
from xsec_fm.state_vector import StateLayout
from xsec_fm.vert_profile import total_dry_column


NU = np.arange(6195.0, 6205.0 + 0.005, 0.01)
NU_OUT = np.linspace(6196.0, 6204.0, 161)
BASES = ("dry", "h2o")


@pytest.fixture
def setup(three_layer_profile, two_gas_lines):
    co2, h2o = two_gas_lines
    models = [LineShapeModel("voigt", co2), LineShapeModel("voigt", h2o)]
    tensor = compute_profile_cross_sections(three_layer_profile, models, NU, progress=False)
    instrument = build_instrument(0.2, NU, NU_OUT)
    layout = StateLayout(3, ("CO2", "H2O"), 2)
    x0 = layout.from_columns([4.0e-4, 1.0], [1.0, 0.01, -0.02])
    return dict(
        tensor=tensor,
        profile=three_layer_profile,
        instrument=instrument,
        layout=layout,
        x0=x0,
    )


def _run(setup, x=None, **kwargs):
    kwargs.setdefault("column_basis", BASES)
    return np.asarray(simulate(
        setup["x0"] if x is None else x,
        setup["tensor"], setup["profile"], setup["instrument"], NU, setup["layout"],
        **kwargs,
    ))


def test_output_grid_and_range(setup):
    spectrum = _run(setup)
    assert spectrum.shape == NU_OUT.shape
    assert np.all(np.isfinite(spectrum))
    # Absorption only removes light below the continuum polynomial
    continuum = 1.0 + 0.01 * np.linspace(-1, 1, NU_OUT.size) - 0.02 * np.linspace(-1, 1, NU_OUT.size) ** 2
    assert np.all(spectrum <= continuum + 1.0e-6)
    assert spectrum.min() < 0.9 * continuum.max()


def test_zero_absorber_gives_continuum(setup):
    layout = setup["layout"]
    x = layout.from_columns([0.0, 0.0], [1.0, 0.0, 0.0])
    np.testing.assert_allclose(_run(setup, x), 1.0, rtol=1.0e-12)

    solar = 1.0 - 0.05 * np.exp(-((NU - 6201.0) / 0.3) ** 2)
    expected = np.asarray(conv_spectra(setup["instrument"], NU, jnp.asarray(solar)))
    np.testing.assert_allclose(_run(setup, x, solar=solar), expected, rtol=1.0e-12)


def test_air_mass_factor_scales_the_column(setup):
    layout = setup["layout"]
    x1 = layout.from_columns([4.0e-4, 1.0], [1.0, 0.0, 0.0])
    x2 = layout.from_columns([8.0e-4, 2.0], [1.0, 0.0, 0.0])
    np.testing.assert_allclose(_run(setup, x1, air_mass_factor=2.0), _run(setup, x2), rtol=1.0e-10)


def test_legendre_and_power_bases_agree(setup):
    layout = setup["layout"]
    a, b, c = 1.0, 0.03, -0.04
    x_leg = layout.from_columns([4.0e-4, 1.0], [a, b, c])
    x_pow = layout.from_columns([4.0e-4, 1.0], [a - 0.5 * c, b, 1.5 * c])
    np.testing.assert_allclose(
        _run(setup, x_leg, poly_basis="legendre"), _run(setup, x_pow, poly_basis="power"), rtol=1.0e-12,
    )


def test_equal_layers_give_equal_optical_depth(flat_ten_layer_profile, single_co2_line):
    # Ten layers of equal thickness and temperature hold equal dry columns.
    profile = flat_ten_layer_profile
    np.testing.assert_allclose(profile.vcd_dry, profile.vcd_dry[0], rtol=1.0e-12)

    # A Doppler line with no pressure shift has the same cross section in
    # every layer, so with VMR 1 each layer carries the same optical depth.
    tensor = compute_profile_cross_sections(
        profile, [LineShapeModel("doppler", single_co2_line)], NU, progress=False,
    )
    sigma = np.asarray(tensor)
    for i in range(1, 10):
        np.testing.assert_allclose(sigma[:, i, 0], sigma[:, 0, 0], rtol=1.0e-12)

    layout = StateLayout(10, ("CO2",), 0)
    x = layout.from_columns([1.0], [1.0])
    tau = np.asarray(optical_depth_layers(x, tensor, profile, layout))
    assert tau.shape == (NU.size, 10, 1)
    for i in range(1, 10):
        np.testing.assert_allclose(tau[:, i, 0], tau[:, 0, 0], rtol=1.0e-12)
    np.testing.assert_allclose(tau.sum(axis=(1, 2)), total_dry_column(profile) * sigma[:, 0, 0], rtol=1.0e-10)


def test_equal_layers_give_equal_band_optical_depth(flat_ten_layer_profile, single_co2_line):
    # Voigt widths grow with layer pressure, but the band-integrated optical
    # depth only depends on the line strength and the layer column.
    nu = np.arange(6190.0, 6210.0 + 0.0005, 0.001)
    profile = flat_ten_layer_profile
    tensor = compute_profile_cross_sections(
        profile, [LineShapeModel("voigt", single_co2_line)], nu, progress=False,
    )
    layout = StateLayout(10, ("CO2",), 0)
    tau = np.asarray(optical_depth_layers(layout.from_columns([1.0], [1.0]), tensor, profile, layout))
    band = trapezoid(tau[:, :, 0], nu, axis=0)
    np.testing.assert_allclose(band, band[0], rtol=1.0e-3)
    assert np.all(np.diff(tau[nu.size // 2, :, 0]) < 0.0)


def test_jacobian_matches_finite_differences(setup):
    K = np.asarray(jacobian(
        setup["x0"], setup["tensor"], setup["profile"], setup["instrument"], NU, setup["layout"],
        column_basis=BASES,
    ))
    assert K.shape == (NU_OUT.size, setup["layout"].size)

    fm = build_forward_model(
        setup["tensor"], setup["profile"], setup["instrument"], NU, setup["layout"], column_basis=BASES,
    )
    K_fd = finite_difference_jacobian(fm, setup["x0"], rel_step=1.0e-5)
    for j in range(K.shape[1]):
        scale = np.max(np.abs(K[:, j])) + 1.0e-30
        np.testing.assert_allclose(K_fd[:, j], K[:, j], rtol=0.0, atol=1.0e-5 * scale)

    # Centred differences converge on the analytic columns as the step shrinks
    layout = setup["layout"]
    coarse = np.abs(finite_difference_jacobian(fm, setup["x0"], rel_step=1.0e-2) - K)
    fine = np.abs(finite_difference_jacobian(fm, setup["x0"], rel_step=1.0e-4) - K)
    for j in range(layout.n_vmr):
        scale = np.max(np.abs(K[:, j]))
        assert np.max(fine[:, j]) < 1.0e-2 * np.max(coarse[:, j])
        assert np.max(fine[:, j]) < 1.0e-6 * scale

    # CO2 absorbs, so raising its VMR lowers the signal
    co2 = setup["layout"].gas_slice("CO2")
    assert np.all(K[:, co2] <= 1.0e-12)
    assert np.min(K[:, co2]) < 0.0


def test_polynomial_columns_are_analytic(setup):
    K = np.asarray(jacobian(
        setup["x0"], setup["tensor"], setup["profile"], setup["instrument"], NU, setup["layout"],
        column_basis=BASES,
    ))
    spectrum = _run(setup)
    x_out = np.linspace(-1.0, 1.0, NU_OUT.size)
    continuum = 1.0 + 0.01 * x_out - 0.02 * x_out ** 2
    poly_cols = K[:, setup["layout"].poly_slice]
    for k in range(3):
        np.testing.assert_allclose(poly_cols[:, k], spectrum / continuum * x_out ** k, rtol=1.0e-10, atol=1.0e-14)


def test_forward_model_is_reusable(setup):
    fm = build_forward_model(
        setup["tensor"], setup["profile"], setup["instrument"], NU, setup["layout"], column_basis=BASES,
    )
    np.testing.assert_allclose(np.asarray(fm(setup["x0"])), _run(setup), rtol=1.0e-14)
    x = np.asarray(setup["x0"]).copy()
    x[0] *= 2.0
    assert not np.allclose(np.asarray(fm(jnp.asarray(x))), _run(setup))


def test_invalid_inputs(setup):
    layout = setup["layout"]
    x = np.asarray(setup["x0"]).copy()

    bad = x.copy()
    bad[1] = -1.0e-6
    with pytest.raises(ValueError):
        _run(setup, bad)
    bad = x.copy()
    bad[4] = np.nan
    with pytest.raises(ValueError):
        _run(setup, bad)
    with pytest.raises(ValueError):
        _run(setup, x[:-1])
    with pytest.raises(ValueError):
        _run(setup, air_mass_factor=0.0)
    with pytest.raises(ValueError):
        _run(setup, solar=np.ones(NU.size - 1))
    with pytest.raises(NotImplementedError):
        _run(setup, column_basis=("dry", "wet"))
    with pytest.raises(ValueError):
        simulate(
            x, setup["tensor"][:, :2, :], setup["profile"], setup["instrument"], NU, layout,
            column_basis=BASES,
        )
    with pytest.raises(NotImplementedError):
        _run(setup, poly_basis="chebyshev")
