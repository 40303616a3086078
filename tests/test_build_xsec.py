import numpy as np
import pytest

from xsec_fm.build_xsec import compute_profile_cross_sections
from xsec_fm.line_list import LineList
from xsec_fm.opacity_line import LineShapeModel, cross_section


NU = np.arange(6195.0, 6205.0 + 0.005, 0.01)


@pytest.fixture
def models(two_gas_lines):
    co2, h2o = two_gas_lines
    return [LineShapeModel("voigt", co2), LineShapeModel("voigt", h2o)]


def test_tensor_shape_and_sign(three_layer_profile, models):
    sigma = np.asarray(compute_profile_cross_sections(three_layer_profile, models, NU, progress=False))
    assert sigma.shape == (NU.size, 3, 2)
    assert np.all(np.isfinite(sigma))
    assert np.all(sigma >= 0.0)
    assert np.all(sigma.max(axis=0) > 0.0)


def test_columns_match_single_layer_calls(three_layer_profile, models):
    sigma = np.asarray(compute_profile_cross_sections(three_layer_profile, models, NU, progress=False))
    for i in range(3):
        p_hPa = three_layer_profile.p[i] / 100.0
        T = three_layer_profile.T[i]
        for j, model in enumerate(models):
            expected = np.asarray(cross_section(model, NU, p_hPa, T))
            np.testing.assert_allclose(sigma[:, i, j], expected, rtol=1.0e-12, atol=0.0)


def test_lower_layers_have_broader_lines(three_layer_profile, models):
    sigma = np.asarray(compute_profile_cross_sections(three_layer_profile, models[:1], NU, progress=False))
    # Peak height drops as pressure broadening grows toward the surface
    peaks = sigma[:, :, 0].max(axis=0)
    assert peaks[0] > peaks[1] > peaks[2]


def test_callback_sees_every_layer(three_layer_profile, models):
    calls = []
    compute_profile_cross_sections(
        three_layer_profile, models, NU, progress=False,
        callback=lambda i, n: calls.append((i, n)),
    )
    assert calls == [(0, 3), (1, 3), (2, 3)]


def test_self_broadening_only_touches_water(three_layer_profile, models):
    plain = np.asarray(compute_profile_cross_sections(three_layer_profile, models, NU, progress=False))
    wet = np.asarray(compute_profile_cross_sections(
        three_layer_profile, models, NU, progress=False, self_broadening=True,
    ))
    np.testing.assert_array_equal(wet[:, :, 0], plain[:, :, 0])
    # Self broadening only alters the water column; compare relatively since sigma ~ 1e-24
    assert not np.allclose(wet[:, 2, 1], plain[:, 2, 1], rtol=1.0e-3, atol=0.0)
    rel = np.max(np.abs(wet[:, 2, 1] - plain[:, 2, 1])) / np.max(np.abs(plain[:, 2, 1]))
    assert rel > 1.0e-3


def test_gas_without_lines_gives_zero_column(three_layer_profile, models, capsys):
    empty = LineShapeModel("voigt", LineList.empty(2, 1, 100.0, 200.0))
    sigma = np.asarray(compute_profile_cross_sections(
        three_layer_profile, [models[0], empty], NU, progress=False,
    ))
    assert np.all(sigma[:, :, 1] == 0.0)
    assert "[warn]" in capsys.readouterr().out


def test_needs_a_model(three_layer_profile):
    with pytest.raises(ValueError):
        compute_profile_cross_sections(three_layer_profile, [], NU, progress=False)
