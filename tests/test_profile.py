import h5py
import numpy as np
import pytest

from xsec_fm.data_constants import M_dry, M_h2o, N_A, g0
from xsec_fm.read_met import read_met_h5
from xsec_fm.vert_profile import (
    flat_profile,
    gravity_at_latitude,
    read_atmos_profile,
    total_dry_column,
)


def _write_met(path, ak_attr="ak"):
    n_time, n_lev = 2, 4
    lat = np.array([-10.0, 0.0, 10.0])
    lon = np.array([0.0, 90.0, 180.0, 270.0])
    t_idx, lev, i_lat, i_lon = np.meshgrid(
        np.arange(n_time), np.arange(n_lev), np.arange(3), np.arange(4), indexing="ij"
    )
    T = 200.0 + 20.0 * lev + 1.0 * i_lat + 0.1 * i_lon + 0.01 * t_idx
    q = 1.0e-4 * (1.0 + lev)
    ps = 100000.0 + 100.0 * np.arange(n_time)[:, None, None] + np.zeros((n_time, 3, 4))
    ak = np.array([1.0, 5000.0, 10000.0, 5000.0, 0.0])
    bk = np.array([0.0, 0.0, 0.2, 0.6, 1.0])
    with h5py.File(path, "w") as handle:
        handle.create_dataset("YDim", data=lat)
        handle.create_dataset("XDim", data=lon)
        handle.create_dataset("T", data=T)
        handle.create_dataset("QV", data=q)
        handle.create_dataset("PS", data=ps)
        handle.attrs[ak_attr] = ak
        handle.attrs[ak_attr.replace("ak", "bk")] = bk
    return T, q, ps, ak, bk


def test_dry_columns_sum_to_total_column(flat_ten_layer_profile):
    profile = flat_ten_layer_profile
    direct = 10000.0 / ((M_dry / N_A) * g0 * 1.0e4)
    np.testing.assert_allclose(np.sum(profile.vcd_dry), direct, rtol=1.0e-12)
    np.testing.assert_allclose(total_dry_column(profile), direct, rtol=1.0e-12)
    np.testing.assert_allclose(profile.vcd_dry, profile.vcd_dry[0], rtol=1.0e-12)
    assert np.all(profile.vcd_h2o == 0.0)


def test_humidity_conversion(three_layer_profile):
    profile = three_layer_profile
    np.testing.assert_allclose(profile.vmr_h2o, np.array([1.0e-4, 2.0e-3, 8.0e-3]) * M_dry / M_h2o)
    np.testing.assert_allclose(
        profile.vcd_h2o / profile.vcd_dry, profile.vmr_h2o / (1.0 - profile.vmr_h2o), rtol=1.0e-12
    )
    np.testing.assert_allclose(profile.p, [25000.0, 55000.0, 85000.0])
    assert profile.psurf == 100000.0


def test_invalid_profiles_are_rejected():
    with pytest.raises(ValueError):
        flat_profile([0.0, 1000.0], [250.0], q=[-1.0e-3])
    with pytest.raises(ValueError):
        flat_profile([2000.0, 1000.0], [250.0])
    with pytest.raises(ValueError):
        flat_profile([0.0, 1000.0, 2000.0], [250.0])
    with pytest.raises(ValueError):
        flat_profile([0.0, 1000.0], [250.0], gravity=0.0)
    with pytest.raises(NotImplementedError):
        flat_profile([0.0, 1000.0], [250.0], gravity="moon")


def test_gravity_schemes():
    assert gravity_at_latitude(0.0) == pytest.approx(9.780327)
    assert gravity_at_latitude(90.0) == pytest.approx(9.780327 * 1.0053024)

    p_half = np.geomspace(100.0, 100000.0, 21)
    T = np.full(20, 250.0)
    const = flat_profile(p_half, T)
    lat = flat_profile(p_half, T, lat=45.0, gravity="latitude")
    alt = flat_profile(p_half, T, lat=45.0, gravity="latitude_altitude")

    np.testing.assert_allclose(const.gravity, g0)
    np.testing.assert_allclose(lat.gravity, gravity_at_latitude(45.0))
    assert np.all(np.diff(alt.gravity) > 0.0)
    assert np.all(alt.gravity < gravity_at_latitude(45.0))
    # Lower gravity aloft means more molecules per Pa
    assert np.all(alt.vcd_dry >= lat.vcd_dry)


def test_read_met_and_nearest_cell(tmp_path):
    path = tmp_path / "met.h5"
    T, q, ps, ak, bk = _write_met(path)
    met = read_met_h5(path)
    assert met.n_time == 2 and met.n_lev == 4

    profile = read_atmos_profile(met, lat=8.0, lon=100.0, time_index=1)
    np.testing.assert_allclose(profile.T, T[1, :, 2, 1])
    np.testing.assert_allclose(profile.q, q[1, :, 2, 1])
    assert profile.psurf == pytest.approx(ps[1, 2, 1])
    np.testing.assert_allclose(profile.p_half, ak + bk * ps[1, 2, 1])
    assert profile.lat == 8.0 and profile.lon == 100.0

    with pytest.raises(ValueError):
        read_atmos_profile(met, 0.0, 0.0, time_index=2)
    with pytest.raises(ValueError):
        read_atmos_profile(met, 0.0, 0.0, time_index=-1)


def test_read_met_hdf_global_attributes(tmp_path):
    path = tmp_path / "met_nc.h5"
    _, _, _, ak, bk = _write_met(path, ak_attr="HDF_GLOBAL.ak")
    met = read_met_h5(path)
    np.testing.assert_allclose(met.a, ak)
    np.testing.assert_allclose(met.b, bk)


def test_read_met_missing_dataset(tmp_path):
    path = tmp_path / "broken.h5"
    with h5py.File(path, "w") as handle:
        handle.create_dataset("YDim", data=np.zeros(2))
    with pytest.raises(KeyError):
        read_met_h5(path)
    with pytest.raises(FileNotFoundError):
        read_met_h5(tmp_path / "nope.h5")
