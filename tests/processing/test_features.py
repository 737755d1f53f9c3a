import numpy as np
import pandas as pd
import pytest

from bulletcluster.processing import (
    FEATURE_COLUMNS,
    SPEED_OF_LIGHT_KMS,
    angular_separation_arcmin,
    compute_line_features,
)

pytestmark = pytest.mark.unit

REST = (6564.61, 4862.68)
CENTER = (104.658, -55.946)


def record(**overrides):
    base = {
        "spec_id": 1,
        "ra": 104.658,
        "dec": -55.946,
        "redshift": 0.3,
        "snr": 10.0,
        "environment": "core",
        "h_alpha_center": REST[0] * 1.3,
        "h_beta_center": REST[1] * 1.3,
    }
    base.update(overrides)
    return base


def test_line_redshifts_match_catalog():
    out = compute_line_features(pd.DataFrame([record()]), REST, CENTER)

    assert out["z_halpha"].iloc[0] == pytest.approx(0.3)
    assert out["z_hbeta"].iloc[0] == pytest.approx(0.3)
    assert out["line_redshift"].iloc[0] == pytest.approx(0.3)
    assert out["redshift_residual"].iloc[0] == pytest.approx(0.0, abs=1e-12)
    assert out["velocity_offset_kms"].iloc[0] == pytest.approx(0.0, abs=1e-6)
    assert out["balmer_center_ratio"].iloc[0] == pytest.approx(REST[0] / REST[1])
    assert out["cluster_distance_arcmin"].iloc[0] == pytest.approx(0.0, abs=1e-9)


def test_velocity_offset():
    z, dz = 0.3, 0.001
    df = pd.DataFrame([record(h_alpha_center=REST[0] * (1 + z + dz), h_beta_center=REST[1] * (1 + z + dz))])
    out = compute_line_features(df, REST, CENTER)

    expected = SPEED_OF_LIGHT_KMS * dz / (1 + z)
    assert out["velocity_offset_kms"].iloc[0] == pytest.approx(expected, rel=1e-6)


def test_single_line_used_when_other_missing():
    df = pd.DataFrame([record(h_beta_center=np.nan)])
    out = compute_line_features(df, REST, CENTER)

    assert np.isnan(out["z_hbeta"].iloc[0])
    assert out["line_redshift"].iloc[0] == pytest.approx(out["z_halpha"].iloc[0])
    assert np.isnan(out["balmer_center_ratio"].iloc[0])


def test_non_positive_centers_give_nan_and_keep_rows():
    df = pd.DataFrame([
        record(spec_id=1, h_alpha_center=0.0, h_beta_center=-5.0),
        record(spec_id=2, h_alpha_center=None, h_beta_center=None),
        record(spec_id=3),
    ])
    out = compute_line_features(df, REST, CENTER)

    assert len(out) == 3
    assert out["line_redshift"].isna().tolist() == [True, True, False]
    assert out["velocity_offset_kms"].isna().tolist() == [True, True, False]


def test_all_feature_columns_float():
    out = compute_line_features(pd.DataFrame([record(), record(spec_id=2, environment=None)]), REST, CENTER)
    for col in FEATURE_COLUMNS:
        assert out[col].dtype == np.float64


def test_input_not_modified():
    df = pd.DataFrame([record()])
    compute_line_features(df, REST, CENTER)
    assert "line_redshift" not in df.columns


def test_angular_separation_known_values():
    # one degree along the equator
    assert angular_separation_arcmin(1.0, 0.0, 0.0, 0.0) == pytest.approx(60.0)
    # one degree in declination anywhere
    assert angular_separation_arcmin(104.658, -54.946, *CENTER) == pytest.approx(60.0)
    # RA wrap-around
    assert angular_separation_arcmin(359.5, 0.0, 0.5, 0.0) == pytest.approx(60.0)
    # RA offsets shrink with cos(dec)
    sep = angular_separation_arcmin(1.0, 60.0, 0.0, 60.0)
    assert sep == pytest.approx(30.0, rel=1e-3)


def test_angular_separation_vectorized():
    ra = np.array([0.0, 0.0])
    dec = np.array([0.0, 90.0])
    sep = angular_separation_arcmin(ra, dec, 0.0, 0.0)
    assert sep == pytest.approx([0.0, 90.0 * 60.0])
