import numpy as np
import pandas as pd
import pytest

from bulletcluster.database import RECORD_COLUMNS
from bulletcluster.ingestion import (
    CatalogFormatError,
    apply_quality_filters,
    normalize_catalog,
    read_catalog,
)
from bulletcluster.schemas.param import DEFAULT_COLUMN_ALIASES

pytestmark = pytest.mark.unit


def sdss_style_frame():
    return pd.DataFrame({
        "SpecObjID": [299489677444933632, 299489677444933633, 299489677444933634],
        "RA": [104.60, 104.70, 104.80],
        "Dec": [-55.90, -55.95, -56.00],
        "z": [0.296, 0.298, 0.301],
        "SN_Median": [12.5, 8.1, 20.0],
        "Env": [" core ", "outskirts", ""],
        "H_Alpha_Center": [8508.0, 8520.0, np.nan],
        "extra_column": ["a", "b", "c"],
    })


def test_normalize_maps_aliases_and_orders_columns():
    df = normalize_catalog(sdss_style_frame(), DEFAULT_COLUMN_ALIASES)

    assert list(df.columns) == RECORD_COLUMNS
    assert df["spec_id"].dtype == np.int64
    assert df["spec_id"].iloc[0] == 299489677444933632
    assert df["redshift"].tolist() == pytest.approx([0.296, 0.298, 0.301])
    assert df["snr"].iloc[2] == pytest.approx(20.0)


def test_normalize_cleans_environment():
    df = normalize_catalog(sdss_style_frame(), DEFAULT_COLUMN_ALIASES)
    assert df["environment"].tolist() == ["core", "outskirts", None]


def test_normalize_adds_missing_columns_as_null():
    df = normalize_catalog(sdss_style_frame(), DEFAULT_COLUMN_ALIASES)
    assert df["h_beta_center"].isna().all()
    assert df["h_beta_center"].dtype == np.float64


def test_unparseable_numbers_become_nan():
    raw = pd.DataFrame({"spec_id": [1, 2], "redshift": ["0.3", "n/a"]})
    df = normalize_catalog(raw)
    assert df["redshift"].iloc[0] == pytest.approx(0.3)
    assert np.isnan(df["redshift"].iloc[1])


def test_alias_ignored_when_target_exists():
    raw = pd.DataFrame({"spec_id": [1], "z": [0.1], "redshift": [0.3]})
    df = normalize_catalog(raw, {"z": "redshift"})
    assert df["redshift"].iloc[0] == pytest.approx(0.3)


def test_duplicate_ids_keep_first():
    raw = pd.DataFrame({"spec_id": [5, 5, 6], "snr": [1.0, 2.0, 3.0]})
    df = normalize_catalog(raw)
    assert df["spec_id"].tolist() == [5, 6]
    assert df["snr"].tolist() == [1.0, 3.0]


def test_missing_spec_id_column():
    with pytest.raises(CatalogFormatError, match="spec_id"):
        normalize_catalog(pd.DataFrame({"ra": [1.0]}))


def test_null_spec_id_rejected():
    with pytest.raises(CatalogFormatError, match="missing or non-numeric"):
        normalize_catalog(pd.DataFrame({"spec_id": [1, None]}))


def test_fractional_spec_id_rejected():
    with pytest.raises(CatalogFormatError, match="non-integer"):
        normalize_catalog(pd.DataFrame({"spec_id": [1.5, 2.0]}))


def test_string_spec_id_accepted():
    df = normalize_catalog(pd.DataFrame({"spec_id": ["10", "11"]}))
    assert df["spec_id"].tolist() == [10, 11]


def test_large_text_spec_ids_kept_exact():
    raw = pd.DataFrame({"spec_id": ["299489677444933633", " 299489677444933634 ", "1.0"]})

    df = normalize_catalog(raw, {})

    assert df["spec_id"].dtype == np.int64
    assert df["spec_id"].tolist() == [299489677444933633, 299489677444933634, 1]


def test_float_spec_id_beyond_exact_range_rejected():
    raw = pd.DataFrame({"spec_id": [2.9948967744493363e17, 2.0]})
    with pytest.raises(CatalogFormatError, match=r"2\*\*53"):
        normalize_catalog(raw)


def test_text_spec_id_with_fraction_rejected():
    with pytest.raises(CatalogFormatError, match="non-integer"):
        normalize_catalog(pd.DataFrame({"spec_id": ["10", "10.5"]}))


def test_text_spec_id_garbage_rejected():
    with pytest.raises(CatalogFormatError, match="missing or non-numeric"):
        normalize_catalog(pd.DataFrame({"spec_id": ["10", "abc"]}))


def test_csv_ids_read_as_text(tmp_path):
    path = tmp_path / "cat.csv"
    path.write_text("specobjid,z\n299489677444933633,0.3\n299489677444933634,0.31\n1.0,0.32\n")

    df = read_catalog(path, DEFAULT_COLUMN_ALIASES)

    assert df["spec_id"].tolist() == [299489677444933633, 299489677444933634, 1]

    path.write_text("specobjid,z\n299489677444933633,0.3\n,0.31\n")
    with pytest.raises(CatalogFormatError, match="missing"):
        read_catalog(path, DEFAULT_COLUMN_ALIASES)


def test_long_environment_label_rejected():
    raw = pd.DataFrame({"spec_id": [1], "environment": ["x" * 21]})
    with pytest.raises(CatalogFormatError, match="exceeds 20"):
        normalize_catalog(raw)


def test_environment_label_at_limit_accepted():
    raw = pd.DataFrame({"spec_id": [1], "environment": ["x" * 20]})
    assert normalize_catalog(raw)["environment"].iloc[0] == "x" * 20


def test_quality_filters():
    df = normalize_catalog(pd.DataFrame({
        "spec_id": [1, 2, 3, 4],
        "snr": [2.0, 10.0, 15.0, np.nan],
        "redshift": [0.30, 0.30, 0.90, 0.30],
    }))

    assert len(apply_quality_filters(df)) == 4
    assert apply_quality_filters(df, min_snr=5.0)["spec_id"].tolist() == [2, 3]
    assert apply_quality_filters(df, redshift_range=(0.2, 0.4))["spec_id"].tolist() == [1, 2, 4]
    assert apply_quality_filters(df, min_snr=5.0, redshift_range=(0.2, 0.4))["spec_id"].tolist() == [2]


def test_read_csv_and_parquet(tmp_path):
    raw = sdss_style_frame()
    raw.to_csv(tmp_path / "cat.csv", index=False)
    raw.to_csv(tmp_path / "cat.csv.gz", index=False)
    raw.to_parquet(tmp_path / "cat.parquet", index=False)

    for name in ("cat.csv", "cat.csv.gz", "cat.parquet"):
        df = read_catalog(tmp_path / name, DEFAULT_COLUMN_ALIASES)
        assert list(df.columns) == RECORD_COLUMNS
        assert len(df) == 3


def test_read_without_aliases_returns_raw(tmp_path):
    sdss_style_frame().to_csv(tmp_path / "cat.csv", index=False)
    df = read_catalog(tmp_path / "cat.csv")
    assert "SpecObjID" in df.columns


def test_read_unsupported_suffix(tmp_path):
    path = tmp_path / "cat.fits"
    path.write_bytes(b"SIMPLE")
    with pytest.raises(CatalogFormatError, match="Unsupported"):
        read_catalog(path)
