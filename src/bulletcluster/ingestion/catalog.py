"""Catalog file reading and normalization.

Survey exports (SDSS CasJobs CSV, LAMOST Parquet dumps, hand-made tables)
name their columns differently. Everything is mapped onto the eight
``spectra`` record columns here, before anything touches the database.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from bulletcluster.database.schema import ENVIRONMENT_MAX_LENGTH, RECORD_COLUMNS

__all__ = [
    'CatalogFormatError',
    'read_catalog',
    'normalize_catalog',
    'apply_quality_filters',
]

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = ["ra", "dec", "redshift", "snr", "h_alpha_center", "h_beta_center"]

_CSV_SUFFIXES = (".csv", ".csv.gz")
_PARQUET_SUFFIXES = (".parquet", ".pq")

_INTEGER_TEXT = r"[+-]?\d+(?:\.0*)?"
_FLOAT_EXACT_LIMIT = 2 ** 53
_INT64_MIN, _INT64_MAX = -(2 ** 63), 2 ** 63 - 1


class CatalogFormatError(ValueError):
    """Raised when a catalog file cannot be mapped onto spectrum records."""


def read_catalog(path: Union[str, Path],
                 column_aliases: Optional[Mapping[str, str]] = None) -> pd.DataFrame:
    """Read a catalog export.

    CSV columns that map onto ``spec_id`` are read as text so that large
    survey ids reach _coerce_spec_id() without a float round trip.

    Parameters
    ----------
    path : str or Path
        ``.csv``, ``.csv.gz``, ``.parquet`` or ``.pq`` file.
    column_aliases : mapping, optional
        If given, the frame is passed through normalize_catalog().

    Raises
    ------
    CatalogFormatError
        For unsupported file types.
    """
    path = Path(path)
    name = path.name.lower()

    if name.endswith(_CSV_SUFFIXES):
        header = pd.read_csv(path, nrows=0).columns
        df = pd.read_csv(path, dtype={c: str for c in _id_columns(header, column_aliases)})
    elif name.endswith(_PARQUET_SUFFIXES):
        df = pd.read_parquet(path, engine="pyarrow")
    else:
        raise CatalogFormatError(
            f"Unsupported catalog format: {path.name}. "
            f"Expected one of {list(_CSV_SUFFIXES + _PARQUET_SUFFIXES)}"
        )

    logger.debug("Read %d rows, %d columns from %s", len(df), len(df.columns), path.name)

    if column_aliases is not None:
        return normalize_catalog(df, column_aliases)
    return df


def _id_columns(columns, column_aliases: Optional[Mapping[str, str]]) -> list:
    """Raw column names that may end up as ``spec_id``."""
    sources = {"spec_id"}
    sources.update(s.strip().lower() for s, t in (column_aliases or {}).items() if t == "spec_id")
    return [c for c in columns if str(c).strip().lower() in sources]


def _coerce_spec_id(series: pd.Series) -> pd.Series:
    """Convert ``spec_id`` to int64 without a float round trip.

    Survey ids (SDSS ``specobjid`` ~3e17) exceed the 2**53 range that
    float64 holds exactly, so text is parsed digit by digit and float
    input is only accepted below that bound.
    """
    if pd.api.types.is_integer_dtype(series) and not series.isna().any():
        return series.astype("int64")

    if pd.api.types.is_float_dtype(series) or pd.api.types.is_integer_dtype(series):
        values = series.astype("float64")
        bad = values.isna() | ~np.isfinite(values)
        if bad.any():
            raise CatalogFormatError(
                f"spec_id has {int(bad.sum())} missing or non-numeric value(s), "
                f"e.g. {series[bad].iloc[0]!r}"
            )
        fractional = values != np.floor(values)
        if fractional.any():
            raise CatalogFormatError(
                f"spec_id has {int(fractional.sum())} non-integer value(s), "
                f"e.g. {values[fractional].iloc[0]!r}"
            )
        inexact = values.abs() > _FLOAT_EXACT_LIMIT
        if inexact.any():
            raise CatalogFormatError(
                f"spec_id stored as float cannot represent {int(inexact.sum())} value(s) "
                f"above 2**53 exactly, e.g. {values[inexact].iloc[0]!r}; export ids as integers or text"
            )
        return values.astype("int64")

    text = series.astype("string").str.strip()
    missing = (text.isna() | (text == "")).fillna(True)
    if missing.any():
        raise CatalogFormatError(
            f"spec_id has {int(missing.sum())} missing or non-numeric value(s), "
            f"e.g. {series[missing].iloc[0]!r}"
        )
    integral = text.str.fullmatch(_INTEGER_TEXT).fillna(False).astype(bool)
    if not integral.all():
        sample = series[~integral].iloc[0]
        numeric = pd.to_numeric(text[~integral], errors="coerce").notna()
        kind = "non-integer" if numeric.any() else "missing or non-numeric"
        raise CatalogFormatError(
            f"spec_id has {int((~integral).sum())} {kind} value(s), e.g. {sample!r}"
        )

    ids = [int(v) for v in text.str.replace(r"\.0*$", "", regex=True)]
    out_of_range = [v for v in ids if not _INT64_MIN <= v <= _INT64_MAX]
    if out_of_range:
        raise CatalogFormatError(f"spec_id {out_of_range[0]} does not fit a 64-bit integer")
    return pd.Series(ids, index=series.index, dtype="int64")


def _clean_environment(series: pd.Series, max_length: int) -> pd.Series:
    env = series.astype("string").str.strip()
    env = env.mask((env == "").fillna(False))

    too_long = (env.str.len() > max_length).fillna(False)
    if too_long.any():
        raise CatalogFormatError(
            f"environment label {env[too_long].iloc[0]!r} exceeds {max_length} characters"
        )
    return env.astype(object).where(env.notna(), None)


def normalize_catalog(df: pd.DataFrame,
                      column_aliases: Optional[Mapping[str, str]] = None,
                      max_env_length: int = ENVIRONMENT_MAX_LENGTH) -> pd.DataFrame:
    """Map a raw catalog frame onto the record columns.

    Column names are lowercased and stripped, then aliases are applied
    (an alias is ignored when its target column already exists). Missing
    record columns are added as nulls, extra columns dropped, and duplicate
    ``spec_id`` rows reduced to their first occurrence.

    Returns
    -------
    pd.DataFrame
        Exactly RECORD_COLUMNS, in schema order; ``spec_id`` int64, numeric
        columns float64, ``environment`` object (str or None).

    Raises
    ------
    CatalogFormatError
        If ``spec_id`` is absent, null or non-integer, or an environment
        label is longer than ``max_env_length``.
    """
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]

    rename = {}
    for source, target in (column_aliases or {}).items():
        source = source.strip().lower()
        if source in df.columns and target not in df.columns and target not in rename.values():
            rename[source] = target
    if rename:
        df = df.rename(columns=rename)

    if "spec_id" not in df.columns:
        raise CatalogFormatError(
            f"Catalog has no spec_id column (columns: {', '.join(df.columns)})"
        )

    df["spec_id"] = _coerce_spec_id(df["spec_id"])

    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")
        else:
            df[col] = np.nan

    if "environment" in df.columns:
        df["environment"] = _clean_environment(df["environment"], max_env_length)
    else:
        df["environment"] = None

    df = df[RECORD_COLUMNS]

    n_before = len(df)
    df = df.drop_duplicates(subset="spec_id", keep="first").reset_index(drop=True)
    if len(df) < n_before:
        logger.warning("Dropped %d duplicate spec_id row(s)", n_before - len(df))

    return df


def apply_quality_filters(df: pd.DataFrame,
                          min_snr: Optional[float] = None,
                          redshift_range: Optional[Tuple[float, float]] = None) -> pd.DataFrame:
    """Drop records below ``min_snr`` or outside ``redshift_range`` (inclusive).

    Records with a missing value for a configured cut are dropped too.
    Without cuts the frame is returned unchanged.
    """
    mask = pd.Series(True, index=df.index)

    if min_snr is not None:
        mask &= df["snr"] >= min_snr
    if redshift_range is not None:
        zmin, zmax = redshift_range
        mask &= df["redshift"].between(zmin, zmax)

    if mask.all():
        return df

    logger.info("Quality filters removed %d of %d records", int((~mask).sum()), len(df))
    return df[mask].reset_index(drop=True)
