"""Spectral feature derivation from Balmer line centers.

Each record carries the observed H-alpha and H-beta line centers (Angstrom)
and the catalog redshift. From these we derive the line redshifts, the
velocity offset of the emission lines relative to the catalog redshift,
the Balmer center ratio, and the projected distance to the cluster center.
"""

import numpy as np
import pandas as pd

__all__ = [
    'SPEED_OF_LIGHT_KMS',
    'FEATURE_COLUMNS',
    'angular_separation_arcmin',
    'compute_line_features',
]

SPEED_OF_LIGHT_KMS = 299792.458

FEATURE_COLUMNS = [
    "z_halpha",
    "z_hbeta",
    "line_redshift",
    "redshift_residual",
    "velocity_offset_kms",
    "balmer_center_ratio",
    "cluster_distance_arcmin",
]


def angular_separation_arcmin(ra, dec, ra0, dec0):
    """Great-circle separation (haversine) in arcminutes.

    All inputs in degrees; ``ra``/``dec`` may be arrays.
    """
    ra1, dec1 = np.radians(ra), np.radians(dec)
    ra2, dec2 = np.radians(ra0), np.radians(dec0)

    hav = (np.sin((dec1 - dec2) / 2.0) ** 2
           + np.cos(dec1) * np.cos(dec2) * np.sin((ra1 - ra2) / 2.0) ** 2)
    sep = 2.0 * np.arcsin(np.sqrt(np.clip(hav, 0.0, 1.0)))
    return np.degrees(sep) * 60.0


def _positive(series: pd.Series) -> pd.Series:
    values = pd.to_numeric(series, errors="coerce").astype("float64")
    return values.where(values > 0)


def compute_line_features(df: pd.DataFrame,
                          rest_wavelengths=(6564.61, 4862.68),
                          cluster_center=(104.658, -55.946)) -> pd.DataFrame:
    """Add FEATURE_COLUMNS to a frame of spectrum records.

    Parameters
    ----------
    df : pd.DataFrame
        Records with ``ra``, ``dec``, ``redshift``, ``h_alpha_center``,
        ``h_beta_center``.
    rest_wavelengths : tuple of float
        (H-alpha, H-beta) rest wavelengths in Angstrom.
    cluster_center : tuple of float
        (RA, Dec) of the cluster center in degrees.

    Returns
    -------
    pd.DataFrame
        Copy of ``df`` with the feature columns appended. Rows are never
        dropped; missing or non-positive line centers give NaN features.
    """
    rest_halpha, rest_hbeta = rest_wavelengths
    out = df.copy()

    halpha = _positive(out["h_alpha_center"])
    hbeta = _positive(out["h_beta_center"])
    redshift = pd.to_numeric(out["redshift"], errors="coerce").astype("float64")

    out["z_halpha"] = halpha / rest_halpha - 1.0
    out["z_hbeta"] = hbeta / rest_hbeta - 1.0
    out["line_redshift"] = out[["z_halpha", "z_hbeta"]].mean(axis=1, skipna=True)
    out["redshift_residual"] = out["line_redshift"] - redshift

    velocity = SPEED_OF_LIGHT_KMS * out["redshift_residual"] / (1.0 + redshift)
    out["velocity_offset_kms"] = velocity.replace([np.inf, -np.inf], np.nan)

    out["balmer_center_ratio"] = halpha / hbeta

    ra = pd.to_numeric(out["ra"], errors="coerce").astype("float64")
    dec = pd.to_numeric(out["dec"], errors="coerce").astype("float64")
    out["cluster_distance_arcmin"] = angular_separation_arcmin(
        ra.to_numpy(), dec.to_numpy(), *cluster_center
    )

    for col in FEATURE_COLUMNS:
        out[col] = out[col].astype("float64")

    return out
