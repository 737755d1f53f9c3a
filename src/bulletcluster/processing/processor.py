"""Feature derivation over the whole ``spectra`` table."""

import logging
from pathlib import Path

import pandas as pd

from bulletcluster.contracts import assert_features, assert_spectrum_frame
from bulletcluster.processing.features import FEATURE_COLUMNS, compute_line_features
from bulletcluster.setup_directories import get_processed_path

__all__ = ['SpectralProcessor']

logger = logging.getLogger(__name__)


class SpectralProcessor:
    """Derives spectral features for every stored record.

    Reads ``spectra`` in ``chunk_size`` pieces (ordered by ``spec_id``),
    computes features per chunk and writes one Parquet file to
    ``data/processed``.
    """

    def __init__(self, config: "InternalConfig", repository, output_dirs=None):
        self.config = config
        self.repository = repository
        self.output_dirs = output_dirs or config.output_dirs

    def _feature_kwargs(self) -> dict:
        cfg = self.config.processing
        return {
            "rest_wavelengths": (cfg.rest_halpha, cfg.rest_hbeta),
            "cluster_center": (cfg.cluster_ra, cfg.cluster_dec),
        }

    def process(self) -> dict:
        """Compute features and write the Parquet file.

        Returns
        -------
        dict
            - `rows` : number of records processed
            - `chunks` : number of chunks read
            - `path` : Parquet path, or None when the table is empty
        """
        kwargs = self._feature_kwargs()
        frames = []

        for chunk in self.repository.iter_frames(self.config.processing.chunk_size):
            assert_spectrum_frame(chunk)
            features = compute_line_features(chunk, **kwargs)
            assert_features(features, FEATURE_COLUMNS, expected_rows=len(chunk))
            frames.append(features)
            logger.debug("Processed chunk of %d records", len(chunk))

        if not frames:
            logger.warning("No records in database, nothing to process")
            return {"rows": 0, "chunks": 0, "path": None}

        df = pd.concat(frames, ignore_index=True)
        if "created_at" in df.columns:
            df["created_at"] = pd.to_datetime(df["created_at"], errors="coerce")

        self._log_feature_statistics(df)

        path = Path(get_processed_path(self.output_dirs, self.config.output.features_filename))
        compression = self.config.output.compression
        df.to_parquet(
            path,
            engine="pyarrow",
            compression=None if compression == "none" else compression,
            index=False,
        )
        logger.info("Saved %d feature rows to: %s", len(df), path)

        return {"rows": len(df), "chunks": len(frames), "path": path}

    def _log_feature_statistics(self, df: pd.DataFrame):
        """Log a one-line summary of the derived features."""
        stats_parts = [f"Records: {len(df)}"]

        n_env = df["environment"].dropna().nunique()
        stats_parts.append(f"Environments: {n_env}")

        for col, label in (
            ("line_redshift", "z-line"),
            ("velocity_offset_kms", "dv [km/s]"),
            ("cluster_distance_arcmin", "dist [arcmin]"),
        ):
            vals = df[col].dropna()
            if len(vals) > 0:
                stats_parts.append(
                    f"{label} - min={vals.min():.3f}, max={vals.max():.3f}, median={vals.median():.3f}"
                )

        missing = int(df["line_redshift"].isna().sum())
        if missing:
            stats_parts.append(f"no line centers: {missing}")

        logger.info("Feature Statistics: %s", " | ".join(stats_parts))
