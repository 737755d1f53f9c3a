"""Catalog ingestion into the ``spectra`` table.

Discovers catalog exports in ``data/raw``, normalizes them and inserts
their records in batches. Files already ingested (per the tracker) are
skipped on later runs; records already in the table are never overwritten.
"""

import logging
from pathlib import Path
from typing import List

from bulletcluster.contracts import ContractViolation, assert_spectrum_frame
from bulletcluster.ingestion.catalog import (
    apply_quality_filters,
    read_catalog,
)

__all__ = ['CatalogIngestor']

logger = logging.getLogger(__name__)


class CatalogIngestor:
    """Loads raw catalog files into the database.

    Example usage (typically called by the orchestrator)::

        ingestor = CatalogIngestor(config, SpectraRepository(engine), tracker)
        results = ingestor.run()
    """

    def __init__(self, config: "InternalConfig", repository, tracker=None):
        """
        Parameters
        ----------
        config : InternalConfig
            Runtime configuration with ``output_dirs`` set.
        repository : SpectraRepository
            Target for inserted records.
        tracker : PipelineTracker, optional
            Stage tracker. Without one, every discovered file is ingested.
        """
        self.config = config
        self.repository = repository
        self.tracker = tracker
        self.raw_dir = Path(config.output_dirs["raw"])

    def discover(self) -> List[Path]:
        """Catalog files in the raw directory matching the configured patterns, sorted by name."""
        found = set()
        for pattern in self.config.ingestion.file_patterns:
            found.update(p for p in self.raw_dir.glob(pattern) if p.is_file())
        files = sorted(found, key=lambda p: p.name)
        logger.debug("Discovered %d catalog file(s) in %s", len(files), self.raw_dir)
        return files

    def ingest_file(self, path: Path) -> dict:
        """Read, normalize, validate, filter and insert one catalog file.

        Returns
        -------
        dict
            - `file_id` : file name
            - `rows_read` : rows after normalization
            - `rows_kept` : rows passing the quality filters
            - `inserted`, `skipped` : database outcome

        Raises
        ------
        CatalogFormatError
            If the file cannot be mapped onto spectrum records.
        ContractViolation
            If normalization produced an invalid frame.
        """
        path = Path(path)
        cfg = self.config.ingestion
        file_id = path.name

        if self.tracker is not None:
            self.tracker.register_file(file_id, path)

        logger.info("Ingesting: %s", file_id)

        df = read_catalog(path, cfg.column_aliases)
        assert_spectrum_frame(df)
        rows_read = len(df)

        df = apply_quality_filters(df, min_snr=cfg.min_snr, redshift_range=cfg.redshift_range)

        inserted = skipped = 0
        for start in range(0, len(df), cfg.batch_size):
            batch_inserted, batch_skipped = self.repository.insert_records(
                df.iloc[start:start + cfg.batch_size]
            )
            inserted += batch_inserted
            skipped += batch_skipped

        if self.tracker is not None:
            self.tracker.mark_stage_complete(
                file_id, "ingested", num_records=inserted, num_skipped=skipped
            )

        logger.info("Ingested %s: %d inserted, %d already present, %d filtered out",
                    file_id, inserted, skipped, rows_read - len(df))

        return {
            "file_id": file_id,
            "rows_read": rows_read,
            "rows_kept": len(df),
            "inserted": inserted,
            "skipped": skipped,
        }

    def run(self) -> List[dict]:
        """Ingest every discovered file not yet ingested.

        A file that fails is logged and marked failed; the remaining files
        are still ingested. Contract violations stop the run.

        Returns
        -------
        list of dict
            One entry per attempted file; failed files carry an `error` key.
        """
        files = self.discover()
        if not files:
            logger.warning("No catalog files found in %s (patterns: %s)",
                           self.raw_dir, ", ".join(self.config.ingestion.file_patterns))
            return []

        results = []
        for path in files:
            if self.tracker is not None and not self.tracker.should_process(path.name, "ingested"):
                logger.info("Skipping already ingested: %s", path.name)
                continue

            try:
                results.append(self.ingest_file(path))
            except ContractViolation as e:
                logger.critical("Pipeline contract violated: %s", e)
                raise
            except Exception as e:
                logger.exception("Error ingesting %s", path.name)
                if self.tracker is not None:
                    self.tracker.mark_stage_complete(path.name, "ingested", error=str(e))
                results.append({"file_id": path.name, "error": str(e)})

        return results
