"""Sequential pipeline orchestration.

Runs the ingest, process and analyze stages in order against one database
engine, with shared logging and stage tracking.
"""

import time
import logging
from pathlib import Path
from typing import Iterable, Optional

from bulletcluster.analysis import EnvironmentAnalyzer
from bulletcluster.database import SpectraRepository, get_engine, init_schema
from bulletcluster.ingestion import CatalogIngestor
from bulletcluster.pipeline.tracker import PipelineTracker
from bulletcluster.processing import SpectralProcessor
from bulletcluster.setup_directories import get_log_path

__all__ = ['PipelineOrchestrator', 'STAGE_ORDER']

logger = logging.getLogger(__name__)

STAGE_ORDER = ("ingest", "process", "analyze")


class PipelineOrchestrator:
    """Runs the spectral pipeline stages.

    **Stages:**

    1. **ingest**: catalog files in ``data/raw`` are normalized and their
       records inserted into ``spectra`` (existing records are kept).
    2. **process**: spectral features are derived for the whole table and
       written to ``data/processed/spectral_features.parquet``.
    3. **analyze**: feature distributions are compared across environments;
       tables go to ``data/results``, plots to ``plots/``.

    **File Tracking:**

    A PipelineTracker SQLite database (``data/pipeline_tracker.db``) records
    which catalog files reached which stage, so re-running ``ingest`` only
    picks up new files.

    **Logging:**

    All output goes to both console and ``logs/pipeline_<run_id>.log`` at
    ``config.logging.level``.

    Example usage::

        config = init_runtime_config(args)
        orch = PipelineOrchestrator(config)
        summary = orch.run(stages=("ingest", "process"))
    """

    def __init__(self, config: "InternalConfig", output_dirs: Optional[dict] = None, engine=None):
        """
        Parameters
        ----------
        config : InternalConfig
            Fully resolved runtime configuration.
        output_dirs : dict, optional
            Output directories; defaults to ``config.output_dirs``.
        engine : sqlalchemy.engine.Engine, optional
            Database engine. Created from ``config.database`` if not given
            (and then disposed on stop()).
        """
        self.config = config
        self.output_dirs = output_dirs or config.output_dirs
        if not self.output_dirs:
            raise ValueError("output_dirs not set; use init_runtime_config() to build the config")

        self._owns_engine = engine is None
        self.engine = engine
        self.tracker = None
        self.log_path = None

        self._stopped = False
        self._start_time = None

    def _setup_logging(self):
        """Configure root logging and open the stage tracker."""
        log_level = getattr(logging, self.config.logging.level, logging.INFO)
        log_path = get_log_path(self.output_dirs, self.config.run_id)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        self.log_path = log_path
        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

        tracker_path = Path(self.output_dirs["raw"]).parent / self.config.tracker.db_filename
        self.tracker = PipelineTracker(tracker_path)

    def run(self, stages: Iterable[str] = STAGE_ORDER) -> dict:
        """Run the requested stages in pipeline order, then stop.

        Parameters
        ----------
        stages : iterable of str
            Any of 'ingest', 'process', 'analyze'. Always executed in that
            order regardless of the order given.

        Returns
        -------
        dict
            Per-stage results keyed by stage name, plus `statistics` from
            the tracker.

        Raises
        ------
        ValueError
            If an unknown stage name is given.
        """
        requested = set(stages)
        unknown = requested - set(STAGE_ORDER)
        if unknown:
            raise ValueError(f"Unknown stage(s): {sorted(unknown)}. Must be in {list(STAGE_ORDER)}")
        ordered = [s for s in STAGE_ORDER if s in requested]

        self._setup_logging()
        self._start_time = time.time()

        logger.info("=" * 60)
        logger.info("Starting Spectral Pipeline (run %s): %s", self.config.run_id, ", ".join(ordered))
        logger.info("=" * 60)

        results = {}
        try:
            if self.engine is None:
                self.engine = get_engine(self.config)
            init_schema(self.engine)
            repository = SpectraRepository(self.engine)

            if "ingest" in ordered:
                ingestor = CatalogIngestor(self.config, repository, self.tracker)
                results["ingest"] = ingestor.run()
                logger.info("✓ Ingestion complete: %d file(s), %d record(s) in database",
                            len(results["ingest"]), repository.count())

            if "process" in ordered:
                processor = SpectralProcessor(self.config, repository, self.output_dirs)
                results["process"] = processor.process()
                if results["process"]["rows"] > 0:
                    self._advance("processed")
                logger.info("✓ Processing complete: %d record(s)", results["process"]["rows"])

            if "analyze" in ordered:
                if "process" in results and results["process"]["rows"] == 0:
                    logger.warning("No processed features, skipping analysis")
                else:
                    analyzer = EnvironmentAnalyzer(self.config, self.output_dirs)
                    results["analyze"] = analyzer.run()
                    self._advance("analyzed")
                    logger.info("✓ Analysis complete: %d feature(s) tested",
                                len(results["analyze"]["tests"]))

            results["statistics"] = self.tracker.get_statistics()
        finally:
            self.stop()

        return results

    def _advance(self, stage: str):
        """Mark ``stage`` complete for every file waiting on it."""
        for record in self.tracker.get_pending_files(stage):
            self.tracker.mark_stage_complete(record["file_id"], stage)

    def stop(self):
        """Close tracker and engine and log the run summary. Safe to call multiple times."""
        if self._stopped:
            return
        self._stopped = True

        elapsed = time.time() - self._start_time if self._start_time else 0
        logger.info("=" * 60)
        logger.info("Pipeline stopped. Runtime: %.1f seconds", elapsed)

        if self.tracker:
            stats = self.tracker.get_statistics()
            logger.info("Statistics: files=%d, ingested=%d, analyzed=%d, failed=%d, records=%d",
                        stats.get('total', 0), stats.get('ingested', 0), stats.get('analyzed', 0),
                        stats.get('failed', 0), stats.get('total_records', 0))
            self.tracker.close()

        if self.engine is not None and self._owns_engine:
            self.engine.dispose()

        logger.info("=" * 60)
