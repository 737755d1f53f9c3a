"""SQLite-based catalog file stage tracker.

Tracks raw catalog files through pipeline stages (ingested, processed, analyzed).
Lets repeated runs skip files whose records are already in the database.
"""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, List

logger = logging.getLogger(__name__)

STAGES = ('ingested', 'processed', 'analyzed')


class PipelineTracker:
    """Tracks catalog files as they move through pipeline stages.

    **Pipeline Stages:**

    1. **Ingested**: records of the file are in the ``spectra`` table
    2. **Processed**: spectral features were derived from the table
    3. **Analyzed**: environment statistics were computed

    Processing and analysis work on the whole table, so those stages are
    advanced for every ingested file at once.

    **Database Schema:**

    SQLite table ``catalog_files``:

    - file_id: catalog file name (e.g., bullet_sdss_2024.csv)
    - source_path: absolute path of the file
    - status: pending, processing, completed, failed
    - Timestamps: ingested_at, processed_at, analyzed_at (ISO format)
    - Metadata: file_size_mb, num_records, num_skipped, error_message

    Typical usage::

        tracker = PipelineTracker(db_path)
        if tracker.should_process(file_id, "ingested"):
            ...
            tracker.mark_stage_complete(file_id, "ingested", num_records=120)
        tracker.close()
    """

    def __init__(self, db_path: Path | str):
        """
        Parameters
        ----------
        db_path : Path or str
            Path to SQLite database file. Created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = None
        self._init_database()
        logger.info("Pipeline tracker initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self):
        """Create tracker schema if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS catalog_files (
                file_id TEXT PRIMARY KEY,
                source_path TEXT,

                ingested_at TEXT,
                processed_at TEXT,
                analyzed_at TEXT,

                status TEXT DEFAULT 'pending',
                error_message TEXT,

                file_size_mb REAL,
                num_records INTEGER,
                num_skipped INTEGER,

                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_status ON catalog_files(status)")
        conn.commit()

    def register_file(self, file_id: str, source_path: Optional[Path] = None) -> bool:
        """Register a catalog file for tracking.

        Returns
        -------
        bool
            True if newly registered, False if already known. Safe to call
            repeatedly.
        """
        conn = self._get_connection()

        cursor = conn.execute("SELECT file_id FROM catalog_files WHERE file_id = ?", (file_id,))
        if cursor.fetchone():
            return False

        file_size_mb = None
        if source_path is not None and Path(source_path).exists():
            file_size_mb = Path(source_path).stat().st_size / (1024 * 1024)

        conn.execute("""
            INSERT INTO catalog_files (file_id, source_path, file_size_mb, status)
            VALUES (?, ?, ?, 'pending')
        """, (file_id, str(source_path) if source_path else None, file_size_mb))
        conn.commit()

        logger.debug("Registered file: %s", file_id)
        return True

    def mark_stage_complete(self, file_id: str, stage: str,
                            num_records: Optional[int] = None,
                            num_skipped: Optional[int] = None,
                            error: Optional[str] = None):
        """Mark a stage as complete or failed for a file.

        Parameters
        ----------
        file_id : str
            File identifier (registered via register_file).
        stage : str
            'ingested', 'processed' or 'analyzed'.
        num_records, num_skipped : int, optional
            Inserted and skipped record counts ('ingested' stage).
        error : str, optional
            Error message. Sets status to 'failed' and leaves the stage
            timestamp unset, so the next run retries the stage.

        Raises
        ------
        ValueError
            If stage is not one of the pipeline stages.
        """
        if stage not in STAGES:
            raise ValueError(f"Invalid stage: {stage}. Must be one of {list(STAGES)}")

        now = datetime.now(timezone.utc).isoformat()
        conn = self._get_connection()

        if error:
            conn.execute("""
                UPDATE catalog_files
                SET status = 'failed', error_message = ?, updated_at = ?
                WHERE file_id = ?
            """, (error, now, file_id))
        else:
            new_status = 'completed' if stage == 'analyzed' else 'processing'
            conn.execute(f"""
                UPDATE catalog_files
                SET {stage}_at = ?,
                    num_records = COALESCE(?, num_records),
                    num_skipped = COALESCE(?, num_skipped),
                    status = ?,
                    error_message = NULL,
                    updated_at = ?
                WHERE file_id = ?
            """, (now, num_records, num_skipped, new_status, now, file_id))
        conn.commit()

        logger.debug("Marked %s %s: %s", stage, "failed" if error else "complete", file_id)

    def get_file_status(self, file_id: str) -> Optional[Dict]:
        """Return the tracker row of a file as a dict, or None if unknown."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM catalog_files WHERE file_id = ?", (file_id,)).fetchone()
        return dict(row) if row else None

    def get_pending_files(self, stage: Optional[str] = None,
                          limit: Optional[int] = None) -> List[Dict]:
        """Files awaiting a stage.

        Parameters
        ----------
        stage : str, optional
            - 'ingested': registered but not ingested
            - 'processed': ingested but not processed
            - 'analyzed': processed but not analyzed

            If None, returns files that are neither completed nor failed.
        limit : int, optional
            Max files to return.

        Returns
        -------
        list of dict
            Ordered by file_id.
        """
        if stage == 'ingested':
            condition = "ingested_at IS NULL"
        elif stage == 'processed':
            condition = "ingested_at IS NOT NULL AND processed_at IS NULL"
        elif stage == 'analyzed':
            condition = "processed_at IS NOT NULL AND analyzed_at IS NULL"
        elif stage is None:
            condition = "status != 'completed' AND status != 'failed'"
        else:
            raise ValueError(f"Invalid stage: {stage}. Must be one of {list(STAGES)}")

        query = f"SELECT * FROM catalog_files WHERE {condition} ORDER BY file_id"
        params = []
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        conn = self._get_connection()
        return [dict(row) for row in conn.execute(query, params).fetchall()]

    def get_statistics(self) -> Dict:
        """Summary counts.

        Returns
        -------
        dict
            `total`, per-stage counts (`ingested`, `processed`, `analyzed`),
            per-status counts (`completed`, `processing`, `pending`,
            `failed`) and `total_records`.
        """
        conn = self._get_connection()
        row = conn.execute("""
            SELECT
                COUNT(*) as total,
                COUNT(ingested_at) as ingested,
                COUNT(processed_at) as processed,
                COUNT(analyzed_at) as analyzed,
                COALESCE(SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END), 0) as completed,
                COALESCE(SUM(CASE WHEN status = 'processing' THEN 1 ELSE 0 END), 0) as processing,
                COALESCE(SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END), 0) as pending,
                COALESCE(SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END), 0) as failed,
                COALESCE(SUM(num_records), 0) as total_records
            FROM catalog_files
        """).fetchone()
        return dict(row) if row else {}

    def should_process(self, file_id: str, stage: str) -> bool:
        """True if the stage has not been completed for the file (or it is unknown)."""
        if stage not in STAGES:
            raise ValueError(f"Invalid stage: {stage}. Must be one of {list(STAGES)}")
        status = self.get_file_status(file_id)
        if not status:
            return True
        return status[f"{stage}_at"] is None

    def close(self):
        """Close database connection. Safe to call multiple times."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
