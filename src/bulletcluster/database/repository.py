"""Insert-only access to the ``spectra`` table."""

import logging
from typing import Iterator, List, Optional, Tuple

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from bulletcluster.database.schema import RECORD_COLUMNS, TABLE_COLUMNS, spectra

__all__ = ['SpectraRepository']

logger = logging.getLogger(__name__)

# Keeps IN (...) lists under SQLite's bound-parameter limit
_LOOKUP_CHUNK = 500

_INT_COLUMNS = {"spec_id"}
_TEXT_COLUMNS = {"environment"}


def _to_records(df: pd.DataFrame) -> List[dict]:
    """Convert a record frame to driver-friendly dicts (NaN -> None, numpy -> builtins)."""
    records = []
    for row in df[RECORD_COLUMNS].itertuples(index=False, name=None):
        record = {}
        for col, value in zip(RECORD_COLUMNS, row):
            if pd.isna(value):
                record[col] = None
            elif col in _INT_COLUMNS:
                record[col] = int(value)
            elif col in _TEXT_COLUMNS:
                record[col] = str(value)
            else:
                record[col] = float(value)
        records.append(record)
    return records


class SpectraRepository:
    """Reads and writes spectrum records.

    Records are never updated: a ``spec_id`` that already exists keeps its
    first stored values.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def _existing_ids(self, conn, ids: List[int]) -> set:
        existing = set()
        for start in range(0, len(ids), _LOOKUP_CHUNK):
            chunk = ids[start:start + _LOOKUP_CHUNK]
            stmt = select(spectra.c.spec_id).where(spectra.c.spec_id.in_(chunk))
            existing.update(conn.execute(stmt).scalars())
        return existing

    def insert_records(self, df: pd.DataFrame) -> Tuple[int, int]:
        """Insert new records, skipping known ``spec_id`` values.

        Returns
        -------
        tuple of int
            (inserted, skipped)
        """
        if df.empty:
            return 0, 0

        frame = df.drop_duplicates(subset="spec_id", keep="first")
        ids = [int(v) for v in frame["spec_id"]]

        with self.engine.begin() as conn:
            existing = self._existing_ids(conn, ids)
            new = frame[~frame["spec_id"].isin(existing)]
            if not new.empty:
                conn.execute(spectra.insert(), _to_records(new))

        inserted = len(new)
        skipped = len(df) - inserted
        if skipped:
            logger.debug("Skipped %d duplicate record(s)", skipped)
        return inserted, skipped

    def count(self, environment: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(spectra)
        if environment is not None:
            stmt = stmt.where(spectra.c.environment == environment)
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar())

    def iter_frames(self, chunk_size: int) -> Iterator[pd.DataFrame]:
        """Yield the table in ``spec_id`` order, ``chunk_size`` rows at a time.

        Uses keyset pagination so each chunk is a separate bounded query.
        """
        last_id = None
        while True:
            stmt = select(spectra).order_by(spectra.c.spec_id).limit(chunk_size)
            if last_id is not None:
                stmt = stmt.where(spectra.c.spec_id > last_id)
            with self.engine.connect() as conn:
                chunk = pd.read_sql(stmt, conn)
            if chunk.empty:
                return
            yield chunk
            if len(chunk) < chunk_size:
                return
            last_id = int(chunk["spec_id"].iloc[-1])

    def fetch_all(self) -> pd.DataFrame:
        frames = list(self.iter_frames(chunk_size=10000))
        if not frames:
            return pd.DataFrame(columns=TABLE_COLUMNS)
        return pd.concat(frames, ignore_index=True)

    def environments(self) -> List[str]:
        """Distinct non-null environment labels, sorted."""
        stmt = (
            select(spectra.c.environment)
            .where(spectra.c.environment.is_not(None))
            .distinct()
            .order_by(spectra.c.environment)
        )
        with self.engine.connect() as conn:
            return list(conn.execute(stmt).scalars())
