"""Spectra stage contract.

Enforces the guarantee that a frame of spectrum records (after ingestion
normalization, or as read back from the database) carries every record
column and a valid primary key.
"""

import pandas as pd
from bulletcluster.contracts.base import require
from bulletcluster.database.schema import RECORD_COLUMNS


def assert_spectrum_frame(df: pd.DataFrame) -> None:
    """Enforce spectrum record contract.

    Parameters
    ----------
    df : pd.DataFrame
        Normalized catalog frame or a chunk read from ``spectra``.

    Raises
    ------
    ContractViolation
        If a record column is missing or ``spec_id`` is null or duplicated.
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Spectra contract violated: got {type(df)}, expected DataFrame"
    )

    for col in RECORD_COLUMNS:
        require(
            col in df.columns,
            f"Spectra contract violated: missing column '{col}'"
        )

    require(
        not df["spec_id"].isna().any(),
        "Spectra contract violated: spec_id contains nulls"
    )
    require(
        df["spec_id"].is_unique,
        "Spectra contract violated: spec_id values are not unique"
    )
