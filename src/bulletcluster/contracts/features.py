"""Feature stage contract.

Enforces the guarantee that feature derivation keeps one row per input
record and adds every promised feature column.
"""

import pandas as pd
from bulletcluster.contracts.base import require


def assert_features(df: pd.DataFrame, feature_columns, expected_rows: int) -> None:
    """Enforce feature derivation contract.

    Parameters
    ----------
    df : pd.DataFrame
        Output of compute_line_features()
    feature_columns : iterable of str
        Columns the derivation promised to add
    expected_rows : int
        Number of input records

    Raises
    ------
    ContractViolation
        If rows were added or dropped, or a feature column is missing.
    """
    require(
        len(df) == expected_rows,
        f"Feature contract violated: got {len(df)} rows, expected {expected_rows}"
    )

    for col in feature_columns:
        require(
            col in df.columns,
            f"Feature contract violated: missing feature '{col}'"
        )
        require(
            pd.api.types.is_float_dtype(df[col]),
            f"Feature contract violated: '{col}' dtype is {df[col].dtype}, expected float"
        )
