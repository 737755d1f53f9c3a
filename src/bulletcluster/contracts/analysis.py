"""Analysis stage contract.

Enforces the guarantee that environment analysis tables have their
required structure. Scientific correctness of the statistics is the
analyzer's responsibility.
"""

import pandas as pd
from bulletcluster.contracts.base import require


TEST_COLUMNS = [
    "feature",
    "n_groups",
    "n_obs",
    "statistic",
    "p_value",
    "eta_squared",
    "significant",
    "note",
]


def assert_analysis_output(summary: pd.DataFrame, tests: pd.DataFrame) -> None:
    """Enforce analysis stage contract.

    Parameters
    ----------
    summary : pd.DataFrame
        Per-environment summary from EnvironmentAnalyzer.summarize()
    tests : pd.DataFrame
        Per-feature test table from EnvironmentAnalyzer.test_environment_dependence()

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    require(
        isinstance(summary, pd.DataFrame) and isinstance(tests, pd.DataFrame),
        "Analysis contract violated: outputs must be DataFrames"
    )

    for col in TEST_COLUMNS:
        require(
            col in tests.columns,
            f"Analysis contract violated: test table missing column '{col}'"
        )

    require(
        tests["feature"].is_unique,
        "Analysis contract violated: one test row per feature expected"
    )

    if len(tests) > 0:
        p = tests["p_value"].dropna()
        require(
            ((p >= 0) & (p <= 1)).all(),
            "Analysis contract violated: p_value outside [0, 1]"
        )

    require(
        summary.index.is_unique,
        "Analysis contract violated: summary has duplicate environments"
    )
