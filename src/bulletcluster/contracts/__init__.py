"""Pipeline contracts: fail-fast enforcement of stage invariants.

Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Stages handle data edge cases
"""

from bulletcluster.contracts.failure import ContractViolation
from bulletcluster.contracts.base import require
from bulletcluster.contracts.spectra import assert_spectrum_frame
from bulletcluster.contracts.features import assert_features
from bulletcluster.contracts.analysis import assert_analysis_output

__all__ = [
    "ContractViolation",
    "require",
    "assert_spectrum_frame",
    "assert_features",
    "assert_analysis_output",
]
