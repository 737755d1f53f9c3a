"""Exception raised for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing caller to handle pipeline bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or a
    malformed catalog file. It means a pipeline stage did not produce the
    invariants it promised.

    Key distinction:
    - ValueError: User/config/catalog error (ConfigurationError, CatalogFormatError)
    - ContractViolation: Pipeline bug (programmer error)
    """
    pass
