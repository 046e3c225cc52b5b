"""Error taxonomy for the case-crossover build."""


class CrossoverError(Exception):
    """Base class for fatal errors that abort a build."""


class ConfigError(CrossoverError, ValueError):
    pass


class MalformedInputError(CrossoverError, ValueError):
    """Case or climate input violates its table contract."""


class InsufficientCandidatesError(CrossoverError):
    """A case's referent window holds fewer distinct dates than controls requested."""

    def __init__(self, case_id: int, available: int, required: int):
        self.case_id = case_id
        self.available = available
        self.required = required
        super().__init__(
            f"case {case_id}: referent window has {available} candidate dates, "
            f"{required} controls required"
        )


class InvariantViolationError(CrossoverError):
    """A stratum does not hold exactly one case row and N control rows."""

    def __init__(self, stratum_id, observed: int, expected: int, n_case_rows: int = 1):
        self.stratum_id = stratum_id
        self.observed = observed
        self.expected = expected
        self.n_case_rows = n_case_rows
        super().__init__(
            f"stratum {stratum_id}: {observed} rows ({n_case_rows} case rows), "
            f"expected {expected} rows with exactly 1 case row"
        )


class MissingCovariateWarning(UserWarning):
    """Crossover rows without climate covariates (kept as nulls)."""


def format_examples(values, k: int = 5) -> str:
    """First `k` offending values for an error message."""
    vals = list(values)
    more = f" (+{len(vals) - k} more)" if len(vals) > k else ""
    return ", ".join(str(v) for v in vals[:k]) + more
