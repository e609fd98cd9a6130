"""Error types for Visit Revenue Reports"""


class VisitReportsError(Exception):
    """Base class for all report errors"""


class NotFoundError(VisitReportsError):
    """A company, customer or visit reference does not resolve"""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class FetchError(VisitReportsError):
    """The underlying storage backend call failed"""


class InvoiceConflictError(VisitReportsError):
    """The invoiced flag changed since the caller last read it"""

    def __init__(self, visit_id: str, expected: bool, actual: bool):
        self.visit_id = visit_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Visit {visit_id} invoiced flag is {actual}, expected {expected}"
        )
