"""Recoverable error kinds raised by the data services.

None of these is fatal. Each is caught at the owning service's boundary and
turned into degraded-but-valid data plus an advisory message.
"""


class TokenSignalsError(Exception):
    """Base class for recoverable data errors."""


class FetchFailure(TokenSignalsError):
    """An upstream fetch failed at the network or HTTP level, or returned garbage."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"{source}: {message}")


class MalformedRecord(TokenSignalsError):
    """A single record in an otherwise valid batch could not be normalized."""

    def __init__(self, index: int, field: str, message: str):
        self.index = index
        self.field = field
        super().__init__(f"record {index}: field '{field}' {message}")


class ProbeFailure(TokenSignalsError):
    """The connectivity probe did not return a 2xx response."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"{url}: {message}")
