"""
Failure types that escape an extraction request.

Element-local and resource-fetch problems never raise; they are logged and
replaced by defaults on the record. Only the request-level and page-level
failures below reach the caller.
"""


class ClickAuditError(Exception):
    """Base class for failures surfaced to the caller of an extraction."""


class InvalidUrlError(ClickAuditError):
    """The requested URL is missing or malformed. Raised before a browser is launched."""


class NavigationError(ClickAuditError):
    """The page could not be loaded (DNS, TLS, timeout, crash)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}")


class ExtractionError(ClickAuditError):
    """The page loaded but the walk over its elements could not complete."""
