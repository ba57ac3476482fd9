"""Exception hierarchy for relationship discovery.

Expected per-item failures are reported through ``Result`` or recorded on the
item; exceptions here are raised when an operation cannot proceed.
"""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for all relscout errors."""


class SchemaUnavailableError(DiscoveryError):
    """Column metadata for a datasource could not be loaded."""

    def __init__(
        self, message: str, project_id: str | None = None, datasource_id: str | None = None
    ):
        super().__init__(message)
        self.project_id = project_id
        self.datasource_id = datasource_id


class DatasourceConnectionError(DiscoveryError):
    """No query-capable connection to the customer database could be opened."""

    def __init__(
        self, message: str, project_id: str | None = None, datasource_id: str | None = None
    ):
        super().__init__(message)
        self.project_id = project_id
        self.datasource_id = datasource_id


class ReadOnlyQueryError(DiscoveryError):
    """A statement that could modify data was sent to a customer database."""

    def __init__(self, sql: str):
        preview = " ".join(sql.split())[:80]
        super().__init__(f"Only read-only statements are allowed: {preview!r}")
        self.sql = sql


class StatisticsCollectionError(DiscoveryError):
    """A statistics query for one candidate failed."""

    def __init__(self, message: str, step: str, candidate_label: str | None = None):
        super().__init__(message)
        self.step = step
        self.candidate_label = candidate_label


class OracleError(DiscoveryError):
    """The semantic oracle could not produce a verdict for a candidate."""

    def __init__(self, message: str, candidate_label: str | None = None):
        super().__init__(message)
        self.candidate_label = candidate_label


class OracleResponseError(OracleError):
    """The oracle replied, but the reply could not be parsed into a verdict."""

    def __init__(self, message: str, raw_response: str = "", candidate_label: str | None = None):
        super().__init__(message, candidate_label=candidate_label)
        self.raw_response = raw_response


class ValidationBatchError(DiscoveryError):
    """Every candidate in a validation batch failed."""

    def __init__(self, total: int, errors: list[str]):
        first = errors[0] if errors else "unknown error"
        super().__init__(f"All {total} candidate validations failed (first error: {first})")
        self.total = total
        self.errors = errors


class DiscoveryCancelledError(DiscoveryError):
    """Cancellation fired before any work completed."""
