"""Types shared across packages.

Domain models stay with their packages: column metadata in
relscout.schema.models, candidates and verdicts in
relscout.analysis.relationships.models.
"""

from relscout.core.models.base import (
    Cardinality,
    ColumnRef,
    ProgressCallback,
    Provenance,
    Result,
)

__all__ = [
    "Cardinality",
    "ColumnRef",
    "ProgressCallback",
    "Provenance",
    "Result",
]
