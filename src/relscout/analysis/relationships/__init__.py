"""Foreign key relationship discovery.

Collects type-compatible candidates, enriches them with join statistics,
validates them through a semantic oracle, and merges the verdicts with
declared constraints and column feature hints.
"""

from relscout.analysis.relationships.collector import CandidateCollector
from relscout.analysis.relationships.config import DiscoveryConfig
from relscout.analysis.relationships.db_models import (
    DiscoveredRelationship,
    RejectedRelationshipCandidate,
)
from relscout.analysis.relationships.discovery import RelationshipDiscoveryService
from relscout.analysis.relationships.joins import compute_join_statistics, infer_cardinality
from relscout.analysis.relationships.models import (
    DiscoveryResult,
    JoinStatistics,
    OracleRequest,
    RejectedCandidate,
    RelationshipCandidate,
    ValidatedRelationship,
    ValidationOutcome,
    ValidationStatus,
    ValidationVerdict,
)
from relscout.analysis.relationships.store import (
    RelationshipStore,
    SqlAlchemyRelationshipStore,
)
from relscout.analysis.relationships.validator import RelationshipValidator, SemanticOracle

__all__ = [
    # Main entry points
    "RelationshipDiscoveryService",
    "CandidateCollector",
    "RelationshipValidator",
    # Components
    "compute_join_statistics",
    "infer_cardinality",
    "DiscoveryConfig",
    # Protocols
    "SemanticOracle",
    "RelationshipStore",
    "SqlAlchemyRelationshipStore",
    # Models
    "JoinStatistics",
    "RelationshipCandidate",
    "OracleRequest",
    "ValidationVerdict",
    "ValidationStatus",
    "ValidationOutcome",
    "ValidatedRelationship",
    "RejectedCandidate",
    "DiscoveryResult",
    # DB Models
    "DiscoveredRelationship",
    "RejectedRelationshipCandidate",
]
