"""Pipeline phase implementations."""

from relscout.pipeline.phases.base import BasePhase
from relscout.pipeline.phases.relationship_discovery_phase import RelationshipDiscoveryPhase

__all__ = ["BasePhase", "RelationshipDiscoveryPhase"]
