"""Key rotation decision policy and sequencing engine."""

from keyrotator.rotation.engine import RotationEngine
from keyrotator.rotation.policy import Classification, classify, find_matching_key

__all__ = ["Classification", "RotationEngine", "classify", "find_matching_key"]
