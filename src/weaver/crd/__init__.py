"""CRD management system for the weaver operator."""

from .registry import CRDRegistry
from .base import CRDSpec, CRDStatus, CRDMetadata, CRDCondition, Resource

__all__ = ["CRDRegistry", "CRDSpec", "CRDStatus", "CRDMetadata", "CRDCondition", "Resource"]
