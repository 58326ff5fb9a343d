"""
Standard tree maintenance, hierarchy validation and bulk import
"""

from .hierarchy_validator import HierarchyValidator
from .standard_import import StandardImportService
from .standard_tree import StandardTreeService

__all__ = ["HierarchyValidator", "StandardImportService", "StandardTreeService"]
