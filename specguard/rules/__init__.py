"""
Static, versioned compliance catalog shipped with the package.
"""

from .catalog import (
    CatalogError,
    get_auto_compliance_patterns,
    get_critical_rules,
    get_knowledge_base,
)

__all__ = [
    "CatalogError",
    "get_auto_compliance_patterns",
    "get_critical_rules",
    "get_knowledge_base",
]
