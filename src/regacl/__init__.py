"""
regacl - Registry ACL reconciliation engine

Compares a registry key's owner, inheritance protection and access control
entries against a declared state and produces the ordered mutation plan
that converges it.
"""

from .core import AclDeclaration, Reconciler, ReconcileResult, MutationPlan, PurgeMode

__version__ = "0.1.0"

__all__ = [
    "AclDeclaration",
    "Reconciler",
    "ReconcileResult",
    "MutationPlan",
    "PurgeMode",
    "__version__",
]
