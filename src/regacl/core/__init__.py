"""
Registry ACL Reconciliation Core

Codecs, identity handling, snapshot reading, comparison and mutation plan
synthesis.
"""

from .ace import AccessControlEntry, ACLSnapshot, DesiredState, EntryType, PurgeMode
from .codec import PermissionCodec, FlagCodec
from .comparator import is_compliant
from .declaration import AclDeclaration, DeclaredPermission
from .identity import Identity, IdentityResolver
from .plan import (
    MutationPlan,
    SetOwner,
    RemoveAllOrdinaryACEs,
    RemoveNonInheritedACE,
    AddAccessRule,
    RemoveAccessRule,
    SetInheritanceProtection,
    synthesize,
)
from .reader import SnapshotReader
from .reconciler import Reconciler, ReconcileResult
from .target import Target, RootKind, SetupRequirement, parse_target

__all__ = [
    # Model
    "AccessControlEntry",
    "ACLSnapshot",
    "DesiredState",
    "EntryType",
    "PurgeMode",
    "AclDeclaration",
    "DeclaredPermission",
    # Codecs
    "PermissionCodec",
    "FlagCodec",
    # Identity
    "Identity",
    "IdentityResolver",
    # Target
    "Target",
    "RootKind",
    "SetupRequirement",
    "parse_target",
    # Engine
    "SnapshotReader",
    "is_compliant",
    "MutationPlan",
    "SetOwner",
    "RemoveAllOrdinaryACEs",
    "RemoveNonInheritedACE",
    "AddAccessRule",
    "RemoveAccessRule",
    "SetInheritanceProtection",
    "synthesize",
    "Reconciler",
    "ReconcileResult",
]
