"""
Collaborator Interfaces

Abstract interfaces for everything the engine does not do itself:
- ObjectAccess: read owner and raw entries of a securable object
- IdentityResolution: translate account names and SIDs
- MutationExecutor: apply a whole mutation plan as one transaction

Raw entries use the object-access layer's field names and numeric values:

    {
        "IdentityReference": {"Value": "BUILTIN\\Administrators"},
        "RegistryRights": 983103,
        "AccessControlType": 0,
        "IsInherited": false,
        "InheritanceFlags": 1,
        "PropagationFlags": 2
    }
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ..core.plan import MutationPlan
    from ..core.target import Target

RawACE = Dict[str, Any]


def raw_identity(raw: RawACE) -> str:
    """Get the account string of a raw entry (nested {'Value': ...} or plain)"""
    reference = raw["IdentityReference"]
    if isinstance(reference, dict):
        reference = reference["Value"]
    if not isinstance(reference, str) or not reference:
        raise ValueError(f"Invalid IdentityReference {reference!r}")
    return reference


class ObjectAccess(ABC):
    """Read access to securable objects."""

    @abstractmethod
    def exists(self, target: Target) -> bool:
        """Check whether the object exists."""
        pass

    @abstractmethod
    def get_owner(self, target: Target) -> str:
        """Get the raw owner account string."""
        pass

    @abstractmethod
    def get_aces(self, target: Target) -> List[RawACE]:
        """Get the raw access control entries, in object order."""
        pass


class IdentityResolution(ABC):
    """External name <-> SID translation."""

    @abstractmethod
    def name_to_id(self, name: str) -> Optional[str]:
        """Get the SID for an account name, or None if unknown."""
        pass

    @abstractmethod
    def id_to_name(self, sid: str) -> Optional[str]:
        """Get the account name for a SID, or None if unknown."""
        pass


class MutationExecutor(ABC):
    """
    Applies a mutation plan to a target.

    The whole plan is one logical transaction: implementations either
    apply every operation or raise ExecutionFailed.
    """

    @abstractmethod
    def execute(self, plan: MutationPlan, target: Target) -> None:
        """Apply the plan; raise ExecutionFailed on any failure."""
        pass
