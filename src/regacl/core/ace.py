"""
ACL Data Model

- AccessControlEntry: one normalized rule on the securable object
- ACLSnapshot: the object's current owner, inheritance state and entries
- DesiredState: what the declaration asks for, with identities resolved
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, FrozenSet, List, Optional, Tuple

from .codec import permissions
from .identity import Identity


class EntryType(str, Enum):
    """Access control entry type"""
    ALLOW = "Allow"
    DENY = "Deny"


class PurgeMode(str, Enum):
    """
    How the desired entry list relates to the object's full entry list.

    - OFF: desired entries must be present, others are left alone
    - LISTED: desired entries must be absent
    - ALL: desired entries are the entire (ordinary) ACL
    """
    OFF = "off"
    LISTED = "listed"
    ALL = "all"

    @classmethod
    def parse(cls, value: Any) -> "PurgeMode":
        """Accept enum values, names, and a boolean/'false' for OFF"""
        if isinstance(value, cls):
            return value
        if value is False or value is None:
            return cls.OFF
        text = str(value).strip().lower()
        if text == "false":
            return cls.OFF
        return cls(text)


@dataclass(frozen=True)
class AccessControlEntry:
    """
    Normalized access control entry.

    All fields take part in equality; identity equality is by SID.
    Rights and flags are held in their symbolic form.
    """
    identity: Identity
    rights: str
    entry_type: EntryType = EntryType.ALLOW
    inherited: bool = False
    inheritance_flags: str = "None"
    propagation_flags: str = "None"

    @property
    def mask(self) -> int:
        return permissions.encode(self.rights)

    @property
    def is_capability(self) -> bool:
        return self.identity.is_capability

    def sort_key(self) -> Tuple:
        return (
            self.identity.sid,
            self.rights,
            self.entry_type.value,
            self.inherited,
            self.inheritance_flags,
            self.propagation_flags,
        )

    def with_identity(self, identity: Identity) -> "AccessControlEntry":
        return replace(self, identity=identity)

    def __str__(self) -> str:
        flags = f"{self.inheritance_flags}/{self.propagation_flags}"
        inherited = " (inherited)" if self.inherited else ""
        return f"{self.identity}: {self.entry_type.value} {self.rights} [{flags}]{inherited}"


def sort_entries(entries) -> List[AccessControlEntry]:
    """Deduplicate structurally and order by identity for deterministic output"""
    return sorted(set(entries), key=lambda ace: ace.sort_key())


@dataclass
class ACLSnapshot:
    """
    Normalized view of one object's access control state.

    Capability entries are kept aside: they are never compared and never
    removed or added by the engine.
    """
    target: str
    owner: Identity
    inherit_from_parent: bool
    entries: FrozenSet[AccessControlEntry] = field(default_factory=frozenset)
    capability_entries: FrozenSet[AccessControlEntry] = field(default_factory=frozenset)
    skipped: List[Any] = field(default_factory=list)

    def explicit_entries(self) -> List[AccessControlEntry]:
        """Ordinary entries set on the object itself (not inherited)"""
        return [ace for ace in sort_entries(self.entries) if not ace.inherited]

    def entries_for(self, identity: Identity) -> List[AccessControlEntry]:
        return [ace for ace in sort_entries(self.entries) if ace.identity == identity]


@dataclass
class DesiredState:
    """
    Resolved desired state for one target.

    owner and inherit_from_parent may be None, meaning unmanaged.
    """
    owner: Optional[Identity] = None
    inherit_from_parent: Optional[bool] = None
    entries: Tuple[AccessControlEntry, ...] = ()
    purge: PurgeMode = PurgeMode.OFF

    @property
    def entry_set(self) -> FrozenSet[AccessControlEntry]:
        return frozenset(ace for ace in self.entries if not ace.is_capability)
