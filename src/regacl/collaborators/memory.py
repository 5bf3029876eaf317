"""
In-Memory Collaborators

Dictionary-backed implementations of the collaborator interfaces. The
object store keeps entries in the same raw shape the PowerShell layer
reports, so the reader exercises its full decode path against it.

Used for tests, dry runs and anything that must not touch a real registry.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.ace import AccessControlEntry
from ..core.codec import access_control_type, inheritance, permissions, propagation
from ..core.identity import IdentityResolver, is_capability_sid
from ..core.plan import (
    AddAccessRule,
    MutationPlan,
    RemoveAccessRule,
    RemoveAllOrdinaryACEs,
    RemoveNonInheritedACE,
    SetInheritanceProtection,
    SetOwner,
)
from ..core.target import Target
from ..errors import ExecutionFailed, IdentityNotFound, ReconcileError
from .base import IdentityResolution, MutationExecutor, ObjectAccess, RawACE, raw_identity

logger = logging.getLogger(__name__)

_RULE_FIELDS = ("RegistryRights", "AccessControlType", "InheritanceFlags", "PropagationFlags")


def raw_entry(ace: AccessControlEntry, inherited: Optional[bool] = None) -> RawACE:
    """Encode a normalized entry in the object-access layer's raw shape"""
    return {
        "IdentityReference": {"Value": ace.identity.display_name},
        "RegistryRights": permissions.encode(ace.rights),
        "AccessControlType": access_control_type.encode(ace.entry_type.value),
        "IsInherited": ace.inherited if inherited is None else inherited,
        "InheritanceFlags": inheritance.encode(ace.inheritance_flags),
        "PropagationFlags": propagation.encode(ace.propagation_flags),
    }


def _is_capability(raw: RawACE) -> bool:
    try:
        return is_capability_sid(raw_identity(raw))
    except (KeyError, ValueError):
        return False


class InMemoryIdentityDirectory(IdentityResolution):
    """Name <-> SID table"""

    def __init__(self, accounts: Optional[Dict[str, str]] = None):
        self._by_name: Dict[str, str] = {}
        self._by_sid: Dict[str, str] = {}
        for name, sid in (accounts or {}).items():
            self.add(name, sid)

    def add(self, name: str, sid: str) -> None:
        self._by_name[name.lower()] = sid
        self._by_sid.setdefault(sid, name)

    def name_to_id(self, name: str) -> Optional[str]:
        return self._by_name.get(name.lower())

    def id_to_name(self, sid: str) -> Optional[str]:
        return self._by_sid.get(sid)


@dataclass
class StoredObject:
    """One securable object as held by the in-memory store"""
    owner: str
    entries: List[RawACE] = field(default_factory=list)
    parent_entries: List[RawACE] = field(default_factory=list)
    protected: bool = False


class InMemoryObjectStore(ObjectAccess):
    """
    Securable objects keyed by canonical target path.

    Counts reads so callers can check that a cycle fetched only once.
    """

    def __init__(self):
        self.objects: Dict[str, StoredObject] = {}
        self.reads: Dict[str, int] = {}

    def add(
        self,
        target: Target,
        owner: str,
        entries: Optional[List[RawACE]] = None,
        parent_entries: Optional[List[RawACE]] = None,
    ) -> StoredObject:
        """
        Register an object.

        parent_entries are the entries the parent passes down; they are
        added as inherited entries unless the object is protected.
        """
        inherited = [dict(e, IsInherited=True) for e in (parent_entries or [])]
        obj = StoredObject(
            owner=owner,
            entries=list(entries or []) + inherited,
            parent_entries=list(parent_entries or []),
        )
        self.objects[target.full_path] = obj
        return obj

    def get(self, target: Target) -> StoredObject:
        return self.objects[target.full_path]

    def exists(self, target: Target) -> bool:
        return target.full_path in self.objects

    def get_owner(self, target: Target) -> str:
        self.reads[target.full_path] = self.reads.get(target.full_path, 0) + 1
        return self.get(target).owner

    def get_aces(self, target: Target) -> List[RawACE]:
        return copy.deepcopy(self.get(target).entries)


class InMemoryExecutor(MutationExecutor):
    """
    Applies plans to an InMemoryObjectStore.

    Works on a copy of the object and commits only when every operation
    succeeded, so a failed plan leaves the object untouched.
    """

    def __init__(self, store: InMemoryObjectStore, directory: IdentityResolution):
        self.store = store
        self.resolver = IdentityResolver(directory)
        self.executed: List[MutationPlan] = []

    def execute(self, plan: MutationPlan, target: Target) -> None:
        if not self.store.exists(target):
            raise ExecutionFailed("Target registry key doesn't exist", target=target.full_path)

        working = copy.deepcopy(self.store.get(target))
        for op in plan:
            try:
                self._apply(working, op)
            except ReconcileError as e:
                raise ExecutionFailed(
                    f"Failure: {e}", target=target.full_path, operation=op
                ) from e

        self.store.objects[target.full_path] = working
        self.executed.append(plan)
        logger.debug(f"{target.full_path}: applied {len(plan)} operation(s)")

    def _sid(self, raw: RawACE) -> Optional[str]:
        # An entry whose account cannot be resolved matches no rule
        try:
            return self.resolver.resolve_sid(raw_identity(raw)).sid
        except (IdentityNotFound, KeyError, ValueError):
            return None

    def _matches(self, raw: RawACE, ace: AccessControlEntry) -> bool:
        if raw["IsInherited"] or self._sid(raw) != ace.identity.sid:
            return False
        expected = raw_entry(ace, inherited=False)
        return all(raw[key] == expected[key] for key in _RULE_FIELDS)

    def _apply(self, obj: StoredObject, op) -> None:
        if isinstance(op, SetOwner):
            obj.owner = op.identity.display_name

        elif isinstance(op, RemoveAllOrdinaryACEs):
            obj.entries = [e for e in obj.entries if e.get("IsInherited") is True or _is_capability(e)]

        elif isinstance(op, RemoveNonInheritedACE):
            obj.entries = [
                e for e in obj.entries
                if e["IsInherited"] or self._sid(e) != op.identity.sid
            ]

        elif isinstance(op, AddAccessRule):
            entry = raw_entry(op.ace, inherited=False)
            if not any(self._matches(e, op.ace) for e in obj.entries):
                obj.entries.append(entry)

        elif isinstance(op, RemoveAccessRule):
            obj.entries = [e for e in obj.entries if not self._matches(e, op.ace)]

        elif isinstance(op, SetInheritanceProtection):
            obj.protected = op.block_inheritance
            obj.entries = [e for e in obj.entries if not e["IsInherited"]]
            if not op.block_inheritance:
                obj.entries.extend(dict(e, IsInherited=True) for e in obj.parent_entries)

        else:
            raise ExecutionFailed(f"Unsupported operation {op!r}", operation=op)
