"""
Mutation Plan

Operations and the synthesizer that turns a snapshot and a desired state
into an ordered plan:

1. SetOwner
2. Permission changes (depending on the purge mode)
3. SetInheritanceProtection

The synthesizer performs no I/O. The plan is built fresh per cycle,
handed once to the executor and then discarded.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple, Union

from .ace import AccessControlEntry, ACLSnapshot, DesiredState, PurgeMode
from .comparator import inheritance_in_sync, owner_in_sync, permissions_in_sync
from .identity import Identity
from .target import SetupRequirement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetOwner:
    identity: Identity

    def describe(self) -> str:
        return f"set owner to {self.identity}"


@dataclass(frozen=True)
class RemoveAllOrdinaryACEs:
    """
    Remove every explicit entry on the object except capability entries.

    This covers entries the snapshot could not decode (orphaned SIDs,
    unknown flags). rules lists the decoded entries being removed, with
    package authority identities rebuilt in their plain form; it is for
    reporting only.
    """
    rules: Tuple[AccessControlEntry, ...] = ()

    def describe(self) -> str:
        return f"remove all ordinary entries ({len(self.rules)})"


@dataclass(frozen=True)
class RemoveNonInheritedACE:
    identity: Identity

    def describe(self) -> str:
        return f"remove non-inherited entries for {self.identity}"


@dataclass(frozen=True)
class AddAccessRule:
    ace: AccessControlEntry

    def describe(self) -> str:
        return f"add {self.ace}"


@dataclass(frozen=True)
class RemoveAccessRule:
    ace: AccessControlEntry

    def describe(self) -> str:
        return f"remove {self.ace}"


@dataclass(frozen=True)
class SetInheritanceProtection:
    """block_inheritance=True stops entries flowing down from the parent."""
    block_inheritance: bool

    def describe(self) -> str:
        state = "block" if self.block_inheritance else "allow"
        return f"{state} inheritance from parent"


Operation = Union[
    SetOwner,
    RemoveAllOrdinaryACEs,
    RemoveNonInheritedACE,
    AddAccessRule,
    RemoveAccessRule,
    SetInheritanceProtection,
]


@dataclass
class MutationPlan:
    """Ordered operations plus the setup needed to address the target"""
    operations: List[Operation] = field(default_factory=list)
    setup: Tuple[SetupRequirement, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def describe(self) -> List[str]:
        return [op.describe() for op in self.operations]


def _plain_rule(ace: AccessControlEntry) -> AccessControlEntry:
    return ace.with_identity(ace.identity.plain())


def _unique(entries) -> List[AccessControlEntry]:
    """Drop duplicates and capability entries, keeping declared order"""
    seen = set()
    result = []
    for ace in entries:
        if ace.is_capability or ace in seen:
            continue
        seen.add(ace)
        result.append(ace)
    return result


def _addable(entries) -> List[AccessControlEntry]:
    # Inherited entries belong to the parent object
    return [ace for ace in entries if not ace.inherited]


def _permission_operations(snapshot: ACLSnapshot, desired: DesiredState) -> List[Operation]:
    ops: List[Operation] = []
    wanted = _unique(desired.entries)
    explicit = snapshot.explicit_entries()

    if desired.purge is PurgeMode.ALL:
        ops.append(RemoveAllOrdinaryACEs(rules=tuple(_plain_rule(ace) for ace in explicit)))
        ops.extend(AddAccessRule(_plain_rule(ace)) for ace in _addable(wanted))

    elif desired.purge is PurgeMode.LISTED:
        for ace in _addable(wanted):
            if ace in snapshot.entries:
                ops.append(RemoveAccessRule(_plain_rule(ace)))

    else:
        handled = set()
        for ace in wanted:
            if ace in snapshot.entries or ace.identity in handled:
                continue
            handled.add(ace.identity)

            existing = [e for e in explicit if e.identity == ace.identity]
            if existing:
                # Clearing the identity drops its present entries too, so re-add them all
                ops.append(RemoveNonInheritedACE(existing[0].identity.plain()))
                group = [d for d in wanted if d.identity == ace.identity]
            else:
                group = [d for d in wanted if d.identity == ace.identity and d not in snapshot.entries]

            for entry in group:
                if entry.inherited:
                    logger.debug(f"Skipping inherited desired entry {entry}")
                    continue
                ops.append(AddAccessRule(_plain_rule(entry)))

    return ops


def synthesize(
    snapshot: ACLSnapshot,
    desired: DesiredState,
    setup: Tuple[SetupRequirement, ...] = (),
) -> MutationPlan:
    """
    Build the mutation plan converging snapshot towards desired.

    Args:
        snapshot: Current state of the target
        desired: Resolved desired state
        setup: Drive mounts the executor needs before addressing the target

    Returns:
        MutationPlan; empty if everything is already in sync
    """
    plan = MutationPlan(setup=tuple(setup))

    if not owner_in_sync(snapshot, desired):
        plan.operations.append(SetOwner(desired.owner))

    if not permissions_in_sync(snapshot, desired):
        plan.operations.extend(_permission_operations(snapshot, desired))

    if not inheritance_in_sync(snapshot, desired):
        plan.operations.append(SetInheritanceProtection(block_inheritance=not desired.inherit_from_parent))

    for line in plan.describe():
        logger.debug(f"{snapshot.target}: plan - {line}")
    return plan
