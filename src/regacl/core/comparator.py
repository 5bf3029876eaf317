"""
Reconciliation Comparator

Decides whether the current ordinary entries satisfy the desired entries
under a purge mode. Capability entries never reach this module.
"""

import logging
from typing import Iterable

from .ace import AccessControlEntry, ACLSnapshot, DesiredState, PurgeMode, sort_entries

logger = logging.getLogger(__name__)


def is_compliant(
    current: Iterable[AccessControlEntry],
    desired: Iterable[AccessControlEntry],
    mode: PurgeMode,
) -> bool:
    """
    Check whether the current entries are in sync with the desired ones.

    Args:
        current: Ordinary entries on the object
        desired: Declared entries
        mode: OFF (must be present), LISTED (must be absent), ALL (exact)

    Returns:
        True if no permission changes are needed
    """
    mode = PurgeMode.parse(mode)
    current_set = frozenset(sort_entries(current))
    desired_set = frozenset(sort_entries(desired))
    common = current_set & desired_set

    logger.debug(f"Permissions in sync? current - {[str(a) for a in sort_entries(current_set)]}")
    logger.debug(f"Permissions in sync? desired - {[str(a) for a in sort_entries(desired_set)]}")
    logger.debug(f"Intersect, purge {mode.value} - {[str(a) for a in sort_entries(common)]}")

    if mode is PurgeMode.ALL:
        # Desired is the entire ordinary ACL
        return current_set == desired_set
    if mode is PurgeMode.LISTED:
        # Any overlap is an entry still waiting to be removed
        return not common
    return common == desired_set


def owner_in_sync(snapshot: ACLSnapshot, desired: DesiredState) -> bool:
    return desired.owner is None or desired.owner == snapshot.owner


def inheritance_in_sync(snapshot: ACLSnapshot, desired: DesiredState) -> bool:
    return desired.inherit_from_parent is None or desired.inherit_from_parent == snapshot.inherit_from_parent


def permissions_in_sync(snapshot: ACLSnapshot, desired: DesiredState) -> bool:
    return is_compliant(snapshot.entries, desired.entry_set, desired.purge)


def state_in_sync(snapshot: ACLSnapshot, desired: DesiredState) -> bool:
    """Check owner, inheritance and permissions together"""
    return (
        owner_in_sync(snapshot, desired)
        and inheritance_in_sync(snapshot, desired)
        and permissions_in_sync(snapshot, desired)
    )
