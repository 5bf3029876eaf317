"""
ACL Snapshot Reader

Fetches the raw owner and entry list of a target once per reconciliation
cycle and normalizes them through the codecs and the identity resolver.

A pre-existing entry that fails to decode is dropped with a warning and
recorded on the snapshot as ACEDecodeSkipped; the rest of the snapshot is
still usable.
"""

import logging
from typing import Dict, List, Optional

from ..collaborators.base import ObjectAccess, RawACE, raw_identity
from ..errors import ACEDecodeSkipped, ReconcileError, TargetNotFound
from .ace import AccessControlEntry, ACLSnapshot, EntryType
from .codec import access_control_type, inheritance, permissions, propagation
from .identity import IdentityResolver
from .target import Target

logger = logging.getLogger(__name__)


class SnapshotReader:
    """
    Reads and caches ACL snapshots for a single reconciliation cycle.

    A reader must not outlive its cycle: create a fresh one per cycle so
    the object is re-read after every mutation.
    """

    def __init__(self, object_access: ObjectAccess, resolver: IdentityResolver):
        self.object_access = object_access
        self.resolver = resolver
        self._cache: Dict[str, ACLSnapshot] = {}

    def read(self, target: Target) -> ACLSnapshot:
        """
        Get the snapshot for a target, fetching it at most once.

        Raises:
            TargetNotFound: If the object doesn't exist
            IdentityNotFound: If the owner cannot be resolved
        """
        key = target.full_path
        if key in self._cache:
            return self._cache[key]

        logger.debug(f"Reading ACL for {key}")

        if not self.object_access.exists(target):
            raise TargetNotFound("Target registry key doesn't exist", target=key)

        raw_owner = self.object_access.get_owner(target)
        owner = self.resolver.resolve_sid(str(raw_owner).strip())
        logger.debug(f"{key} current owner: {owner.display_name} ({owner.sid})")

        raw_aces = self.object_access.get_aces(target) or []
        # A single entry may come back as a bare object
        if isinstance(raw_aces, dict):
            raw_aces = [raw_aces]
        logger.debug(f"{key} current ACE list: {raw_aces}")

        entries: List[AccessControlEntry] = []
        capability_entries: List[AccessControlEntry] = []
        skipped: List[ACEDecodeSkipped] = []

        for raw in raw_aces:
            try:
                ace = self.decode_entry(raw)
            except (ReconcileError, KeyError, TypeError, ValueError) as e:
                record = ACEDecodeSkipped(raw, e, target=key)
                logger.warning(f"Pre-existing ACE on {key} {raw!r} ignored due to: {e}")
                skipped.append(record)
                continue

            if ace.is_capability:
                capability_entries.append(ace)
            else:
                entries.append(ace)

        # One inherited entry is enough to know the object inherits
        inherit = any(ace.inherited for ace in entries + capability_entries)

        snapshot = ACLSnapshot(
            target=key,
            owner=owner,
            inherit_from_parent=inherit,
            entries=frozenset(entries),
            capability_entries=frozenset(capability_entries),
            skipped=skipped,
        )
        self._cache[key] = snapshot

        logger.debug(
            f"{key}: {len(entries)} ordinary, {len(capability_entries)} capability, "
            f"{len(skipped)} skipped, inherit_from_parent={inherit}"
        )
        return snapshot

    def decode_entry(self, raw: RawACE) -> AccessControlEntry:
        """Normalize one raw entry; raises on any undecodable field"""
        # Capability SIDs pass through the resolver unresolved
        identity = self.resolver.resolve_sid(raw_identity(raw))

        inherited = raw['IsInherited']
        if not isinstance(inherited, bool):
            raise ValueError(f"Invalid IsInherited {inherited!r}")

        return AccessControlEntry(
            identity=identity,
            rights=permissions.decode(raw['RegistryRights']),
            entry_type=EntryType(access_control_type.decode(raw['AccessControlType'])),
            inherited=inherited,
            inheritance_flags=inheritance.decode(raw['InheritanceFlags']),
            propagation_flags=propagation.decode(raw['PropagationFlags']),
        )

    def invalidate(self, target: Optional[Target] = None) -> None:
        """Drop cached snapshots (all, or one target's)"""
        if target is None:
            self._cache.clear()
        else:
            self._cache.pop(target.full_path, None)
