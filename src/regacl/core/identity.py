"""
Identity Model and Resolver Adapter

An Identity is a stable security identifier (SID) plus a display name.
Two identities are equal iff their SIDs are equal; the name is carried
only for rendering and logging.

Two classes of identity need special handling:
- Capability SIDs (S-1-15-3-...) are intentionally not resolvable and
  always pass through as their own identifier.
- Names in the APPLICATION PACKAGE AUTHORITY namespace do not round-trip
  through name resolution, so only the trailing component is used.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ..errors import IdentityNotFound

if TYPE_CHECKING:
    from ..collaborators.base import IdentityResolution

logger = logging.getLogger(__name__)

CAPABILITY_SID_PREFIX = 'S-1-15-3-'
PACKAGE_AUTHORITY = 'APPLICATION PACKAGE AUTHORITY'


def is_capability_sid(value: str) -> bool:
    """Check whether a SID or account string is a capability SID"""
    return str(value).startswith(CAPABILITY_SID_PREFIX)


def in_package_authority(name: str) -> bool:
    """Check whether an account name lives in the package authority namespace"""
    return PACKAGE_AUTHORITY in str(name)


def strip_package_authority(name: str) -> str:
    """
    Keep only the trailing component of a package authority account.

    APPLICATION PACKAGE AUTHORITY\\ALL APPLICATION PACKAGES -> ALL APPLICATION PACKAGES
    """
    parts = str(name).split('\\')
    return parts[1] if len(parts) > 1 else parts[0]


@dataclass(frozen=True, eq=False)
class Identity:
    """
    A resolved security principal.

    Equality and hashing use the SID only.
    """
    sid: str
    name: Optional[str] = field(default=None)

    @property
    def is_capability(self) -> bool:
        return is_capability_sid(self.sid)

    @property
    def in_package_authority(self) -> bool:
        return self.name is not None and in_package_authority(self.name)

    @property
    def display_name(self) -> str:
        """Name to hand to the executor; falls back to the SID"""
        return self.name or self.sid

    def plain(self) -> "Identity":
        """
        Rebuild a package authority identity with its plain trailing name.

        Raw package authority entries cannot be removed by their full
        account string, so removal rules use the stripped form.
        """
        if not self.in_package_authority:
            return self
        return Identity(sid=self.sid, name=strip_package_authority(self.name))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self.sid == other.sid

    def __hash__(self) -> int:
        return hash(self.sid)

    def __lt__(self, other: "Identity") -> bool:
        return self.sid < other.sid

    def __str__(self) -> str:
        return self.display_name


class IdentityResolver:
    """
    Adapter over an external name <-> SID resolution service.

    Applies the capability SID carve-out and the package authority string
    surgery before and after delegating.
    """

    def __init__(self, backend: "IdentityResolution"):
        self.backend = backend

    def resolve_name(self, identity) -> str:
        """
        Resolve an identity (or SID string) to an account name.

        Args:
            identity: Identity or raw SID string

        Returns:
            Account name; capability SIDs come back unchanged

        Raises:
            IdentityNotFound: If the backend cannot name the SID
        """
        sid = identity.sid if isinstance(identity, Identity) else str(identity)

        if is_capability_sid(sid):
            return sid

        name = self.backend.id_to_name(sid)
        if name and in_package_authority(name):
            name = strip_package_authority(name)
        if not name:
            raise IdentityNotFound(f"Could not find an account for sid {sid}", value=sid)
        return name

    def resolve_sid(self, name: str) -> Identity:
        """
        Resolve an account name (or SID string) to an Identity.

        Raises:
            IdentityNotFound: If the backend cannot resolve the account
        """
        account = str(name)
        if in_package_authority(account):
            account = strip_package_authority(account)

        if is_capability_sid(account):
            return Identity(sid=account, name=account)

        sid = self.backend.name_to_id(account)
        if not sid:
            raise IdentityNotFound(f"Could not find a SID for account {account}", value=name)

        logger.debug(f"Resolved account {name!r} to {sid}")
        return Identity(sid=sid, name=str(name))
