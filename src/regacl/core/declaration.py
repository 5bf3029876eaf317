"""
Declared Configuration Models

Pydantic models for the declarative ACL resource:

```yaml
target: 'hklm:software'
owner: Administrators
inherit_from_parent: false
purge: off
permissions:
  - IdentityReference: CREATOR OWNER
    RegistryRights: FullControl
    AccessControlType: Allow
    IsInherited: false
    InheritanceFlags: ContainerInherit
    PropagationFlags: InheritOnly
```

Rights and flags are validated through the codecs as soon as the model
is built; identities are resolved later, when the desired state is built
for a reconciliation cycle.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import InvalidFlag, InvalidPermission
from .ace import AccessControlEntry, DesiredState, EntryType, PurgeMode
from .codec import inheritance, propagation
from .codec import permissions as rights_codec
from .identity import IdentityResolver


class DeclaredPermission(BaseModel):
    """One access control entry as written by the user."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    identity: str = Field(alias="IdentityReference", min_length=1)
    rights: str = Field(alias="RegistryRights")
    entry_type: EntryType = Field(default=EntryType.ALLOW, alias="AccessControlType")
    inherited: bool = Field(default=False, alias="IsInherited")
    inheritance_flags: str = Field(default="None", alias="InheritanceFlags")
    propagation_flags: str = Field(default="None", alias="PropagationFlags")

    @field_validator("rights")
    @classmethod
    def _check_rights(cls, value: str) -> str:
        # Tokens are sorted like decode() joins them; aliases are not expanded
        try:
            rights_codec.encode(value)
        except InvalidPermission as e:
            raise ValueError(str(e)) from e
        return ', '.join(sorted({token.strip() for token in value.split(',')}))

    @field_validator("inheritance_flags")
    @classmethod
    def _check_inheritance(cls, value: str) -> str:
        try:
            return inheritance.normalize(value)
        except InvalidFlag as e:
            raise ValueError(str(e)) from e

    @field_validator("propagation_flags")
    @classmethod
    def _check_propagation(cls, value: str) -> str:
        try:
            return propagation.normalize(value)
        except InvalidFlag as e:
            raise ValueError(str(e)) from e

    def resolve(self, resolver: IdentityResolver) -> AccessControlEntry:
        """Build a normalized entry, resolving the identity to a SID"""
        return AccessControlEntry(
            identity=resolver.resolve_sid(self.identity),
            rights=self.rights,
            entry_type=self.entry_type,
            inherited=self.inherited,
            inheritance_flags=self.inheritance_flags,
            propagation_flags=self.propagation_flags,
        )


class AclDeclaration(BaseModel):
    """Desired access control state for one target."""
    model_config = ConfigDict(populate_by_name=True)

    target: str = Field(min_length=1)
    owner: Optional[str] = None
    inherit_from_parent: Optional[bool] = None
    permissions: List[DeclaredPermission] = Field(default_factory=list)
    purge: PurgeMode = PurgeMode.OFF

    @field_validator("purge", mode="before")
    @classmethod
    def _parse_purge(cls, value: Any) -> PurgeMode:
        return PurgeMode.parse(value)

    def desired_state(self, resolver: IdentityResolver) -> DesiredState:
        """
        Resolve all identities and build the desired state.

        Raises:
            IdentityNotFound: If the owner or any entry identity is unknown
        """
        owner = resolver.resolve_sid(self.owner) if self.owner else None
        return DesiredState(
            owner=owner,
            inherit_from_parent=self.inherit_from_parent,
            entries=tuple(p.resolve(resolver) for p in self.permissions),
            purge=self.purge,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AclDeclaration":
        return cls.model_validate(data)
