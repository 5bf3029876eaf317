"""
Tests for identities and the resolver adapter
"""

import pytest
from unittest.mock import MagicMock

from regacl.core.identity import (
    Identity,
    IdentityResolver,
    in_package_authority,
    is_capability_sid,
    strip_package_authority,
)
from regacl.errors import IdentityNotFound

CAPABILITY_SID = "S-1-15-3-1024-1065365936-1281604716-3511738428-1654721687-432734479-3232135806-4053264122-3456934681"


class TestIdentity:
    """Identity equality and helpers"""

    def test_equality_is_by_sid(self):
        assert Identity("S-1-5-32-544", "Administrators") == Identity("S-1-5-32-544", "BUILTIN\\Administrators")
        assert Identity("S-1-5-32-544") != Identity("S-1-5-32-545")

    def test_hash_is_by_sid(self):
        entries = {Identity("S-1-5-18", "SYSTEM"), Identity("S-1-5-18", "NT AUTHORITY\\SYSTEM")}
        assert len(entries) == 1

    def test_capability_detection(self):
        assert Identity(CAPABILITY_SID).is_capability
        assert is_capability_sid(CAPABILITY_SID)
        assert not is_capability_sid("S-1-15-2-1")

    def test_display_name_falls_back_to_sid(self):
        assert Identity("S-1-5-18").display_name == "S-1-5-18"

    def test_plain_strips_package_authority(self):
        identity = Identity("S-1-15-2-1", "APPLICATION PACKAGE AUTHORITY\\ALL APPLICATION PACKAGES")
        plain = identity.plain()
        assert plain.name == "ALL APPLICATION PACKAGES"
        assert plain == identity

    def test_plain_leaves_other_names(self):
        identity = Identity("S-1-5-18", "NT AUTHORITY\\SYSTEM")
        assert identity.plain() is identity

    def test_package_authority_helpers(self):
        assert in_package_authority("APPLICATION PACKAGE AUTHORITY\\ALL RESTRICTED APPLICATION PACKAGES")
        assert strip_package_authority("APPLICATION PACKAGE AUTHORITY\\ALL APPLICATION PACKAGES") == "ALL APPLICATION PACKAGES"


class TestIdentityResolver:
    """Carve-outs around the external resolution service"""

    def setup_method(self):
        self.backend = MagicMock()
        self.resolver = IdentityResolver(self.backend)

    def test_resolve_name_delegates(self):
        self.backend.id_to_name.return_value = "NT AUTHORITY\\SYSTEM"
        assert self.resolver.resolve_name(Identity("S-1-5-18")) == "NT AUTHORITY\\SYSTEM"
        self.backend.id_to_name.assert_called_once_with("S-1-5-18")

    def test_resolve_name_capability_passthrough(self):
        """Capability SIDs are never sent to the resolver"""
        assert self.resolver.resolve_name(CAPABILITY_SID) == CAPABILITY_SID
        self.backend.id_to_name.assert_not_called()

    def test_resolve_name_strips_package_authority(self):
        self.backend.id_to_name.return_value = "APPLICATION PACKAGE AUTHORITY\\ALL APPLICATION PACKAGES"
        assert self.resolver.resolve_name("S-1-15-2-1") == "ALL APPLICATION PACKAGES"

    def test_resolve_name_not_found(self):
        self.backend.id_to_name.return_value = None
        with pytest.raises(IdentityNotFound) as exc_info:
            self.resolver.resolve_name("S-1-5-21-1")
        assert exc_info.value.value == "S-1-5-21-1"

    def test_resolve_sid_delegates(self):
        self.backend.name_to_id.return_value = "S-1-5-32-544"
        identity = self.resolver.resolve_sid("Administrators")
        assert identity == Identity("S-1-5-32-544")
        assert identity.name == "Administrators"

    def test_resolve_sid_capability_passthrough(self):
        identity = self.resolver.resolve_sid(CAPABILITY_SID)
        assert identity.sid == CAPABILITY_SID
        self.backend.name_to_id.assert_not_called()

    def test_resolve_sid_strips_package_authority_before_delegating(self):
        self.backend.name_to_id.return_value = "S-1-15-2-1"
        identity = self.resolver.resolve_sid("APPLICATION PACKAGE AUTHORITY\\ALL APPLICATION PACKAGES")
        self.backend.name_to_id.assert_called_once_with("ALL APPLICATION PACKAGES")
        assert identity.sid == "S-1-15-2-1"
        # The full account string is kept for rebuilding removal rules
        assert identity.in_package_authority

    def test_resolve_sid_not_found(self):
        self.backend.name_to_id.return_value = None
        with pytest.raises(IdentityNotFound):
            self.resolver.resolve_sid("nobody")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
