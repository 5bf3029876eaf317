"""
Tests for the permission and flag codecs
"""

import pytest

from regacl.core.codec import (
    REGISTRY_RIGHTS,
    access_control_type,
    inheritance,
    permissions,
    propagation,
)
from regacl.errors import InvalidFlag, InvalidPermission


class TestPermissionDecode:
    """Numeric mask -> symbolic rights"""

    @pytest.mark.parametrize("mask,label", [
        (983103, "FullControl"),
        (131097, "ReadKey"),
        (131078, "WriteKey"),
    ])
    def test_exact_alias_wins(self, mask, label):
        """A composite alias decodes to its own label, not its constituent bits"""
        assert permissions.decode(mask) == label

    def test_single_bit(self):
        assert permissions.decode(65536) == "Delete"

    def test_bit_union_sorted(self):
        """Non-alias masks decode to sorted, comma-joined labels"""
        assert permissions.decode(3) == "QueryValues, SetValue"
        assert permissions.decode(65536 | 16) == "Delete, Notify"

    def test_union_includes_contained_alias(self):
        """ReadKey plus SetValue is not an alias; ReadKey is still listed as contained"""
        assert permissions.decode(131097 | 2) == (
            "EnumerateSubKeys, Notify, QueryValues, ReadKey, ReadPermissions, SetValue"
        )

    def test_alias_superset_uses_bit_union(self):
        """Extra bits beyond an alias fall back to the bit-union path"""
        labels = permissions.decode(983103 | 268435456).split(", ")
        assert "FullControl" in labels
        assert "GENERIC_ALL" in labels
        assert "Delete" in labels
        assert labels == sorted(labels)

    def test_generic_read_signed_and_unsigned(self):
        assert permissions.decode(-2147483648) == "GENERIC_READ"
        assert permissions.decode(2147483648) == "GENERIC_READ"
        assert permissions.decode(0x80000001) == "GENERIC_READ, QueryValues"

    def test_zero_mask(self):
        assert permissions.decode(0) == ""

    def test_non_integer_rejected(self):
        with pytest.raises(InvalidPermission):
            permissions.decode("983103")
        with pytest.raises(InvalidPermission):
            permissions.decode(True)


class TestPermissionEncode:
    """Symbolic rights -> numeric mask"""

    def test_single_label(self):
        assert permissions.encode("FullControl") == 983103

    def test_union_with_whitespace(self):
        assert permissions.encode(" ReadKey ,SetValue") == 131099

    def test_every_label_encodes_to_its_mask(self):
        for mask, label in REGISTRY_RIGHTS:
            assert permissions.encode(label) == mask

    def test_unknown_token_fails(self):
        with pytest.raises(InvalidPermission) as exc_info:
            permissions.encode("ReadKey, Bogus")
        assert "Bogus" in str(exc_info.value)

    def test_empty_string_fails(self):
        with pytest.raises(InvalidPermission):
            permissions.encode("")

    def test_decoded_values_round_trip(self):
        for mask in (1, 3, 131097, 131099, 983103, 65536 | 524288):
            decoded = permissions.decode(mask)
            assert permissions.decode(permissions.encode(decoded)) == decoded

    def test_hand_written_constituents_collapse_to_alias(self):
        """Hand-written lists are not guaranteed to round-trip"""
        written = "QueryValues, EnumerateSubKeys, Notify, ReadPermissions"
        assert permissions.decode(permissions.encode(written)) == "ReadKey"


class TestFlagCodecs:
    """Inheritance, propagation and entry type enumerations"""

    def test_inheritance_table(self):
        assert inheritance.decode(0) == "None"
        assert inheritance.decode(1) == "ContainerInherit"
        assert inheritance.decode(3) == "ContainerInherit, ObjectInherit"
        assert inheritance.encode("ContainerInherit, ObjectInherit") == 3

    def test_propagation_table(self):
        assert propagation.decode(2) == "InheritOnly"
        assert propagation.decode(3) == "NoPropagateInherit, InheritOnly"
        assert propagation.encode("InheritOnly") == 2

    def test_no_bit_union_fallback(self):
        """Values outside the closed table fail even if they are unions"""
        with pytest.raises(InvalidFlag):
            inheritance.decode(2)
        with pytest.raises(InvalidFlag):
            propagation.decode(1)
        with pytest.raises(InvalidFlag):
            inheritance.encode("ObjectInherit")

    def test_access_control_type(self):
        assert access_control_type.decode(0) == "Allow"
        assert access_control_type.decode(1) == "Deny"
        assert access_control_type.encode("Deny") == 1
        with pytest.raises(InvalidFlag):
            access_control_type.decode(2)

    def test_boolean_is_not_a_flag(self):
        with pytest.raises(InvalidFlag):
            inheritance.decode(True)

    def test_normalize(self):
        assert propagation.normalize(" InheritOnly ") == "InheritOnly"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
