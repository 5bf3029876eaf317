"""
Permission and Flag Codecs

Bidirectional mapping between the numeric form of registry access rights
and flags (as reported by the object-access layer) and their symbolic form
(as declared by users and compared by the engine).

Permission masks are NOT a plain bit-union: some labels are composite
aliases (ReadKey, WriteKey, FullControl) whose value overlaps the named
bits. The table is therefore an ordered list of (mask, label) pairs:
decoding checks for an exact alias match first and only then falls back to
collecting every entry contained in the mask.

Inheritance and propagation flags are small closed enumerations, each with
one composite value that decodes to a single comma-joined label.
"""

from typing import Optional, Tuple

from ..errors import InvalidFlag, InvalidPermission


__all__ = (
    'REGISTRY_RIGHTS',
    'INHERITANCE_FLAGS',
    'PROPAGATION_FLAGS',
    'ACCESS_CONTROL_TYPES',
    'PermissionCodec',
    'FlagCodec',
    'permissions',
    'inheritance',
    'propagation',
    'access_control_type',
)


# Priority order matters: see PermissionCodec.decode
REGISTRY_RIGHTS: Tuple[Tuple[int, str], ...] = (
    (1, 'QueryValues'),
    (2, 'SetValue'),
    (4, 'CreateSubKey'),
    (8, 'EnumerateSubKeys'),
    (16, 'Notify'),
    (32, 'CreateLink'),
    (131_097, 'ReadKey'),
    (131_078, 'WriteKey'),
    (65_536, 'Delete'),
    (131_072, 'ReadPermissions'),
    (262_144, 'ChangePermissions'),
    (524_288, 'TakeOwnership'),
    (983_103, 'FullControl'),
    (268_435_456, 'GENERIC_ALL'),
    (1_073_741_824, 'GENERIC_WRITE'),
    (536_870_912, 'GENERIC_EXECUTE'),
    (-2_147_483_648, 'GENERIC_READ'),
)

INHERITANCE_FLAGS: Tuple[Tuple[int, str], ...] = (
    (0, 'None'),
    (1, 'ContainerInherit'),
    (3, 'ContainerInherit, ObjectInherit'),
)

PROPAGATION_FLAGS: Tuple[Tuple[int, str], ...] = (
    (0, 'None'),
    (2, 'InheritOnly'),
    (3, 'NoPropagateInherit, InheritOnly'),
)

ACCESS_CONTROL_TYPES: Tuple[Tuple[int, str], ...] = (
    (0, 'Allow'),
    (1, 'Deny'),
)


def _to_signed32(value: int) -> int:
    """Fold an unsigned 32-bit mask into the signed range used by the table"""
    if value >= 1 << 31:
        value -= 1 << 32
    return value


class PermissionCodec:
    """
    Codec for access-right bitmasks.

    decode(encode(s)) == s holds only for strings that decode() itself
    produced. Hand-written lists may name bits that are covered by an
    alias (e.g. the four bits of ReadKey) and will decode to the alias
    instead.
    """

    def __init__(self, table: Tuple[Tuple[int, str], ...] = REGISTRY_RIGHTS):
        self.table = table

    def decode(self, mask: int) -> str:
        """
        Convert a numeric mask to its symbolic form.

        Args:
            mask: Access mask as reported by the object-access layer

        Returns:
            Exact alias label, or the sorted, comma-joined labels of every
            table entry contained in the mask

        Raises:
            InvalidPermission: If mask is not an integer
        """
        if isinstance(mask, bool) or not isinstance(mask, int):
            raise InvalidPermission(f"Invalid permission type - {type(mask).__name__}", value=mask)

        mask = _to_signed32(mask)

        # An exact alias wins outright; its constituent bits are not listed
        for value, label in self.table:
            if value == mask:
                return label

        labels = [label for value, label in self.table if value & mask == value]
        return ', '.join(sorted(labels))

    def encode(self, symbolic: str) -> int:
        """
        Convert a comma-separated list of labels to a numeric mask.

        Raises:
            InvalidPermission: If any token is not a known label
        """
        if not isinstance(symbolic, str):
            raise InvalidPermission(f"Invalid permission type - {type(symbolic).__name__}", value=symbolic)

        mask = 0
        for token in symbolic.split(','):
            token = token.strip()
            value = self._lookup(token)
            if value is None:
                raise InvalidPermission(f"Invalid permission - {token}", value=symbolic)
            mask |= value
        return mask

    def _lookup(self, label: str) -> Optional[int]:
        for value, known in self.table:
            if known == label:
                return value
        return None


class FlagCodec:
    """
    Codec for a closed flag enumeration.

    No bit-union fallback: a value outside the table is an error.
    """

    def __init__(self, name: str, table: Tuple[Tuple[int, str], ...]):
        self.name = name
        self.table = table

    def decode(self, value: int) -> str:
        if not isinstance(value, bool) and isinstance(value, int):
            for known, label in self.table:
                if known == value:
                    return label
        raise InvalidFlag(f"Invalid {self.name} set - {value}", value=value)

    def encode(self, label: str) -> int:
        if isinstance(label, str):
            label = label.strip()
            for value, known in self.table:
                if known == label:
                    return value
        raise InvalidFlag(f"Invalid {self.name} set - {label}", value=label)

    def normalize(self, label: str) -> str:
        """Validate a declared label and return it in canonical spelling"""
        return self.decode(self.encode(label))


permissions = PermissionCodec()
inheritance = FlagCodec('Inheritance', INHERITANCE_FLAGS)
propagation = FlagCodec('Propagate Flags', PROPAGATION_FLAGS)
access_control_type = FlagCodec('AccessControlType', ACCESS_CONTROL_TYPES)
