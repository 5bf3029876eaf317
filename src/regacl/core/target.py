"""
Target Addressing

Parses target strings of the form <root>:<path> or <root>\\<path> into a
Target. Parsing is pure: unsupported or unknown roots are rejected before
any collaborator is touched, and the drive mounts a root needs are
returned as explicit SetupRequirements instead of being accumulated as a
side effect.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..errors import InvalidTarget, UnsupportedRoot

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r'[:,\\]')

UNSUPPORTED_ROOTS = frozenset({
    'hkey_current_user', 'hkcu',
    'hkey_current_config', 'hkcc',
    'hkey_performance_data',
    'hkey_performance_text',
    'hkey_performance_nlstext',
    'hkey_dyn_data',
})


@dataclass(frozen=True)
class SetupRequirement:
    """A drive that must be mounted before the target can be addressed"""
    drive: str
    root: str

    def __str__(self) -> str:
        return f"mount {self.drive}: -> {self.root}"


class RootKind(str, Enum):
    """Supported registry roots"""
    LOCAL_MACHINE = "HKEY_LOCAL_MACHINE"
    CLASSES_ROOT = "HKEY_CLASSES_ROOT"
    USERS = "HKEY_USERS"

    @property
    def drive(self) -> str:
        return _DRIVES[self]

    @property
    def setup(self) -> Tuple[SetupRequirement, ...]:
        """Drives to mount before this root is addressable (HKLM is native)"""
        if self is RootKind.LOCAL_MACHINE:
            return ()
        return (
            SetupRequirement(drive=self.drive, root=self.value),
            SetupRequirement(drive=self.value, root=self.value),
        )

    @classmethod
    def parse(cls, value: str) -> "RootKind":
        key = value.strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        if key in UNSUPPORTED_ROOTS:
            raise UnsupportedRoot(f"Unsupported predefined key: {value}", value=value)
        raise InvalidTarget(f"Invalid registry key: {value}", value=value)


_DRIVES = {
    RootKind.LOCAL_MACHINE: 'HKLM',
    RootKind.CLASSES_ROOT: 'HKCR',
    RootKind.USERS: 'HKU',
}

_ALIASES = {
    'hkey_local_machine': RootKind.LOCAL_MACHINE,
    'hklm': RootKind.LOCAL_MACHINE,
    'hkey_classes_root': RootKind.CLASSES_ROOT,
    'hkcr': RootKind.CLASSES_ROOT,
    'hkey_users': RootKind.USERS,
    'hku': RootKind.USERS,
}


@dataclass(frozen=True)
class Target:
    """A parsed, addressable securable object"""
    raw: str
    root: RootKind
    components: Tuple[str, ...]

    @property
    def path(self) -> str:
        """Path below the root, backslash-joined"""
        return '\\'.join(self.components)

    @property
    def full_path(self) -> str:
        """Canonical HKEY_* form"""
        return '\\'.join((self.root.value,) + self.components)

    @property
    def drive_path(self) -> str:
        """Path on the root's drive, e.g. HKLM:\\Software"""
        return f"{self.root.drive}:\\{self.path}"

    @property
    def setup(self) -> Tuple[SetupRequirement, ...]:
        return self.root.setup

    def __str__(self) -> str:
        return self.full_path


def parse_target(value: str) -> Target:
    """
    Parse a target string.

    Args:
        value: e.g. 'hklm:software', 'HKEY_USERS\\.DEFAULT\\Console'

    Raises:
        InvalidTarget: Empty target or unknown root
        UnsupportedRoot: Known root that cannot be managed
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidTarget("Target must be a non-empty string", value=value)

    parts = _SEPARATORS.split(value.strip())
    root = RootKind.parse(parts[0])
    components = tuple(p for p in parts[1:] if p)

    target = Target(raw=value, root=root, components=components)
    logger.debug(f"Parsed target {value!r} as {target.full_path}")
    return target
