"""
Collaborators

External services the reconciliation engine calls out to: object access,
identity resolution and mutation execution.
"""

from .base import ObjectAccess, IdentityResolution, MutationExecutor, RawACE
from .memory import InMemoryObjectStore, InMemoryIdentityDirectory, InMemoryExecutor
from .powershell import (
    PowerShellRunner,
    PowerShellObjectAccess,
    PowerShellIdentityResolution,
    PowerShellExecutor,
    render_plan,
)

__all__ = [
    # Interfaces
    "ObjectAccess",
    "IdentityResolution",
    "MutationExecutor",
    "RawACE",
    # In-memory
    "InMemoryObjectStore",
    "InMemoryIdentityDirectory",
    "InMemoryExecutor",
    # PowerShell
    "PowerShellRunner",
    "PowerShellObjectAccess",
    "PowerShellIdentityResolution",
    "PowerShellExecutor",
    "render_plan",
]
