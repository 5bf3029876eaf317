"""
Shared fixtures: an in-memory registry, account directory and executor.
"""

import pytest

from regacl.collaborators.memory import InMemoryExecutor, InMemoryIdentityDirectory, InMemoryObjectStore
from regacl.core.reconciler import Reconciler

ACCOUNTS = {
    "BUILTIN\\Administrators": "S-1-5-32-544",
    "Administrators": "S-1-5-32-544",
    "BUILTIN\\Users": "S-1-5-32-545",
    "Users": "S-1-5-32-545",
    "NT AUTHORITY\\SYSTEM": "S-1-5-18",
    "SYSTEM": "S-1-5-18",
    "CREATOR OWNER": "S-1-3-0",
    "ALL APPLICATION PACKAGES": "S-1-15-2-1",
}


def _raw_ace(identity, rights=983103, entry_type=0, inherited=False, inheritance=0, propagation=0):
    return {
        "IdentityReference": {"Value": identity},
        "RegistryRights": rights,
        "AccessControlType": entry_type,
        "IsInherited": inherited,
        "InheritanceFlags": inheritance,
        "PropagationFlags": propagation,
    }


@pytest.fixture
def raw_ace():
    """Factory for raw entries in the shape Get-Acl | ConvertTo-Json reports"""
    return _raw_ace


@pytest.fixture
def directory():
    return InMemoryIdentityDirectory(ACCOUNTS)


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def executor(store, directory):
    return InMemoryExecutor(store, directory)


@pytest.fixture
def reconciler(store, directory, executor):
    return Reconciler(object_access=store, identity_resolution=directory, executor=executor)
