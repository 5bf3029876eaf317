"""
Reconciliation Errors

Error taxonomy for the ACL reconciliation engine.

Every error carries a human-readable description plus the context needed
to diagnose it without re-running with extra tracing (target, offending
value). Only ACEDecodeSkipped is non-fatal: the snapshot reader records it
and drops the entry. Everything else aborts the current cycle.
"""

from abc import ABC
from datetime import datetime
from typing import Any, Optional

__all__ = (
    'ReconcileError',
    'InvalidTarget',
    'UnsupportedRoot',
    'TargetNotFound',
    'InvalidPermission',
    'InvalidFlag',
    'IdentityNotFound',
    'ACEDecodeSkipped',
    'ExecutionFailed',
)


class ReconcileError(ABC, Exception):
    """Abstract base for all reconciliation errors"""
    description: str = 'Reconciliation error'

    def __init__(
        self,
        description: Optional[str] = None,
        target: Optional[str] = None,
        value: Any = None,
    ):
        self.description = description or self.__class__.description
        self.target = target
        self.value = value
        self.exception_iso_timestamp = datetime.now().isoformat()
        super().__init__(self.description)

    def __str__(self) -> str:
        parts = [self.description]
        if self.target is not None:
            parts.append(f"target={self.target!r}")
        if self.value is not None:
            parts.append(f"value={self.value!r}")
        return ' '.join(parts)


# Pre-flight
class InvalidTarget(ReconcileError):
    description: str = 'Invalid target'


class UnsupportedRoot(InvalidTarget):
    description: str = 'Unsupported predefined root'


class TargetNotFound(ReconcileError):
    description: str = "Target object doesn't exist"


# Codec
class InvalidPermission(ReconcileError):
    description: str = 'Invalid permission'


class InvalidFlag(ReconcileError):
    description: str = 'Invalid flag'


# Identity
class IdentityNotFound(ReconcileError):
    description: str = 'Identity could not be resolved'


class ACEDecodeSkipped(ReconcileError):
    """
    Non-fatal record of a pre-existing ACE that could not be decoded.

    Never raised out of the reader; kept on the snapshot as a warning.
    """
    description: str = 'Pre-existing ACE ignored'

    def __init__(self, raw: Any, cause: Exception, target: Optional[str] = None):
        super().__init__(f"Pre-existing ACE ignored due to: {cause}", target=target, value=raw)
        self.raw = raw
        self.cause = cause


# Execution
class ExecutionFailed(ReconcileError):
    description: str = 'Mutation plan execution failed'

    def __init__(
        self,
        description: Optional[str] = None,
        target: Optional[str] = None,
        value: Any = None,
        operation: Any = None,
        output: Optional[str] = None,
    ):
        super().__init__(description, target=target, value=value)
        self.operation = operation
        self.output = output
