"""
Reconciler

Runs one reconciliation cycle per declaration:

    parse target -> read snapshot -> resolve desired state
        -> compare -> synthesize plan -> hand plan to executor

The reconciler keeps no state between cycles. Each cycle gets its own
snapshot reader (and therefore its own cache), and the plan is discarded
once the executor has consumed it. Callers must not run two cycles for the
same target concurrently.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..collaborators.base import IdentityResolution, MutationExecutor, ObjectAccess
from ..errors import ACEDecodeSkipped
from .ace import ACLSnapshot, DesiredState
from .comparator import state_in_sync
from .declaration import AclDeclaration
from .identity import IdentityResolver
from .plan import MutationPlan, synthesize
from .reader import SnapshotReader
from .target import Target, parse_target

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation cycle"""
    target: Target
    compliant: bool
    plan: MutationPlan
    snapshot: ACLSnapshot
    desired: DesiredState
    changed: bool = False
    skipped: List[ACEDecodeSkipped] = field(default_factory=list)


class Reconciler:
    """
    Reconciliation engine.

    Wires the collaborators together; every external call is synchronous
    and any collaborator failure ends the cycle.
    """

    def __init__(
        self,
        object_access: ObjectAccess,
        identity_resolution: IdentityResolution,
        executor: Optional[MutationExecutor] = None,
    ):
        self.object_access = object_access
        self.resolver = IdentityResolver(identity_resolution)
        self.executor = executor

    def plan(self, declaration: AclDeclaration) -> ReconcileResult:
        """Run a cycle without executing anything"""
        return self.reconcile(declaration, dry_run=True)

    def reconcile(self, declaration: AclDeclaration, dry_run: bool = False) -> ReconcileResult:
        """
        Run one reconciliation cycle.

        Args:
            declaration: Desired state for one target
            dry_run: Build the plan but don't hand it to the executor

        Returns:
            ReconcileResult

        Raises:
            InvalidTarget / UnsupportedRoot: Before any collaborator is called
            TargetNotFound, IdentityNotFound: While reading or resolving
            ExecutionFailed: If the executor reports a failure
        """
        target = parse_target(declaration.target)
        logger.debug(f"Reconciling {target.full_path} (purge={declaration.purge.value})")

        reader = SnapshotReader(self.object_access, self.resolver)
        snapshot = reader.read(target)
        desired = declaration.desired_state(self.resolver)

        compliant = state_in_sync(snapshot, desired)
        plan = MutationPlan(setup=target.setup) if compliant else synthesize(snapshot, desired, target.setup)

        result = ReconcileResult(
            target=target,
            compliant=compliant,
            plan=plan,
            snapshot=snapshot,
            desired=desired,
            skipped=list(snapshot.skipped),
        )

        if plan.is_empty:
            if compliant:
                logger.info(f"{target.full_path}: in sync")
            else:
                # e.g. only inherited entries differ; those belong to the parent
                logger.warning(f"{target.full_path}: not in sync, but no operation can converge it")
            return result

        if dry_run:
            logger.info(f"{target.full_path}: {len(plan)} pending operation(s) (dry run)")
            return result

        if self.executor is None:
            raise RuntimeError("No mutation executor configured")

        logger.info(f"{target.full_path}: applying {len(plan)} operation(s)")
        self.executor.execute(plan, target)
        result.changed = True
        return result

    def reconcile_all(self, declarations: Iterable[AclDeclaration], dry_run: bool = False) -> List[ReconcileResult]:
        """Reconcile declarations one after another, stopping at the first error"""
        return [self.reconcile(declaration, dry_run=dry_run) for declaration in declarations]
