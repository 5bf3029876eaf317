"""
PowerShell Collaborators

Collaborators backed by Windows PowerShell:
- PowerShellRunner: runs one script in a fresh powershell.exe process
- PowerShellObjectAccess: Get-Acl / Test-Path against the registry drive
- PowerShellIdentityResolution: NTAccount <-> SecurityIdentifier translation
- PowerShellExecutor: renders a whole MutationPlan into a single script

Starting PowerShell is slow, so a plan is always rendered into one script
and run in one process. Drive mounts required by the target's root are
prepended to every script from the SetupRequirements.
"""

import json
import logging
import subprocess
from typing import Dict, Iterable, List, Optional

from ..core.ace import AccessControlEntry
from ..core.identity import CAPABILITY_SID_PREFIX, PACKAGE_AUTHORITY, Identity
from ..core.plan import (
    AddAccessRule,
    MutationPlan,
    RemoveAccessRule,
    RemoveAllOrdinaryACEs,
    RemoveNonInheritedACE,
    SetInheritanceProtection,
    SetOwner,
)
from ..core.target import SetupRequirement, Target
from ..errors import ExecutionFailed, ReconcileError
from .base import IdentityResolution, MutationExecutor, ObjectAccess, RawACE

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "powershell.exe"

_PERMISSION_OPS = (RemoveAllOrdinaryACEs, RemoveNonInheritedACE, AddAccessRule, RemoveAccessRule)


def quote(value: str) -> str:
    """Single-quote a string for PowerShell"""
    return "'" + str(value).replace("'", "''") + "'"


def render_setup(setup: Iterable[SetupRequirement]) -> str:
    lines = [
        f"New-PSDrive -Name {req.drive} -PSProvider Registry -Root {req.root} | Out-Null"
        for req in setup
    ]
    return "".join(line + "\n" for line in lines)


class PowerShellRunner:
    """Runs PowerShell scripts through stdin of a non-interactive process"""

    def __init__(self, executable: str = DEFAULT_EXECUTABLE):
        self.executable = executable

    def command(self) -> List[str]:
        return [
            self.executable,
            "-NoProfile",
            "-NonInteractive",
            "-NoLogo",
            "-ExecutionPolicy", "Bypass",
            "-Command", "-",
        ]

    def run(self, script: str, setup: Iterable[SetupRequirement] = ()) -> str:
        """
        Run a script and return its trimmed stdout.

        Raises:
            ExecutionFailed: If PowerShell cannot be started or exits non-zero
        """
        full_script = render_setup(setup) + script
        logger.debug(f"Running PowerShell:\n{full_script}")

        try:
            result = subprocess.run(
                self.command(),
                input=full_script,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as e:
            raise ExecutionFailed(f"Could not start {self.executable}: {e}") from e

        if result.returncode != 0:
            output = (result.stdout + result.stderr).strip()
            logger.error(f"PowerShell failed with code {result.returncode}: {output}")
            raise ExecutionFailed(
                f"PowerShell exited with code {result.returncode}",
                value=script,
                output=output,
            )
        return result.stdout.strip()


class PowerShellObjectAccess(ObjectAccess):
    """Reads registry ACLs with Get-Acl"""

    def __init__(self, runner: Optional[PowerShellRunner] = None):
        self.runner = runner or PowerShellRunner()

    def exists(self, target: Target) -> bool:
        output = self.runner.run(f"Test-Path -LiteralPath {quote(target.drive_path)}", target.setup)
        return output.strip().lower() == "true"

    def get_owner(self, target: Target) -> str:
        return self.runner.run(f"(Get-Acl -LiteralPath {quote(target.drive_path)}).Owner", target.setup)

    def get_aces(self, target: Target) -> List[RawACE]:
        output = self.runner.run(
            f"(Get-Acl -LiteralPath {quote(target.drive_path)}).Access | ConvertTo-Json -Compress",
            target.setup,
        )
        return parse_access_json(output)


def parse_access_json(output: str) -> List[RawACE]:
    """Parse ConvertTo-Json output; a single entry comes back as an object, not a list"""
    if not output.strip():
        return []
    data = json.loads(output)
    if isinstance(data, dict):
        data = [data]
    return data


class PowerShellIdentityResolution(IdentityResolution):
    """
    Resolves accounts with System.Security.Principal.

    Lookups are cached for the lifetime of the instance.
    """

    def __init__(self, runner: Optional[PowerShellRunner] = None):
        self.runner = runner or PowerShellRunner()
        self._names: Dict[str, Optional[str]] = {}
        self._sids: Dict[str, Optional[str]] = {}

    def name_to_id(self, name: str) -> Optional[str]:
        if name not in self._sids:
            script = (
                f"try {{ (New-Object System.Security.Principal.NTAccount({quote(name)}))"
                f".Translate([System.Security.Principal.SecurityIdentifier]).Value }} catch {{ '' }}"
            )
            self._sids[name] = self.runner.run(script) or None
        return self._sids[name]

    def id_to_name(self, sid: str) -> Optional[str]:
        if sid not in self._names:
            script = (
                f"try {{ (New-Object System.Security.Principal.SecurityIdentifier({quote(sid)}))"
                f".Translate([System.Security.Principal.NTAccount]).Value }} catch {{ '' }}"
            )
            self._names[sid] = self.runner.run(script) or None
        return self._names[sid]


def _principal(identity: Identity) -> str:
    if identity.name:
        return f"(New-Object System.Security.Principal.NTAccount({quote(identity.name)}))"
    return f"(New-Object System.Security.Principal.SecurityIdentifier({quote(identity.sid)}))"


def _rule(ace: AccessControlEntry) -> List[str]:
    """Lines building $objACE from a normalized entry"""
    return [
        f"$objUser = {_principal(ace.identity)}",
        f"$objAccess = [System.Security.AccessControl.RegistryRights]{ace.mask}",
        f"$InheritanceFlag = [System.Security.AccessControl.InheritanceFlags]{quote(ace.inheritance_flags)}",
        f"$PropagationFlag = [System.Security.AccessControl.PropagationFlags]{quote(ace.propagation_flags)}",
        f"$objType = [System.Security.AccessControl.AccessControlType]{quote(ace.entry_type.value)}",
        "$objACE = New-Object System.Security.AccessControl.RegistryAccessRule("
        "$objUser, $objAccess, $InheritanceFlag, $PropagationFlag, $objType)",
    ]


def _permission_lines(op) -> List[str]:
    if isinstance(op, RemoveAllOrdinaryACEs):
        # Every explicit entry goes, decoded or not; capability entries stay
        return [
            "$filteredAces = $objACL.Access | Where-Object { $_.IsInherited -eq $false -and "
            f"$_.IdentityReference -notlike {quote(CAPABILITY_SID_PREFIX + '*')} }}",
            "foreach ($tmpACE in @($filteredAces)) {",
            f"  if ($tmpACE.IdentityReference -like {quote(PACKAGE_AUTHORITY + '*')}) {{",
            "    $secPrincipal = $tmpACE.IdentityReference.ToString().Split('\\')[1]",
            "    $aceToRemove = New-Object System.Security.AccessControl.RegistryAccessRule("
            "$secPrincipal, $tmpACE.RegistryRights, $tmpACE.InheritanceFlags, "
            "$tmpACE.PropagationFlags, $tmpACE.AccessControlType)",
            "  } else { $aceToRemove = $tmpACE }",
            "  $objACL.RemoveAccessRule($aceToRemove) | Out-Null",
            "}",
        ]
    if isinstance(op, RemoveNonInheritedACE):
        return [
            "$acesToRemove = $objACL.Access | Where-Object { $_.IsInherited -eq $false -and "
            f"$_.IdentityReference -eq {quote(op.identity.display_name)} }}",
            "foreach ($tmpACE in @($acesToRemove)) { $objACL.RemoveAccessRule($tmpACE) | Out-Null }",
        ]
    if isinstance(op, AddAccessRule):
        return _rule(op.ace) + ["$objACL.AddAccessRule($objACE)"]
    if isinstance(op, RemoveAccessRule):
        return _rule(op.ace) + ["$objACL.RemoveAccessRule($objACE) | Out-Null"]
    raise ValueError(f"Not a permission operation: {op!r}")


def render_plan(plan: MutationPlan, target: Target) -> str:
    """
    Render a plan as one PowerShell script.

    The script stops at the first error and exits 1 with the exception
    message, so the executor sees the plan as all-or-nothing.
    """
    path = quote(target.drive_path)
    body: List[str] = []
    permission_ops = [op for op in plan if isinstance(op, _PERMISSION_OPS)]

    for op in plan:
        if isinstance(op, SetOwner):
            body += [
                f"$o = Get-Acl -LiteralPath {path}",
                f"$o.SetOwner({_principal(op.identity)})",
                f"Set-Acl -LiteralPath {path} -AclObject $o -ErrorAction Stop",
            ]
        elif isinstance(op, _PERMISSION_OPS):
            # All permission operations share one ACL object and one Set-Acl
            if op is permission_ops[0]:
                body.append(f"$objACL = Get-Acl -LiteralPath {path} -ErrorAction Stop")
            body += _permission_lines(op)
            if op is permission_ops[-1]:
                body.append(f"Set-Acl -LiteralPath {path} -AclObject $objACL -ErrorAction Stop")
        elif isinstance(op, SetInheritanceProtection):
            rule = "$True,$False" if op.block_inheritance else "$False,$False"
            body += [
                f"$t = Get-Acl -LiteralPath {path}",
                f"$t.SetAccessRuleProtection({rule})",
                f"Set-Acl -LiteralPath {path} -AclObject $t -ErrorAction Stop",
            ]
        else:
            raise ValueError(f"Unsupported operation {op!r}")

    lines = ["$ErrorActionPreference = 'Stop'", "try {"]
    lines += [f"  {line}" for line in body]
    lines += [
        "} catch {",
        '  Write-Host "Failure: $($_.Exception.Message)"',
        "  exit 1",
        "}",
    ]
    return "\n".join(lines) + "\n"


class PowerShellExecutor(MutationExecutor):
    """Runs a whole plan as a single PowerShell script"""

    def __init__(self, runner: Optional[PowerShellRunner] = None):
        self.runner = runner or PowerShellRunner()

    def execute(self, plan: MutationPlan, target: Target) -> None:
        if plan.is_empty:
            return
        try:
            script = render_plan(plan, target)
        except ReconcileError as e:
            raise ExecutionFailed(
                f"Could not render plan: {e}",
                target=target.full_path,
                value=plan.describe(),
            ) from e
        try:
            self.runner.run(script, plan.setup)
        except ExecutionFailed as e:
            raise ExecutionFailed(
                f"Failed to apply {len(plan)} operation(s): {e.output or e.description}",
                target=target.full_path,
                value=plan.describe(),
                output=e.output,
            ) from e
