"""
regacl - Entry Point

Reconciles every resource declared in regacl.yaml against the registry.
"""

import argparse
import logging
import sys

from config import load_config
from config.schema import EngineConfig

from .collaborators import (
    PowerShellExecutor,
    PowerShellIdentityResolution,
    PowerShellObjectAccess,
    PowerShellRunner,
)
from .core import Reconciler
from .errors import ReconcileError

logger = logging.getLogger(__name__)


def build_reconciler(config: EngineConfig) -> Reconciler:
    """Wire the reconciler with the configured backend"""
    if config.backend != "powershell":
        raise ValueError(f"Unsupported backend: {config.backend}")

    runner = PowerShellRunner(executable=config.powershell.executable)
    return Reconciler(
        object_access=PowerShellObjectAccess(runner),
        identity_resolution=PowerShellIdentityResolution(runner),
        executor=PowerShellExecutor(runner),
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Registry ACL reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reconcile resources from ./regacl.yaml
  python -m regacl

  # Show pending changes without applying them
  python -m regacl --config C:\\acl\\regacl.yaml --dry-run

  # Enable debug logging
  python -m regacl --debug
"""
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to regacl.yaml (default: search working directory)'
    )

    parser.add_argument(
        '--dry-run', '-n',
        action='store_true',
        help='Print the mutation plans without executing them'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)

    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format=config.logging.format
    )
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    dry_run = args.dry_run or config.dry_run
    reconciler = build_reconciler(config)

    if not config.resources:
        logger.warning("No resources declared")
        return 0

    try:
        # One cycle at a time; a failure aborts the remaining resources
        for declaration in config.resources:
            result = reconciler.reconcile(declaration, dry_run=dry_run)
            if result.plan.is_empty:
                state = "in sync" if result.compliant else "out of sync, nothing to apply"
                print(f"{result.target}: {state}")
                continue
            verb = "would apply" if dry_run else "applied"
            print(f"{result.target}: {verb} {len(result.plan)} operation(s)")
            for line in result.plan.describe():
                print(f"  - {line}")
    except ReconcileError as e:
        logger.error(f"Reconciliation failed: {e}")
        print(f"\n❌ Error: {e}", file=sys.stderr)
        return 1

    return 0


def run():
    """Entry point for console script"""
    sys.exit(main())


if __name__ == "__main__":
    run()
