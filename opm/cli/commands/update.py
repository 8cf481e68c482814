"""
Update command implementation.

Moves dependencies to the newest revision of their branch or tag, or with
``--dry-run`` only reports what would change.
"""

import logging

from opm.cli.utils import create_reconciler, format_update, print_error, safe_print
from opm.core.directory import LOCKFILE
from opm.core.exceptions import OpmError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the update command.

    Args:
        args: Parsed command-line arguments with:
            - name: Package to update, or None for all
            - dry_run: Only check for updates

    Returns:
        Exit code (0 for success, 1 if any package failed)
    """
    try:
        results = create_reconciler(args).update(args.name, dry_run=args.dry_run)
    except OpmError as e:
        logger.debug("update failed", exc_info=True)
        print_error(str(e))
        return 1

    if not results:
        print("No packages to update")
        return 0

    print("Checking for updates" if args.dry_run else "Updating packages")
    for result in results:
        for line in format_update(result):
            safe_print(line)

    failed = [r for r in results if r.error is not None]
    changed = [r for r in results if r.changed]

    if args.dry_run:
        if changed:
            print()
            print("Run 'opm update' to apply these updates")
        elif not failed:
            safe_print("✓ All packages are up to date")
    elif changed:
        safe_print(f"✓ Updated {LOCKFILE}")

    if failed:
        print_error(f"Failed to update {', '.join(r.name for r in failed)}")
        return 1
    return 0
