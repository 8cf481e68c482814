"""
Add command implementation.

Fetches a package, locks its revision and declares it in opm.json.
"""

import logging

from opm.cli.utils import create_reconciler, format_update, print_error, safe_print
from opm.config.lockfile import LOCAL_COMMIT
from opm.config.manifest import DEPENDENCIES, DEV_DEPENDENCIES
from opm.core.exceptions import OpmError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the add command.

    Args:
        args: Parsed command-line arguments with:
            - spec: Package specifier
            - dev: Add to devDependencies

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        reconciler = create_reconciler(args)
        result = reconciler.add(args.spec, dev=args.dev)
    except OpmError as e:
        logger.debug("add failed", exc_info=True)
        print_error(str(e))
        return 1

    if result.update is not None:
        safe_print(f"{result.name} is already installed")
        for line in format_update(result.update):
            safe_print(line)
        return 0

    section = DEV_DEPENDENCIES if result.dev else DEPENDENCIES
    safe_print(f"✓ Added {result.name} to {section}")
    if result.commit == LOCAL_COMMIT:
        safe_print("  Linked to local path")
    else:
        safe_print(f"  Locked at commit: {result.commit[:12]}")
    print()
    print("Usage in your Odin code:")
    print(f'  import "{result.name}:..."')
    print()
    print(f"Note: Run with -collection:{result.name}={result.collection}")
    return 0
