"""
Remove command implementation.
"""

import logging

from opm.cli.utils import create_reconciler, print_error, safe_print
from opm.core.exceptions import OpmError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the remove command.

    Args:
        args: Parsed command-line arguments with ``name``

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        create_reconciler(args).remove(args.name)
    except OpmError as e:
        logger.debug("remove failed", exc_info=True)
        print_error(str(e))
        return 1

    safe_print(f"✓ Removed {args.name}")
    return 0
