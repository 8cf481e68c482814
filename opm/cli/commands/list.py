"""
List command implementation.
"""

import logging

from opm.cli.utils import create_reconciler, print_error, safe_print
from opm.core.exceptions import OpmError
from opm.packages.fetcher import InstallState, short

logger = logging.getLogger(__name__)

STATE_MARKERS = {
    InstallState.INSTALLED: "✓",
    InstallState.NOT_INSTALLED: "✗",
    InstallState.CORRUPT: "!",
}


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        statuses = create_reconciler(args).list()
    except OpmError as e:
        logger.debug("list failed", exc_info=True)
        print_error(str(e))
        return 1

    if not statuses:
        print("No packages installed")
        return 0

    groups = [
        ("Dependencies:", [s for s in statuses if not s.dev]),
        ("Dev Dependencies:", [s for s in statuses if s.dev]),
    ]
    first = True
    for title, group in groups:
        if not group:
            continue
        if not first:
            print()
        first = False
        print(title)
        for status in group:
            line = f"  {STATE_MARKERS[status.state]} {status.name} ({status.specifier})"
            if status.commit:
                line += f" @ {short(status.commit)}"
            if status.state is InstallState.CORRUPT:
                line += " [corrupt]"
            if status.error:
                line += f" [{status.error}]"
            safe_print(line)
    return 0
