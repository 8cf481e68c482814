"""
Install command implementation.

Installs every dependency declared in opm.json, honoring opm.lock.
"""

import logging

from opm.cli.utils import create_reconciler, pluralize, print_error, safe_print
from opm.core.directory import LOCKFILE
from opm.core.exceptions import OpmError
from opm.packages.fetcher import short
from opm.packages.reconciler import InstallAction

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with ``frozen``

    Returns:
        Exit code (0 for success, 1 if anything failed)
    """
    try:
        report = create_reconciler(args).install(frozen=args.frozen)
    except OpmError as e:
        logger.debug("install failed", exc_info=True)
        print_error(str(e))
        return 1

    for outcome in report.outcomes:
        if outcome.action is InstallAction.UP_TO_DATE:
            continue
        safe_print(f"  {outcome.name}: {outcome.action.value} ({short(outcome.commit)})")

    if report.lockfile_written:
        safe_print(f"✓ Updated {LOCKFILE}")

    if report.failures:
        for failure in report.failures:
            print_error(f"Failed to install {failure.name}", str(failure.error))
        return 1

    if report.outcomes:
        safe_print(f"✓ {pluralize(len(report.outcomes), 'package')} installed")
    else:
        print("No dependencies to install")
    return 0
