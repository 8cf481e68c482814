"""
Search command implementation.

Searches GitHub for repositories written in Odin.
"""

import logging

from opm.cli.utils import get_settings, print_error, safe_print
from opm.core.exceptions import OpmError
from opm.packages.search import search_packages

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the search command.

    Args:
        args: Parsed command-line arguments with ``query`` (list of terms)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    query = " ".join(args.query)
    print(f'Searching for "{query}"')

    try:
        results = search_packages(query, get_settings(args))
    except OpmError as e:
        logger.debug("search failed", exc_info=True)
        print_error(str(e))
        return 1

    if not results:
        print("No packages found")
        return 0

    print()
    for result in results:
        safe_print(f"  {result.full_name}")
        if result.description:
            safe_print(f"  {result.description}")
        safe_print(f"  ★ {result.stars}  |  Install: opm add {result.specifier}")
        print()
    return 0
