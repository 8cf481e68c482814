"""
opm CLI argument parser.

This module implements the command-line interface for opm using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Get version from package
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("opm")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

# Command (and alias) -> implementing module
COMMAND_MODULES = {
    "add": "opm.cli.commands.add",
    "remove": "opm.cli.commands.remove",
    "rm": "opm.cli.commands.remove",
    "update": "opm.cli.commands.update",
    "upgrade": "opm.cli.commands.update",
    "install": "opm.cli.commands.install",
    "i": "opm.cli.commands.install",
    "list": "opm.cli.commands.list",
    "search": "opm.cli.commands.search",
}


class CLI:
    """opm command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="opm",
            description="opm - Odin package manager",
            epilog='Use "opm COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument("--version", action="version", version=f"opm {__version__}")
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to settings file (default: ~/.opm/config.yaml)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            default=None,
            help="Project root directory (default: current directory)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_add_command(subparsers)
        self._add_remove_command(subparsers)
        self._add_update_command(subparsers)
        self._add_install_command(subparsers)
        self._add_list_command(subparsers)
        self._add_search_command(subparsers)

        return parser

    def _add_add_command(self, subparsers):
        """Add 'add' subcommand."""
        parser = subparsers.add_parser(
            "add",
            help="Add a dependency",
            description=(
                "Fetch a package, lock its revision and declare it in opm.json.\n\n"
                "Specifier formats:\n"
                "  owner/repo[@tag|#branch]         GitHub shorthand\n"
                "  github:owner/repo[@tag|#branch]  GitHub\n"
                "  git:<url>[#ref]                  Any git repository\n"
                "  path:<dir>                       Local directory (linked)"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument("spec", metavar="SPEC", help="Package specifier")
        parser.add_argument(
            "--dev",
            "-D",
            action="store_true",
            help="Add to devDependencies",
        )

    def _add_remove_command(self, subparsers):
        """Add 'remove' subcommand."""
        parser = subparsers.add_parser(
            "remove",
            aliases=["rm"],
            help="Remove a dependency",
            description="Remove a dependency, its lock entry and its working copy",
        )
        parser.add_argument("name", metavar="NAME", help="Package name")

    def _add_update_command(self, subparsers):
        """Add 'update' subcommand."""
        parser = subparsers.add_parser(
            "update",
            aliases=["upgrade"],
            help="Update dependencies",
            description="Move dependencies to the latest revision of their branch or tag",
        )
        parser.add_argument(
            "name", nargs="?", metavar="NAME", help="Package to update (default: all)"
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show available updates without applying them",
        )

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            aliases=["i"],
            help="Install all dependencies",
            description="Install every dependency declared in opm.json",
        )
        parser.add_argument(
            "--frozen",
            action="store_true",
            help="Fail if the lock file is incomplete and restore locked revisions",
        )

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        subparsers.add_parser(
            "list",
            help="List dependencies",
            description="List declared dependencies and their install state",
        )

    def _add_search_command(self, subparsers):
        """Add 'search' subcommand."""
        parser = subparsers.add_parser(
            "search",
            help="Search for packages",
            description="Search GitHub for Odin packages",
        )
        parser.add_argument("query", nargs="+", metavar="QUERY", help="Search terms")

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

        # Keep HTTP connection chatter out of --verbose output
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        module_name = COMMAND_MODULES.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.error(f"Failed to load command module: {e}")
            if args.verbose:
                import traceback

                traceback.print_exc()
            return 1

        if not hasattr(module, "run"):
            logger.error(f"Command module {module_name} has no run() function")
            return 1

        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
