"""
Entry point for running the opm CLI as a module.

Usage: python -m opm.cli [command] [options]
"""

from opm.cli.parser import main

if __name__ == "__main__":
    main()
