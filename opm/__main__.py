"""
Entry point for running opm as a module.

Usage: python -m opm [command] [options]
"""

from opm.cli.parser import main

if __name__ == "__main__":
    main()
