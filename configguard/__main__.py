"""
Entry point for running configguard as a module.

Usage:
    python -m configguard scan -d ./my-service
    python -m configguard --help
"""

import sys
from configguard.cli import main

if __name__ == "__main__":
    sys.exit(main())
