#!/usr/bin/env python3
"""Job application tracker CLI.

Usage:
    python cli.py --help
    python cli.py add "Acme Corp"
    python cli.py stage tree --company acme
"""
import sys

from jobtrack.cli import main


if __name__ == '__main__':
    sys.exit(main())
