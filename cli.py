#!/usr/bin/env python3
"""
Knowledge-base Notes CLI.

Entry script for running the CLI from a checkout without installing.
Installed copies expose the same application as the `kbnotes` command.

Usage:
    python cli.py --help
    python cli.py notes check
    python cli.py notes show git-ignore.md --json
    python cli.py --root ~/notes notes list --tag git
"""

import sys
from pathlib import Path

# Add project root to path for absolute imports
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from kbnotes.cli.app import app

if __name__ == "__main__":
    app()
