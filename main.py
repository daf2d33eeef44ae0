#!/usr/bin/env python3
"""European Parliament open-data tools – entry point.

Usage:
    python main.py tools                                  # List tools
    python main.py call get_meps --args '{"country": "SE"}'
    python main.py health                                 # Probe API, show health
    python main.py limiter-status --consume 5             # Inspect token bucket
    python main.py check-config                           # Validate config only
"""

import os
import sys

# Ensure the package is importable when run from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from europarl_mcp.cli.commands import cli

if __name__ == "__main__":
    cli(obj={})
