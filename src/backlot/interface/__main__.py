"""
Run the Backlot CLI.

Usage:
    python -m backlot.interface
"""

from .cli import main

main()
