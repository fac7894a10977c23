#!/usr/bin/env python3
"""Strata - agent orchestration core

Usage:
    strata version                # Show version
    strata ask "PROMPT"           # Send a prompt through the guarded pipeline
    strata pending [--clear]      # Show or clear the pending clarification
    strata memory [list|add TEXT|clear]   # Long-term memory notes
"""

from strata.cli import main

if __name__ == "__main__":
    main()
