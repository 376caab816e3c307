"""Main entry point for the clickstats CLI.

Usage:
    python -m clickstats --help
    clickstats --help  # If installed via pip/uv
"""

from clickstats.cli import main

if __name__ == "__main__":
    main()
