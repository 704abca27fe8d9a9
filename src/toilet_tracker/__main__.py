"""Entry point for running toilet-tracker as a module.

Usage:
    python -m toilet_tracker [command] [options]
"""

from toilet_tracker.cli import main

if __name__ == "__main__":
    main()
