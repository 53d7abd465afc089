"""Entry point for running the command line interface.

Usage:
    python -m sketchpipe freq -d items.txt
"""

from sketchpipe.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
