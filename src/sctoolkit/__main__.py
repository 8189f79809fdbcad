"""Allow running the toolkit as ``python -m sctoolkit``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
