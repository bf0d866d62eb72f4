"""Entry point for lebar when run as a module."""

import sys

from .status_generator import main

if __name__ == "__main__":
    sys.exit(main())
