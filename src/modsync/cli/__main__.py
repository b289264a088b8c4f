"""Module entrypoint for ``python -m modsync.cli``."""

from __future__ import annotations

import sys

from modsync.cli import main

if __name__ == "__main__":
    sys.exit(main())
