#!/usr/bin/env python3
from __future__ import annotations

import sys

try:
    import markdown  # noqa: F401
except ImportError:
    print("Missing dependency: markdown. Install with pip install -e .", file=sys.stderr)
    sys.exit(1)

from foldersite.cli import main


if __name__ == "__main__":
    main()
