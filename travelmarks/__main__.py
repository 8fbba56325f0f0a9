"""Module entry point to run the animator via ``python -m travelmarks``."""
from __future__ import annotations

import sys

from .main import main


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
