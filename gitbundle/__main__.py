"""Entry point for running via: python3 -m gitbundle <command>"""

from __future__ import annotations

import sys

from .app.cli import main


if __name__ == "__main__":
    sys.exit(main())
