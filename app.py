#!/usr/bin/env python3
"""
labsync - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
This is the ONE executable entry point of the server.

- Any number of copies may run against one database
- Copies elect a primary among themselves
- Can be started, stopped and restarted safely

============================================================
USAGE
============================================================
Direct execution:
    python app.py serve

Apply migrations only:
    python app.py migrate

Pull data from a replication source once:
    REPLICATION_ROLE=destination REPLICATION_SOURCE=https://... python app.py replicate

============================================================
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from runtime.cli import main


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
