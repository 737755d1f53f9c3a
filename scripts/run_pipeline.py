#!/usr/bin/env python3
"""Bullet Cluster spectral pipeline runner.

Usage:
    python scripts/run_pipeline.py init-config
    python scripts/run_pipeline.py run
    python scripts/run_pipeline.py --env-file prod.env --base-dir /scratch/bullet ingest

Thin wrapper around ``bulletcluster.cli.main`` for use from a source checkout
without installing the package.
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from bulletcluster.cli import main


if __name__ == "__main__":
    sys.exit(main())
