#!/usr/bin/env python3
"""
main.py - Quick-start entry point.

Drop candidate pictures into ``images/`` and run:

    python main.py build

Or use the full CLI:

    python -m photo_mosaic.cli build --help
    python -m photo_mosaic.cli analyze target.jpg -o target_blocks.json
"""

from photo_mosaic.cli import app

if __name__ == "__main__":
    app()
