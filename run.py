#!/usr/bin/env python3
"""
Run Zone Defense from a source checkout
"""

import os
import sys

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))

# Ensure the package is importable without installing it
sys.path.insert(0, CURRENT_DIR)


def main() -> int:
    from zonedefense.main import main as gtk_main

    return gtk_main()


if __name__ == '__main__':
    sys.exit(main())
