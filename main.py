# main.py
from __future__ import annotations
import sys

from tools.kpa_cli import main

if __name__ == "__main__":
    sys.exit(main())
