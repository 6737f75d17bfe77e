#!/usr/bin/env python3
"""Build, transfer and deploy the mijn_bussie containers: ./deploy.py [-a | -m]"""

from __future__ import annotations

import sys

from bussie_deploy.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
