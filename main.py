#!/usr/bin/env python3
"""
main.py - Commission reconciliation
Usage:
  python main.py WORKBOOK [WORKBOOK ...] [-c config/commission_policy.yaml] [-o report.xlsx]
"""
import sys

from commission_recon.cli import main

if __name__ == "__main__":
    sys.exit(main())
