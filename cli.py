#!/usr/bin/env python3
"""Unified CLI for the pest-control back office.

Usage:
    python cli.py planning --help
"""
import sys
import argparse


def main():
    parser = argparse.ArgumentParser(
        description='Pest-control back office',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modules:
  planning      Contract visit planning & anti-forgetting alerts

Examples:
  python cli.py planning init-db
  python cli.py planning generate 12 --actor 1
  python cli.py planning complete 345 --actual-date 2024-03-20
  python cli.py planning postpone 346 2024-04-25 --reason "Site closed"
  python cli.py planning alerts
"""
    )

    parser.add_argument(
        'module',
        choices=['planning'],
        help='Module to run'
    )

    # Parse just the module, pass rest to submodule
    args, remaining = parser.parse_known_args()

    # Dispatch to module CLI
    if args.module == 'planning':
        from modules.planning.cli import main as planning_main
        sys.exit(planning_main(remaining))


if __name__ == '__main__':
    main()
