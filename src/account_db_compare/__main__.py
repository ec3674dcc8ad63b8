"""
CLI module entry point.

This allows the CLI to be run as:
python -m account_db_compare
"""

from account_db_compare.main import main

if __name__ == "__main__":
    exit(main())
