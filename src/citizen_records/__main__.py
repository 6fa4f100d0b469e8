"""Entry point for running citizen_records as a module.

This allows the package to be executed as:
    python -m citizen_records
"""

from citizen_records.cli.main import cli

if __name__ == "__main__":
    cli()
