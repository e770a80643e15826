"""Command-line entry point for the munge_vcf package."""

import sys

from munge_vcf.cli import main as _workflow_main


def main() -> None:
    """Execute the munge_vcf command-line interface."""

    sys.exit(_workflow_main())


if __name__ == "__main__":  # pragma: no cover - entry point
    main()
