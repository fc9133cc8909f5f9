#!/usr/bin/env python3
"""Run import sorting, formatting and the test suite.

Usage:
    python scripts/lint_all.py [--check] [--skip-tests]

Options:
    --check: Report formatting problems without rewriting files (CI mode)
    --skip-tests: Skip running pytest
"""

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

SOURCE_DIRS = ["shopsense", "tests", "scripts"]


def run_command(cmd: List[str], description: str) -> bool:
    """Run a command from the project root and report whether it succeeded."""
    print(f"\n{'=' * 60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")
    print(f"{'=' * 60}\n")

    try:
        result = subprocess.run(cmd, cwd=PROJECT_ROOT, check=False)
    except FileNotFoundError as e:
        print(f"\n✗ {cmd[0]} not found: {e}")
        print("  Install the dev extra: pip install -e '.[test,dev]'\n")
        return False

    if result.returncode == 0:
        print(f"\n✓ {description} passed\n")
        return True

    print(f"\n✗ {description} failed (exit code: {result.returncode})\n")
    return False


def formatter_commands(check_mode: bool) -> List[tuple]:
    """isort then black, in check-only or rewrite mode."""
    if check_mode:
        return [
            (["isort", *SOURCE_DIRS, "--check-only", "--diff"], "isort (import sorting)"),
            (["black", *SOURCE_DIRS, "--check"], "black (code formatting)"),
        ]
    return [
        (["isort", *SOURCE_DIRS], "isort (import sorting)"),
        (["black", *SOURCE_DIRS], "black (code formatting)"),
    ]


def main() -> int:
    """Run every check and return the process exit code."""
    parser = argparse.ArgumentParser(
        description="Run formatting and test checks for ShopSense",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only check formatting (don't modify files)",
    )
    parser.add_argument(
        "--skip-tests",
        action="store_true",
        help="Skip running pytest",
    )
    args = parser.parse_args()

    print("\n" + "=" * 60)
    print("ShopSense Code Quality Checks")
    print("=" * 60)

    commands = formatter_commands(args.check)
    if not args.skip_tests:
        commands.append((["pytest", "tests/", "-v"], "pytest (tests)"))

    # Run everything so one failure doesn't hide the others
    results = [run_command(cmd, description) for cmd, description in commands]

    print("\n" + "=" * 60)
    if all(results):
        print("✓ All checks passed!")
        print("=" * 60 + "\n")
        return 0

    print("✗ Some checks failed. Please fix the issues above.")
    print("=" * 60 + "\n")
    return 1


if __name__ == "__main__":
    sys.exit(main())
