#!/usr/bin/env python3
"""
Quick test runner for the teahouse backend.
Usage: python run_tests.py [command]

Commands:
  install  - Install the package with test dependencies
  run      - Run all tests
  fast     - Run tests without slow tests
  quick    - Run tests, stop on first failure
"""

import subprocess
import sys
import os


def run_cmd(cmd, description=""):
    """Run a command and exit on failure."""
    if description:
        print(f"\n{'='*60}")
        print(f"  {description}")
        print(f"{'='*60}\n")

    result = subprocess.run(cmd, shell=True)
    if result.returncode != 0:
        print(f"\nFailed: {description}")
        sys.exit(1)
    print(f"\nSuccess: {description}")


def main():
    os.chdir(os.path.dirname(os.path.abspath(__file__)))

    command = sys.argv[1] if len(sys.argv) > 1 else "run"

    if command == "install":
        run_cmd("pip install -e ..[test]", "Installing package and test dependencies")

    elif command == "run":
        run_cmd("pytest tests -v", "Running all tests")

    elif command == "fast":
        run_cmd("pytest tests -v -m 'not slow'", "Running fast tests only")

    elif command == "quick":
        run_cmd("pytest tests -x -v", "Running tests (stop on first failure)")

    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
