#!/usr/bin/env python3
"""Run repository checks: ruff, pyright, pytest and an optional live smoke run.

Exits non-zero on the first failing step so CI and local tooling can observe status.
"""

from __future__ import annotations

import argparse
import subprocess
import sys


def run(cmd: list[str]) -> int:
    print("=>", " ".join(cmd))
    return subprocess.run(cmd, check=False).returncode


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--no-tests", action="store_true", help="Skip running pytest")
    parser.add_argument("--fix", action="store_true", help="Let ruff apply fixes")
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Load three images from the live catalog with the memory-only cache",
    )
    args = parser.parse_args()

    steps: list[tuple[str, list[str]]] = [
        ("ruff", [sys.executable, "-m", "ruff", "check", *(["--fix"] if args.fix else []), "."]),
        ("pyright", [sys.executable, "-m", "pyright"]),
    ]
    if not args.no_tests:
        steps.append(("pytest", [sys.executable, "-m", "pytest", "-q"]))
    if args.smoke:
        steps.append(
            ("smoke", [sys.executable, "-m", "photo_gallery", "--limit", "3", "--no-disk-cache", "--log-level", "info"])
        )

    for name, cmd in steps:
        rc = run(cmd)
        if rc != 0:
            print(f"{name} failed")
            return rc

    print("All checks passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
