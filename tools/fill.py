#!/usr/bin/env python3
"""Fill escrow fixtures from the test-suite, then optionally emit vectors.

The tests record every `state_test_group` case; `--output` makes conftest
write them as JSON under the fixtures directory. With `--vectors` the fresh
fixtures are converted to YAML vectors in the same run. Extra arguments are
passed through to pytest (e.g. `-k claim`).
"""

from __future__ import annotations

import argparse
import os
import shutil
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from fixtures_to_vectors import convert_fixtures  # noqa: E402


def run_pytest(out: Path, pytest_args: list[str]) -> int:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])
    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", str(out), *pytest_args]
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd, env=env, cwd=str(ROOT))


def main() -> int:
    parser = argparse.ArgumentParser(description="Fill escrow fixtures")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=None, help="Also write YAML vectors here")
    parser.add_argument("--clean", action="store_true", help="Remove old fixtures first")
    args, pytest_args = parser.parse_known_args()

    out = Path(args.fixtures).resolve()
    if args.clean and out.exists():
        shutil.rmtree(out)

    status = run_pytest(out, pytest_args)
    if status != 0 or not args.vectors:
        return status

    count = convert_fixtures(out, Path(args.vectors).resolve())
    print(f"Wrote {count} vector files to {args.vectors}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
