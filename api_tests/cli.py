"""Run the journey suite in its declared order.

    auth-api-e2e                       # all journeys
    auth-api-e2e --stage login         # signup + login only
    auth-api-e2e --list                # print the order and exit
    auth-api-e2e -- -x -k otp          # extra arguments go to pytest
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pytest

from api_tests.suite_order import SUITE_STAGES, stages_up_to

JOURNEYS_DIR = Path(__file__).resolve().parent / "journeys"


def build_pytest_args(stage: Optional[str], extra: List[str]) -> List[str]:
    stages = stages_up_to(stage) if stage else list(SUITE_STAGES)
    files = [str(JOURNEYS_DIR / f"{s.module}.py") for s in stages]
    return files + extra


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the auth API journeys in order")
    parser.add_argument(
        "--stage",
        choices=[stage.name for stage in SUITE_STAGES],
        metavar="STAGE",
        help="Stop after this stage (runs the prefix of the order); see --list",
    )
    parser.add_argument("--list", action="store_true", help="Print the declared order and exit")
    parser.add_argument("pytest_args", nargs="*", help="Arguments passed through to pytest")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.list:
        for index, stage in enumerate(SUITE_STAGES, start=1):
            requires = ", ".join(stage.requires) or "-"
            print(f"{index:02d}  {stage.name:<18} {stage.module:<30} requires: {requires}")
        return 0

    return int(pytest.main(build_pytest_args(args.stage, args.pytest_args)))


if __name__ == "__main__":
    sys.exit(main())
