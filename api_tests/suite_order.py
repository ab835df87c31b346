"""Declared execution order of the journey modules.

Journeys share one live account, so order matters: signup must persist its
record before anything resolves a session, and password reset runs after
the change-password journey has rotated the password. The order is data
here rather than an accident of file names, and is checked on load.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

from api_tests.errors import SuiteOrderError


@dataclass(frozen=True)
class Stage:
    name: str
    module: str
    requires: Tuple[str, ...] = ()


SUITE_STAGES: Tuple[Stage, ...] = (
    Stage("signup", "test_01_signup"),
    Stage("login", "test_02_login", ("signup",)),
    Stage("role-check", "test_03_check_user_roles", ("signup",)),
    Stage("active-user", "test_04_check_active_user", ("signup",)),
    Stage("switch-account", "test_05_switch_account_type", ("signup",)),
    Stage("send-email-otp", "test_06_send_otp_email", ("signup",)),
    Stage("send-sms-otp", "test_07_send_otp_sms", ("signup",)),
    Stage("verify-email-otp", "test_08_verify_email_otp", ("signup",)),
    Stage("verify-sms-otp", "test_09_verify_sms_otp", ("signup",)),
    Stage("change-password", "test_10_change_password", ("signup",)),
    Stage("reset-password", "test_11_reset_password", ("signup", "change-password")),
)


def validate_order(stages: Sequence[Stage]) -> None:
    """Every requirement must name a stage declared earlier in the sequence."""
    seen: set[str] = set()
    for stage in stages:
        if stage.name in seen:
            raise SuiteOrderError(f"Stage {stage.name!r} is declared twice")
        for required in stage.requires:
            if required not in seen:
                raise SuiteOrderError(
                    f"Stage {stage.name!r} requires {required!r}, "
                    "which is not declared before it"
                )
        seen.add(stage.name)


def stages_up_to(name: str, stages: Sequence[Stage] = SUITE_STAGES) -> list[Stage]:
    """The prefix of the order ending with stage `name`."""
    for index, stage in enumerate(stages):
        if stage.name == name:
            return list(stages[: index + 1])
    raise SuiteOrderError(f"Unknown stage {name!r}")


def order_key(path: str | Path, stages: Sequence[Stage] = SUITE_STAGES) -> int:
    """Position of a test module in the declared order; undeclared sort last."""
    module = Path(path).stem
    for index, stage in enumerate(stages):
        if stage.module == module:
            return index
    return len(stages)


validate_order(SUITE_STAGES)
