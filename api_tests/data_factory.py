"""Generated user data for signup and login tests.

Every call yields a fresh identity (random name, yopmail address, UK mobile
number) so tests never collide with accounts left behind by earlier runs.
"""
from __future__ import annotations

import secrets
import string
import time
from typing import Any, Optional

from api_tests.constants import Passwords, UserType

FIRST_NAMES = [
    "Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Henry",
    "Ivy", "Jack", "Kate", "Liam", "Mia", "Noah", "Olivia", "Paul",
    "Quinn", "Rose", "Sam", "Tara", "Uma", "Victor", "Wendy", "Xander",
    "Yara", "Zoe",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller",
    "Davis", "Rodriguez", "Martinez", "Hernandez", "Lopez", "Wilson",
    "Anderson", "Thomas", "Taylor", "Moore", "Jackson", "Martin", "Lee",
]

INVALID_EMAILS = [
    "invalid-email",
    "missing-at-sign.com",
    "@no-local-part.com",
    "no-domain@",
    "spaces in@email.com",
    "double@@at.com",
    "invalid..dots@email.com",
]

INVALID_PHONES = [
    "070abc",
    "12345",
    "07",
    "999999999999999",
    "0712345678a",
]

EMAIL_DOMAIN = "yopmail.com"


def random_digits(count: int) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(count))


def random_email(first_name: Optional[str] = None) -> str:
    """`<name><random><time suffix>@yopmail.com`"""
    name = (first_name or secrets.choice(FIRST_NAMES)).lower()
    name = "".join(ch for ch in name if ch.isalpha()) or "user"
    suffix = str(int(time.time() * 1000))[-4:]
    return f"{name}{secrets.randbelow(10000)}{suffix}@{EMAIL_DOMAIN}"


def random_uk_mobile() -> str:
    """UK mobile number: 07 followed by 9 digits."""
    return "07" + random_digits(9)


def is_valid_uk_phone(phone: str) -> bool:
    cleaned = phone.replace(" ", "").replace("-", "")
    return len(cleaned) == 11 and cleaned.startswith("0") and cleaned.isdigit()


def vehicle_number() -> str:
    """UK registration plate, e.g. AB12 CDE."""
    letters = string.ascii_uppercase
    return (
        secrets.choice(letters) + secrets.choice(letters) + random_digits(2) + " "
        + "".join(secrets.choice(letters) for _ in range(3))
    )


class UserDataFactory:
    """Builds signup payloads (camelCase dicts, as sent on the wire)."""

    @staticmethod
    def customer(**overrides: Any) -> dict:
        first_name = secrets.choice(FIRST_NAMES)
        last_name = secrets.choice(LAST_NAMES)
        user = {
            "username": f"{first_name.lower()}{random_digits(4)}",
            "email": random_email(first_name),
            "password": Passwords.VALID,
            "fullName": f"{first_name} {last_name}",
            "phoneNumber": random_uk_mobile(),
            "userType": UserType.CUSTOMER.value,
        }
        user.update(overrides)
        return user

    @classmethod
    def merchant(cls, **overrides: Any) -> dict:
        user = cls.customer(**overrides)
        user["userType"] = UserType.MERCHANT.value
        user.setdefault("businessName", f"{user['fullName']}'s Business")
        return user

    @classmethod
    def driver(cls, **overrides: Any) -> dict:
        user = cls.customer(**overrides)
        user["userType"] = UserType.DRIVER.value
        user.setdefault("vehicleNumber", vehicle_number())
        return user

    @classmethod
    def with_invalid_email(cls, email: Optional[str] = None) -> dict:
        return cls.customer(email=email or secrets.choice(INVALID_EMAILS))

    @classmethod
    def with_invalid_phone(cls, phone_number: Optional[str] = None) -> dict:
        return cls.customer(phoneNumber=phone_number or secrets.choice(INVALID_PHONES))

    @classmethod
    def with_weak_password(cls, kind: str = "noSpecial") -> dict:
        weak = {
            "tooShort": Passwords.TOO_SHORT,
            "noSpecial": Passwords.NO_SPECIAL,
            "noNumber": Passwords.NO_NUMBER,
            "noUppercase": Passwords.NO_UPPERCASE,
            "empty": Passwords.EMPTY,
        }
        return cls.customer(password=weak.get(kind, Passwords.NO_SPECIAL))

    @staticmethod
    def boundary_data() -> dict:
        return {
            "minUsername": "abc",
            "maxUsername": "a" * 50,
            "tooLongUsername": "a" * 51,
            "minPassword": "Pass1@78",
            "maxPassword": "P@ss1" + "a" * 123,
            "tooLongPassword": "P@ss1" + "a" * 124,
            "maxEmail": "a" * 240 + "@example.com",
            "tooLongEmail": "a" * 250 + "@example.com",
        }
