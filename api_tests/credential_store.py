"""Persisted authentication state shared between independent test runs.

The signup journey records the identity it created; every later journey
rebuilds a session from that record. Two single-slot records exist:

- SignupRecord: the most recently registered test identity and the
  password it was registered with. Overwritten wholesale by each signup.
- SessionDescriptor: the most recent successful login, normalized.

Stores read the backing medium fresh on every call so a record written by
another process (an earlier pytest invocation) is always seen.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Protocol

from api_tests.constants import UserType
from api_tests.errors import NotFoundError, SetupOrderError

logger = logging.getLogger(__name__)

SIGNUP_RECORD_FILE = "customer_signup_data.json"
SESSION_DESCRIPTOR_FILE = "customer_auth_data.json"

SIGNUP_HINT = "Run the signup journey (test_01_signup) first."
SESSION_HINT = "Resolve a session (any journey after signup) first."


def _nested_id(payload: dict, role: str, key: str) -> Optional[str]:
    """Inner id of a role object, or None when the role is absent."""
    inner = payload.get(role) or {}
    return inner.get(key) or None


@dataclass
class SignupRecord:
    """Snapshot of a freshly registered test identity."""

    user_id: str
    system_id: Optional[str]
    email: str
    username: str
    full_name: str
    phone_number: str
    user_type: str
    account_type: Optional[str]
    password: str
    roles: List[str] = field(default_factory=list)
    customer_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "systemId": self.system_id,
            "email": self.email,
            "username": self.username,
            "fullName": self.full_name,
            "phoneNumber": self.phone_number,
            "userType": self.user_type,
            "accountType": self.account_type,
            "roles": list(self.roles),
            "password": self.password,
            "customerId": self.customer_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SignupRecord":
        """Rebuild a record; a record without email or password is unusable."""
        missing = [key for key in ("email", "password") if not data.get(key)]
        if missing:
            raise SetupOrderError(
                f"Signup record has no {', '.join(missing)}. {SIGNUP_HINT}"
            )
        return cls(
            user_id=data.get("userId", ""),
            system_id=data.get("systemId"),
            email=data.get("email", ""),
            username=data.get("username", ""),
            full_name=data.get("fullName", ""),
            phone_number=data.get("phoneNumber", ""),
            user_type=data.get("userType") or UserType.CUSTOMER.value,
            account_type=data.get("accountType"),
            roles=list(data.get("roles") or []),
            password=data.get("password", ""),
            customer_id=data.get("customerId"),
        )

    @classmethod
    def from_signup_response(cls, body: dict, password: str) -> "SignupRecord":
        """Build a record from an `auth/signup` 201 body.

        The body nests the created user as `data.user.user`, with the role
        objects (`customer`, `merchant`, `driver`) alongside it.
        """
        envelope = body["data"]["user"]
        created = envelope["user"]
        return cls(
            user_id=created.get("userId", ""),
            system_id=created.get("id"),
            email=created.get("email", ""),
            username=created.get("username", ""),
            full_name=created.get("fullName", ""),
            phone_number=created.get("phoneNumber", ""),
            user_type=created.get("userType") or UserType.CUSTOMER.value,
            account_type=created.get("accountType"),
            roles=[r.get("type") for r in (created.get("userRoles") or [])],
            password=password,
            customer_id=_nested_id(envelope, "customer", "customerId"),
        )


@dataclass
class SessionDescriptor:
    """Normalized result of one successful login."""

    token: str
    email: str
    user_id: str
    user_type: str
    full_name: str
    phone: str
    merchant_id: Optional[str] = None
    customer_id: Optional[str] = None
    driver_id: Optional[str] = None
    team_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "email": self.email,
            "userId": self.user_id,
            "userType": self.user_type,
            "fullName": self.full_name,
            "phone": self.phone,
            "merchantId": self.merchant_id,
            "customerId": self.customer_id,
            "driverId": self.driver_id,
            "teamId": self.team_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionDescriptor":
        return cls(
            token=data.get("token", ""),
            email=data.get("email", ""),
            user_id=data.get("userId", ""),
            user_type=data.get("userType", ""),
            full_name=data.get("fullName", ""),
            phone=data.get("phone", ""),
            merchant_id=data.get("merchantId"),
            customer_id=data.get("customerId"),
            driver_id=data.get("driverId"),
            team_id=data.get("teamId"),
        )

    @classmethod
    def from_login_payload(cls, user: dict, token: str) -> "SessionDescriptor":
        """Map `data.user` of a login response; missing roles map to None."""
        return cls(
            token=token,
            email=user.get("email", ""),
            user_id=user.get("userId", ""),
            user_type=user.get("userType", ""),
            full_name=user.get("fullName", ""),
            phone=user.get("phoneNumber", ""),
            merchant_id=_nested_id(user, "merchant", "merchantId"),
            customer_id=_nested_id(user, "customer", "customerId"),
            driver_id=_nested_id(user, "driver", "driverId"),
            team_id=_nested_id(user, "merchantTeam", "teamId"),
        )


class CredentialStore(Protocol):
    """Single-slot, overwrite-on-write, fail-on-missing-read persistence."""

    def write_signup_record(self, record: SignupRecord) -> None: ...

    def read_signup_record(self) -> SignupRecord: ...

    def write_session_descriptor(self, descriptor: SessionDescriptor) -> None: ...

    def read_session_descriptor(self) -> SessionDescriptor: ...

    def clear(self) -> None: ...


class FileCredentialStore:
    """JSON files in a state directory, one file per slot."""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    @property
    def signup_path(self) -> Path:
        return self.state_dir / SIGNUP_RECORD_FILE

    @property
    def session_path(self) -> Path:
        return self.state_dir / SESSION_DESCRIPTOR_FILE

    def _write(self, path: Path, data: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write atomically (write to temp, then rename)
        temp_file = path.with_suffix(".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        temp_file.replace(path)
        logger.info("[STATE] Updated %s", path)

    def _read(self, path: Path, slot: str, hint: str) -> dict:
        if not path.exists():
            raise NotFoundError(f"{slot} ({path})", hint)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise SetupOrderError(f"{slot} ({path}) is not valid JSON: {exc}. {hint}") from exc
        if not isinstance(data, dict):
            raise SetupOrderError(f"{slot} ({path}) does not hold a JSON object. {hint}")
        return data

    def write_signup_record(self, record: SignupRecord) -> None:
        self._write(self.signup_path, record.to_dict())

    def read_signup_record(self) -> SignupRecord:
        data = self._read(self.signup_path, "Signup record", SIGNUP_HINT)
        try:
            return SignupRecord.from_dict(data)
        except SetupOrderError as exc:
            raise SetupOrderError(f"{self.signup_path}: {exc}") from exc

    def write_session_descriptor(self, descriptor: SessionDescriptor) -> None:
        self._write(self.session_path, descriptor.to_dict())

    def read_session_descriptor(self) -> SessionDescriptor:
        return SessionDescriptor.from_dict(
            self._read(self.session_path, "Session descriptor", SESSION_HINT)
        )

    def clear(self) -> None:
        for path in (self.signup_path, self.session_path):
            if path.exists():
                path.unlink()
                logger.info("[STATE] Cleared %s", path)


class InMemoryCredentialStore:
    """Same contract as FileCredentialStore, scoped to one process."""

    def __init__(self) -> None:
        self._signup: Optional[dict[str, Any]] = None
        self._session: Optional[dict[str, Any]] = None

    # Records are kept serialized so callers never share mutable state
    def write_signup_record(self, record: SignupRecord) -> None:
        self._signup = record.to_dict()

    def read_signup_record(self) -> SignupRecord:
        if self._signup is None:
            raise NotFoundError("Signup record", SIGNUP_HINT)
        return SignupRecord.from_dict(self._signup)

    def write_session_descriptor(self, descriptor: SessionDescriptor) -> None:
        self._session = descriptor.to_dict()

    def read_session_descriptor(self) -> SessionDescriptor:
        if self._session is None:
            raise NotFoundError("Session descriptor", SESSION_HINT)
        return SessionDescriptor.from_dict(self._session)

    def clear(self) -> None:
        self._signup = None
        self._session = None
