"""Mock authentication service for offline testing.

This mock server implements the auth endpoints exercised by the journeys:
- signup / login (with MerchantTeam team selection)
- roles / is-authenticated
- send, view and verify OTPs over email and SMS (rate limited)
- change-password / reset-password
- switch-account

State is held in module-level dictionaries, shared by every app instance,
and cleared with reset_mock_state(). Validation errors follow the service's
shape: {"message": "Error in request body", "details": [{"message": ...}]}.
"""
from __future__ import annotations

import base64
import json
import re
import secrets
import threading
import time
import uuid
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, jsonify, request

from api_tests.constants import Messages, UserType, VerificationType

# Mock data storage
USERS: Dict[str, Dict[str, Any]] = {}  # lower-cased email -> account
TOKENS: Dict[str, Dict[str, Any]] = {}  # token -> {email, active_role, team_id}
OTPS: Dict[str, str] = {}  # email or phone -> last issued code
OTP_REQUESTS: Dict[str, List[float]] = {}  # email or phone -> request timestamps
LOGIN_OVERRIDES: List[Tuple[int, Any]] = []  # queued (status, body) replies for auth/login
LOGIN_ATTEMPTS: List[Dict[str, Any]] = []  # every login payload received

# OTP rate limit: requests per identifier per window
OTP_RATE_LIMIT = 3
OTP_RATE_WINDOW = 60.0

PASSWORD_HISTORY_SIZE = 3

_otp_lock = threading.Lock()

_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+$")
_GUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)
_PHONE_RE = re.compile(r"^0\d{10}$")

_USER_TYPES = [t.value for t in UserType]
_VERIFICATION_TYPES = [t.value for t in VerificationType]


def reset_mock_state() -> None:
    USERS.clear()
    TOKENS.clear()
    OTPS.clear()
    OTP_REQUESTS.clear()
    LOGIN_OVERRIDES.clear()
    LOGIN_ATTEMPTS.clear()


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _issue_token(email: str, active_role: str, team_id: Optional[str] = None) -> str:
    header = _b64({"alg": "HS256", "typ": "JWT"})
    payload = _b64({"sub": email, "role": active_role, "jti": secrets.token_hex(8)})
    token = f"{header}.{payload}.{secrets.token_urlsafe(24)}"
    TOKENS[token] = {"email": email.lower(), "active_role": active_role, "team_id": team_id}
    return token


def _password_ok(password: str) -> bool:
    return (
        len(password) >= 8
        and any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
        and any(not c.isalnum() for c in password)
    )


def seed_user(
    email: str,
    password: str,
    user_type: str = UserType.CUSTOMER.value,
    phone_number: str = "07123456789",
    full_name: str = "Seeded User",
    extra_roles: Optional[List[str]] = None,
    teams: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Create an account directly, bypassing signup validation."""
    roles = [user_type] + [r for r in (extra_roles or []) if r != user_type]
    account = {
        "id": secrets.randbelow(10**6),
        "userId": str(uuid.uuid4()),
        "email": email,
        "username": email.split("@")[0],
        "fullName": full_name,
        "phoneNumber": phone_number,
        "userType": user_type,
        "accountType": "Individual",
        "roles": roles,
        "teams": list(teams or []),
        "password": password,
        "history": [password],
        "role_ids": {
            UserType.CUSTOMER.value: str(uuid.uuid4()),
            UserType.MERCHANT.value: str(uuid.uuid4()),
            UserType.DRIVER.value: str(uuid.uuid4()),
        },
    }
    USERS[email.lower()] = account
    return account


def set_password(email: str, password: str) -> None:
    """Rotate a password out-of-band, as a parallel journey would."""
    account = USERS[email.lower()]
    account["password"] = password
    account["history"] = (account["history"] + [password])[-PASSWORD_HISTORY_SIZE:]


def queue_login_reply(status: int, body: Any) -> None:
    """Make the next auth/login call answer with `status` and `body` verbatim."""
    LOGIN_OVERRIDES.append((status, body))


def _public_user(account: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": account["id"],
        "userId": account["userId"],
        "email": account["email"],
        "username": account["username"],
        "fullName": account["fullName"],
        "phoneNumber": account["phoneNumber"],
        "userType": account["userType"],
        "accountType": account["accountType"],
        "userRoles": [{"type": r} for r in account["roles"]],
    }


def _role_objects(account: Dict[str, Any], role: str, team_id: Optional[str] = None) -> Dict[str, Any]:
    ids = account["role_ids"]
    if role == UserType.CUSTOMER.value:
        return {"customer": {"customerId": ids[UserType.CUSTOMER.value]}}
    if role == UserType.MERCHANT.value:
        return {"merchant": {"merchantId": ids[UserType.MERCHANT.value]}}
    if role == UserType.DRIVER.value:
        return {"driver": {"driverId": ids[UserType.DRIVER.value]}}
    if role == UserType.MERCHANT_TEAM.value and team_id:
        return {"merchantTeam": {"teamId": team_id}}
    return {}


def _find_by_phone(phone: str) -> Optional[Dict[str, Any]]:
    for account in USERS.values():
        if account["phoneNumber"] == phone:
            return account
    return None


def create_mock_auth_app() -> Flask:
    """Create and configure the mock auth Flask app."""
    app = Flask(__name__)
    app.config["TESTING"] = True

    def _body() -> Dict[str, Any]:
        return request.get_json(silent=True) or {}

    def _validation_error(message: str) -> tuple:
        return jsonify({
            "message": Messages.REQUEST_BODY_ERROR,
            "details": [{"message": message}],
        }), 400

    def _require_text(data: Dict[str, Any], field: str) -> Optional[tuple]:
        if field not in data or data[field] is None:
            return _validation_error(f'"{field}" is required')
        if data[field] == "":
            return _validation_error(f'"{field}" is not allowed to be empty')
        return None

    def _require_email(data: Dict[str, Any]) -> Optional[tuple]:
        error = _require_text(data, "email")
        if error:
            return error
        email = str(data["email"])
        if not _EMAIL_RE.match(email) or ".." in email:
            return _validation_error('"email" must be a valid email')
        return None

    def _session() -> Tuple[Optional[Dict[str, Any]], Optional[tuple]]:
        header = request.headers.get("Authorization", "")
        token = header[len("Bearer "):].strip() if header.startswith("Bearer") else ""
        if not token:
            return None, (jsonify({"message": Messages.NO_TOKEN}), 401)
        session = TOKENS.get(token)
        if session is None:
            return None, (jsonify({"message": "Invalid or expired token"}), 401)
        return session, None

    def _rate_limited(identifier: str) -> bool:
        # The app is served threaded; bursts hit this concurrently
        with _otp_lock:
            now = time.time()
            recent = [t for t in OTP_REQUESTS.get(identifier, []) if now - t < OTP_RATE_WINDOW]
            if len(recent) >= OTP_RATE_LIMIT:
                OTP_REQUESTS[identifier] = recent
                return True
            OTP_REQUESTS[identifier] = recent + [now]
            return False

    def _issue_otp(identifier: str) -> None:
        OTPS[identifier] = f"{secrets.randbelow(10**6):06d}"

    @app.route("/auth/signup", methods=["POST"])
    def signup():
        data = _body()
        for field in ("username", "password", "fullName", "phoneNumber"):
            error = _require_text(data, field)
            if error:
                return error
        error = _require_email(data)
        if error:
            return error
        if not _PHONE_RE.match(data["phoneNumber"]):
            return _validation_error('"phoneNumber" must be a valid phone number')
        if not _password_ok(data["password"]):
            return _validation_error(Messages.PASSWORD_CRITERIA)
        user_type = data.get("userType") or UserType.CUSTOMER.value
        if user_type not in _USER_TYPES:
            return _validation_error(f'"userType" must be one of [{", ".join(_USER_TYPES)}]')
        if data["email"].lower() in USERS:
            return jsonify({"message": "User already exists"}), 409

        account = seed_user(
            data["email"],
            data["password"],
            user_type=user_type,
            phone_number=data["phoneNumber"],
            full_name=data["fullName"],
        )
        account["username"] = data["username"]
        envelope = {"user": _public_user(account)}
        envelope.update(_role_objects(account, user_type))
        return jsonify({"message": Messages.SIGNUP_SUCCESS, "data": {"user": envelope}}), 201

    @app.route("/auth/login", methods=["POST"])
    def login():
        data = _body()
        LOGIN_ATTEMPTS.append(dict(data))
        if LOGIN_OVERRIDES:
            status, reply = LOGIN_OVERRIDES.pop(0)
            if isinstance(reply, str):
                return app.response_class(reply, status=status, mimetype="text/plain")
            return jsonify(reply), status

        if not data.get("email"):
            return jsonify({"message": '"email" is required'}), 400
        if not data.get("password"):
            return jsonify({"message": '"password" is required'}), 400
        user_type = data.get("userType")
        if user_type not in _USER_TYPES:
            return jsonify({"message": f'"userType" must be one of [{", ".join(_USER_TYPES)}]'}), 400

        account = USERS.get(str(data["email"]).lower())
        if account is None or account["password"] != data["password"]:
            return jsonify({"message": Messages.INVALID_CREDENTIALS}), 401
        if user_type not in account["roles"]:
            return jsonify({"message": "User type not permitted for this account"}), 403

        team_id = data.get("teamId")
        if user_type == UserType.MERCHANT_TEAM.value and team_id not in account["teams"]:
            return jsonify({"message": "User is not a member of this team"}), 403

        user = _public_user(account)
        user["userType"] = user_type
        user.update(_role_objects(account, user_type, team_id))
        return jsonify({
            "message": Messages.LOGIN_SUCCESS,
            "data": {"token": _issue_token(account["email"], user_type, team_id), "user": user},
        }), 200

    @app.route("/auth/roles", methods=["POST"])
    def roles():
        data = _body()
        error = _require_email(data)
        if error:
            return error
        account = USERS.get(data["email"].strip().lower())
        if account is None:
            return jsonify({"message": Messages.USER_NOT_FOUND}), 404
        return jsonify({
            "message": Messages.ROLE_CHECK_SUCCESS,
            "data": {"roles": account["roles"]},
        }), 200

    @app.route("/auth/is-authenticated", methods=["POST"])
    def is_authenticated():
        session, error = _session()
        if error:
            return error
        return jsonify({"message": "User is authenticated", "data": {"email": session["email"]}}), 200

    @app.route("/auth/send-otp-email", methods=["POST"])
    def send_otp_email():
        data = _body()
        error = _require_email(data)
        if error:
            return error
        if data.get("verificationType") not in _VERIFICATION_TYPES:
            return _validation_error(
                f'"verificationType" must be one of [{", ".join(_VERIFICATION_TYPES)}]'
            )
        identifier = data["email"]
        if _rate_limited(identifier):
            return jsonify({"message": "Too many requests, please try again later."}), 429
        _issue_otp(identifier)
        return jsonify({"message": "OTP sent successfully"}), 200

    @app.route("/auth/send-otp-sms", methods=["POST"])
    def send_otp_sms():
        data = _body()
        error = _require_text(data, "phoneNumber")
        if error:
            return error
        phone = data["phoneNumber"]
        if not _PHONE_RE.match(phone):
            return _validation_error('"phoneNumber" must be a valid phone number')
        if _find_by_phone(phone) is None:
            return jsonify({"message": "User not found."}), 404
        if _rate_limited(phone):
            return jsonify({"message": "Too many requests, please try again later."}), 429
        _issue_otp(phone)
        return jsonify({"message": "OTP sent successfully"}), 200

    @app.route("/auth/view-Otp", methods=["POST"])
    def view_otp():
        identifier = _body().get("identifier")
        if identifier not in OTPS:
            return jsonify({"message": "No OTP found"}), 404
        return jsonify({"message": "OTP retrieved", "data": OTPS[identifier]}), 200

    def _verify(identifier: str, code: str) -> tuple:
        if OTPS.get(identifier) != code:
            return jsonify({"message": "Invalid OTP"}), 400
        del OTPS[identifier]
        return jsonify({"message": Messages.OTP_VERIFIED}), 200

    @app.route("/auth/verify-email", methods=["POST"])
    def verify_email():
        data = _body()
        error = _require_text(data, "email") or _require_text(data, "otp")
        if error:
            return error
        return _verify(data["email"], data["otp"])

    @app.route("/auth/verify-phone", methods=["POST"])
    def verify_phone():
        data = _body()
        error = _require_text(data, "phoneNumber") or _require_text(data, "code")
        if error:
            return error
        return _verify(data["phoneNumber"], data["code"])

    @app.route("/auth/change-password", methods=["POST"])
    def change_password():
        session, error = _session()
        if error:
            return error
        data = _body()
        if not _GUID_RE.match(str(data.get("userId", ""))):
            return _validation_error('"userId" must be a valid GUID')
        account = USERS[session["email"]]
        if account["userId"] != data["userId"]:
            return jsonify({"message": "You can only change your own password."}), 403
        if data.get("oldPassword") != account["password"]:
            return jsonify({"message": Messages.OLD_PASSWORD_INCORRECT}), 403
        new_password = data.get("newPassword") or ""
        if not _password_ok(new_password):
            return _validation_error(Messages.PASSWORD_CRITERIA)
        if new_password in account["history"]:
            return jsonify({"message": Messages.PASSWORD_RECENTLY_USED}), 400
        set_password(account["email"], new_password)
        return jsonify({"message": Messages.PASSWORD_CHANGED}), 200

    @app.route("/auth/reset-password", methods=["POST"])
    def reset_password():
        data = _body()
        if "email" in data and not _EMAIL_RE.match(str(data["email"] or "")):
            return _validation_error('"email" must be a valid email')
        if "phoneNumber" in data and not data["phoneNumber"]:
            return _validation_error('"phoneNumber" is not allowed to be empty')
        if "email" in data:
            account = USERS.get(data["email"].lower())
        else:
            account = _find_by_phone(data.get("phoneNumber") or "")
        if account is None or (
            "phoneNumber" in data and account["phoneNumber"] != data["phoneNumber"]
        ):
            return jsonify({"message": Messages.RESET_USER_NOT_FOUND}), 404
        new_password = data.get("newPassword") or ""
        if not _password_ok(new_password):
            return _validation_error(Messages.PASSWORD_CRITERIA)
        set_password(account["email"], new_password)
        return jsonify({"message": Messages.PASSWORD_RESET}), 200

    @app.route("/auth/switch-account", methods=["POST"])
    def switch_account():
        session, error = _session()
        if error:
            return error
        data = _body()
        user_type = data.get("userType")
        if user_type not in _USER_TYPES:
            return _validation_error(f'"userType" must be one of [{", ".join(_USER_TYPES)}]')
        account = USERS[session["email"]]
        team_id = data.get("teamId")
        if user_type == UserType.MERCHANT_TEAM.value:
            if team_id not in account["teams"]:
                return jsonify({"message": "User is not a member of this team"}), 403
            if session["active_role"] == user_type and session["team_id"] == team_id:
                return jsonify({"message": "Already active on this team"}), 400
        elif user_type not in account["roles"]:
            return jsonify({"message": "User type not permitted for this account"}), 403
        token = _issue_token(account["email"], user_type, team_id)
        return jsonify({
            "message": "Account switched successfully",
            "data": {"activeRole": user_type, "token": token},
        }), 200

    return app


if __name__ == "__main__":
    # For running the mock server directly
    app = create_mock_auth_app()
    seed_user("customer@yopmail.com", "Password1@")
    print("Mock auth API running on http://localhost:5556/")
    app.run(host="0.0.0.0", port=5556, debug=True)
