"""Shared constants for the auth API tests.

Status codes, endpoint paths, user types and the canonical response
messages of the service under test live here so test modules never
carry magic strings.
"""
from __future__ import annotations

from enum import Enum


class Status:
    OK = 200
    CREATED = 201
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    TOO_MANY_REQUESTS = 429
    SERVER_ERROR = 500


class Endpoints:
    """Endpoint paths, relative to the configured base URL."""

    SIGNUP = "auth/signup"
    LOGIN = "auth/login"
    ROLES = "auth/roles"
    IS_AUTHENTICATED = "auth/is-authenticated"
    SEND_OTP_EMAIL = "auth/send-otp-email"
    SEND_OTP_SMS = "auth/send-otp-sms"
    VERIFY_EMAIL = "auth/verify-email"
    VERIFY_PHONE = "auth/verify-phone"
    VIEW_OTP = "auth/view-Otp"  # test environments only
    CHANGE_PASSWORD = "auth/change-password"
    RESET_PASSWORD = "auth/reset-password"
    SWITCH_ACCOUNT = "auth/switch-account"


class UserType(str, Enum):
    CUSTOMER = "Customer"
    MERCHANT = "Merchant"
    DRIVER = "Driver"
    MERCHANT_TEAM = "MerchantTeam"
    ADMIN = "Admin"


class VerificationType(str, Enum):
    SIGNUP = "signup"
    LOGIN = "login"
    FORGOT_PASSWORD = "forgotPassword"


class Passwords:
    VALID = "Password1@"
    VALID_ALT = "Password@2"
    NO_SPECIAL = "Password1"
    NO_NUMBER = "Password@"
    NO_UPPERCASE = "password1@"
    TOO_SHORT = "Pass1@"
    WRONG = "WrongPassword@123"
    EMPTY = ""


class Messages:
    SIGNUP_SUCCESS = "User created successfully"
    LOGIN_SUCCESS = "User logged in successfully"
    ROLE_CHECK_SUCCESS = "User check successful"
    OTP_VERIFIED = "OTP Verification was successful"
    PASSWORD_CHANGED = "Password updated successfully"
    PASSWORD_RESET = "Password reset successful"
    INVALID_CREDENTIALS = "Invalid email or password."
    NO_TOKEN = "No token provided"
    REQUEST_BODY_ERROR = "Error in request body"
    USER_NOT_FOUND = "User not found or does not exist"
    RESET_USER_NOT_FOUND = "User not found."
    OLD_PASSWORD_INCORRECT = "The old password you entered is incorrect."
    PASSWORD_RECENTLY_USED = "This password has been used recently. Please choose a different one."
    PASSWORD_CRITERIA = (
        "Password must contain at least one uppercase letter, one lowercase letter, "
        "one number and one special character"
    )


# Seconds
DEFAULT_TIMEOUT = 30.0
LOGIN_RESPONSE_BUDGET = 3.0

# Status codes that mean "these credentials were refused"; anything else
# non-200 is treated as a service fault.
CREDENTIAL_REJECTION_STATUSES = frozenset(
    {Status.BAD_REQUEST, Status.UNAUTHORIZED, Status.FORBIDDEN}
)
