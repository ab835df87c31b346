"""
Journey 07: Send OTP by SMS
"""
import re

from api_tests.constants import Status

UNKNOWN_PHONE = "09011111111"


def test_01_empty_phone(auth_client):
    response = auth_client.send_sms_otp("")

    assert response.status_code == Status.BAD_REQUEST
    assert response.json()["details"][0]["message"] == '"phoneNumber" is not allowed to be empty'


def test_02_unknown_phone(auth_client):
    response = auth_client.send_sms_otp(UNKNOWN_PHONE)

    assert response.status_code not in (Status.OK, Status.CREATED)


def test_03_send_otp(auth_client, auth_data):
    response = auth_client.send_sms_otp(auth_data.phone)

    assert response.status_code in (Status.OK, Status.CREATED), response.text
    assert re.search(r"otp sent", response.json()["message"], re.I)


def test_04_repeat_request_is_throttled(auth_client, auth_data):
    auth_client.send_sms_otp(auth_data.phone)

    response = auth_client.send_sms_otp(auth_data.phone)

    assert response.status_code != Status.CREATED
