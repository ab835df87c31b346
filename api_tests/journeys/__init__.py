"""
Ordered journeys against the live authentication service.

Journeys share one account: 01 registers it and persists the signup record,
every later journey resolves a session from that record. Order is declared
in api_tests.suite_order and enforced at collection time.

Journey Order:
    01 - Signup (persists the signup record)
    02 - Login
    03 - Role check via email
    04 - Active-user check
    05 - Account type switching
    06 - Send email OTP
    07 - Send SMS OTP
    08 - Verify email OTP
    09 - Verify SMS OTP
    10 - Change password (rotates the live password)
    11 - Reset password
"""
