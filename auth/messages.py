"""
auth/messages.py -- Machine-readable message constants returned to clients.

Every rejection carries one of these strings in error.message so clients can
branch on it without parsing prose.
"""

# Validation -- name
NAME_IS_REQUIRED = "NAME_IS_REQUIRED"
NAME_MUST_BE_STRING = "NAME_MUST_BE_STRING"
NAME_LENGTH = "NAME_LENGTH_MUST_BE_FROM_1_TO_100"

# Validation -- email
EMAIL_IS_REQUIRED = "EMAIL_IS_REQUIRED"
EMAIL_INVALID = "EMAIL_IS_INVALID"
EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
EMAIL_OR_PASSWORD_INCORRECT = "EMAIL_OR_PASSWORD_INCORRECT"

# Validation -- password
PASSWORD_IS_REQUIRED = "PASSWORD_IS_REQUIRED"
PASSWORD_MUST_BE_STRING = "PASSWORD_MUST_BE_STRING"
PASSWORD_LENGTH = "PASSWORD_LENGTH_MUST_BE_FROM_6_TO_50"
PASSWORD_MUST_BE_STRONG = "PASSWORD_MUST_BE_STRONG"
CONFIRM_PASSWORD_IS_REQUIRED = "CONFIRM_PASSWORD_IS_REQUIRED"
CONFIRM_PASSWORD_MUST_BE_STRING = "CONFIRM_PASSWORD_MUST_BE_STRING"
CONFIRM_PASSWORD_LENGTH = "CONFIRM_PASSWORD_LENGTH_MUST_BE_FROM_6_TO_50"
CONFIRM_PASSWORD_MUST_BE_STRONG = "CONFIRM_PASSWORD_MUST_BE_STRONG"
CONFIRM_PASSWORD_NOT_MATCH = "CONFIRM_PASSWORD_NOT_MATCH"

# Validation -- misc
DATE_OF_BIRTH_MUST_BE_ISO8601 = "DATE_OF_BIRTH_MUST_BE_ISO8061"
BODY_MUST_BE_JSON_OBJECT = "BODY_MUST_BE_JSON_OBJECT"

# Access token
ACCESS_TOKEN_IS_REQUIRED = "ACCESS_TOKEN_IS_REQUIRED"
ACCESS_TOKEN_INVALID = "ACCESS_TOKEN_INVALID"
ACCESS_TOKEN_EXPIRED = "ACCESS_TOKEN_EXPIRED"

# Refresh token
REFRESH_TOKEN_IS_REQUIRED = "REFRESH_TOKEN_IS_REQUIRED"
REFRESH_TOKEN_INVALID = "REFRESH_TOKEN_INVALID"
REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"
REFRESH_TOKEN_IS_USED_OR_NOT_EXIST = "REFRESH_TOKEN_IS_USED_OR_NOT_EXIST"

# Email verify token
EMAIL_VERIFY_TOKEN_IS_REQUIRED = "EMAIL_VERIFY_TOKEN_IS_REQUIRED"
EMAIL_VERIFY_TOKEN_INVALID = "EMAIL_VERIFY_TOKEN_INVALID"
EMAIL_VERIFY_TOKEN_EXPIRED = "EMAIL_VERIFY_TOKEN_EXPIRED"

# Forgot password token
FORGOT_PASSWORD_TOKEN_IS_REQUIRED = "FORGOT_PASSWORD_TOKEN_IS_REQUIRED"
FORGOT_PASSWORD_TOKEN_INVALID = "FORGOT_PASSWORD_TOKEN_INVALID"
FORGOT_PASSWORD_TOKEN_EXPIRED = "FORGOT_PASSWORD_TOKEN_EXPIRED"
FORGOT_PASSWORD_TOKEN_IS_INVALID = "FORGOT_PASSWORD_TOKEN_IS_INVALID"

# Account state
USER_NOT_FOUND = "USER_NOT_FOUND"
USER_BANNED = "USER_BANNED"

# Success
REGISTER_SUCCESS = "REGISTER_SUCCESS"
LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGOUT_SUCCESS = "LOGOUT_SUCCESS"
REFRESH_TOKEN_SUCCESS = "REFRESH_TOKEN_SUCCESS"
EMAIL_VERIFY_SUCCESS = "EMAIL_VERIFY_SUCCESS"
EMAIL_ALREADY_VERIFIED_BEFORE = "EMAIL_ALREADY_VERIFIED_BEFORE"
RESEND_VERIFY_EMAIL_SUCCESS = "RESEND_VERIFY_EMAIL_SUCCESS"
CHECK_EMAIL_TO_RESET_PASSWORD = "CHECK_EMAIL_TO_RESET_PASSWORD"
VERIFY_FORGOT_PASSWORD_SUCCESS = "VERIFY_FORGOT_PASSWORD_SUCCESS"
RESET_PASSWORD_SUCCESS = "RESET_PASSWORD_SUCCESS"
