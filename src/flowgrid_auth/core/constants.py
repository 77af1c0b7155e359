"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Hash lengths
SHA256_HEX_LENGTH = 64

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_SLUG_LENGTH = 63
MAX_IPV6_LENGTH = 45
MAX_USER_AGENT_LENGTH = 512
MAX_ROLE_LENGTH = 20
MAX_AUDIT_ACTION_LENGTH = 50
MAX_AUDIT_STATUS_LENGTH = 20
MAX_REASON_LENGTH = 100
MAX_TOTP_SECRET_LENGTH = 64

# Password requirements
MIN_PASSWORD_LENGTH = 8
STRONG_PASSWORD_LENGTH = 12
MIN_PASSWORD_SCORE = 3
MAX_PASSWORD_LENGTH = 128

# Pagination defaults
DEFAULT_PAGE_SIZE = 20
DEFAULT_AUDIT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

# Token settings
TOKEN_JTI_LENGTH = 32
INVITE_TOKEN_BYTES = 32
RESET_TOKEN_BYTES = 32
REFRESH_COOKIE_NAME = "refreshToken"

# MFA
TOTP_VALID_WINDOW = 1
BACKUP_CODE_BYTES = 4

# Redis key prefix for request-rate counters
RATE_LIMIT_PREFIX = "flowgrid:ratelimit"

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"
