"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_IPV6_LENGTH = 45
MAX_DESCRIPTION_LENGTH = 255
MAX_PERMISSION_CODE_LENGTH = 128
MAX_MODULE_KEY_LENGTH = 64
MAX_AUDIT_ACTION_LENGTH = 64
MAX_TABLE_NAME_LENGTH = 64

# Role validation (mirrors the admin UI limits)
MIN_ROLE_NAME_LENGTH = 3
MAX_ROLE_NAME_LENGTH = 80
MAX_ASSIGNMENT_NOTE_LENGTH = 300
MAX_CODES_PER_ASSIGNMENT = 200
MAX_OVERRIDE_COMMENT_LENGTH = 500

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 32

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"
