from datetime import timedelta

# Verification
VERIFIER_MIN_TENURE = timedelta(days=7)
DEFAULT_MIN_VERIFICATIONS = 3
MAX_MIN_VERIFICATIONS = 10

# Member item requests
MEMBER_REQUEST_WINDOW = timedelta(days=7)
MAX_ACTIVE_MEMBER_REQUESTS = 3

# Invitations
CHURCH_INVITATION_WINDOW = timedelta(days=7)
INVITE_CODE_LENGTH = 8
INVITE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Pings
PING_WINDOW = timedelta(days=7)
PING_DAILY_LIMIT = 10
PING_RECENT_RESPONSE_WINDOW = timedelta(days=7)

# Messages
MESSAGE_LIFETIME = timedelta(hours=24)
MAX_PENDING_MESSAGES = 5
MAX_MESSAGE_CONTENT_LENGTH = 500
MAX_MESSAGE_TITLE_LENGTH = 100
MESSAGE_ARCHIVE_AFTER = timedelta(days=30)
ANONYMOUS_AUTHOR_NAME = "Fellow Member"

# Membership enforcement
MEMBERSHIP_WARNING_AFTER = timedelta(days=5)
MEMBERSHIP_DISABLE_AFTER = timedelta(days=7)
DISABLED_REASON_MEMBERSHIP = "CHURCH_MEMBERSHIP_REQUIRED"

# Password reset
PASSWORD_RESET_TOKEN_LIFETIME = timedelta(hours=1)
