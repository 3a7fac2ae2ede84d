from enum import Enum


class UserRole(Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    CHURCH = "CHURCH"


class ChurchMembershipStatus(Enum):
    NONE = "NONE"
    REQUESTED = "REQUESTED"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class ApplicationStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerificationRequestStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerificationAction(Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ItemStatus(Enum):
    AVAILABLE = "AVAILABLE"
    CLAIMED = "CLAIMED"
    COMPLETED = "COMPLETED"


class ModerationStatus(Enum):
    AUTO_APPROVED = "AUTO_APPROVED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FLAGGED = "FLAGGED"


class MemberRequestStatus(Enum):
    REQUESTED = "REQUESTED"
    RECEIVED = "RECEIVED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class InvitationStatus(Enum):
    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class PingStatus(Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class MessageStatus(Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    EXPIRED = "EXPIRED"
    ARCHIVED = "ARCHIVED"


class MessageType(Enum):
    DAILY_MESSAGE = "DAILY_MESSAGE"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    USER_SHARE = "USER_SHARE"


class UserMessageCategory(Enum):
    TESTIMONY = "TESTIMONY"
    PRAYER_REQUEST = "PRAYER_REQUEST"
    GOD_WINK = "GOD_WINK"


class ActivityCategory(Enum):
    INVITATION = "invitation"
    CHURCH = "church"
    CONTENT = "content"
    USER = "user"
    ADMIN = "admin"
