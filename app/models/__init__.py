from app.models.user import User
from app.models.church import Church
from app.models.church_verification_request import ChurchVerificationRequest
from app.models.member_verification import MemberVerification
from app.models.item import Item
from app.models.member_item_request import MemberItemRequest
from app.models.church_invitation import ChurchInvitation
from app.models.invite_code import InviteCode
from app.models.invitation_analytics import InvitationAnalytics
from app.models.ping import Ping
from app.models.fcm_token import FCMToken
from app.models.message import Message
from app.models.activity_log import ActivityLog
from app.models.enums import (
    UserRole,
    ChurchMembershipStatus,
    ApplicationStatus,
    VerificationRequestStatus,
    VerificationAction,
    ItemStatus,
    ModerationStatus,
    MemberRequestStatus,
    InvitationStatus,
    PingStatus,
    MessageStatus,
    MessageType,
    UserMessageCategory,
    ActivityCategory,
)
