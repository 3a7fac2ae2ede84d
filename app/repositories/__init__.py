from app.repositories.user_repository import UserRepository
from app.repositories.church_repository import ChurchRepository
from app.repositories.verification_repository import VerificationRepository
from app.repositories.item_repository import ItemRepository, MemberRequestRepository
from app.repositories.invitation_repository import (
    InvitationRepository,
    InviteCodeRepository,
    AnalyticsRepository,
)
from app.repositories.ping_repository import PingRepository, FCMTokenRepository
from app.repositories.message_repository import MessageRepository
from app.repositories.activity_log_repository import ActivityLogRepository
