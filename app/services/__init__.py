from app.services.activity_log_service import ActivityLogService
from app.services.membership_service import MembershipService
from app.services.church_service import ChurchService
from app.services.verification_service import VerificationService
from app.services.item_service import ItemService
from app.services.member_request_service import MemberRequestService
from app.services.message_service import MessageService
from app.services.invite_code_service import InviteCodeService, AnalyticsService
from app.services.user_service import UserService
from app.services.invitation_service import InvitationService
from app.services.ping_service import PingService
