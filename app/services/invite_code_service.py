import logging
import secrets
from app.constants import INVITE_CODE_ALPHABET, INVITE_CODE_LENGTH
from app.exceptions import GoneError, NotFoundError
from app.models import InviteCode
from app.repositories import AnalyticsRepository, InviteCodeRepository
from app.services import permissions
from app.utils.db import atomic, conditional_update
from app.utils.time import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)


def generate_code() -> str:
    while True:
        code = "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))
        if not InviteCodeRepository.code_exists(code):
            return code


def is_code_expired(invite_code, now=None) -> bool:
    expires_at = as_utc(invite_code.expires_at)
    return expires_at is not None and (now or utcnow()) >= expires_at


class InviteCodeService:
    @staticmethod
    def get_or_create(user) -> InviteCode:
        permissions.require("invite_code.own", user, message="Only verified church members can invite others")
        invite_code = InviteCodeRepository.find_by_user(user.id)
        if invite_code:
            return invite_code

        with atomic():
            invite_code = InviteCodeRepository.add(
                InviteCode(code=generate_code(), user_id=user.id, scans=0)
            )
            AnalyticsRepository.increment(user.id, "user_invites_sent")
        logger.info(f"Invite code {invite_code.code} issued to user {user.id}")
        return invite_code

    @staticmethod
    def lookup(code) -> InviteCode:
        """Resolve a code for the public landing page; 404 if unknown, 410 if expired."""
        invite_code = InviteCodeRepository.find_by_code(code or "")
        if not invite_code:
            raise NotFoundError("Invalid invite code")
        if is_code_expired(invite_code):
            raise GoneError("This invite code has expired")
        return invite_code

    @staticmethod
    def record_scan(code) -> InviteCode:
        invite_code = InviteCodeService.lookup(code)
        with atomic():
            InviteCodeRepository.record_scan(invite_code, utcnow())
            AnalyticsRepository.increment(invite_code.user_id, "user_invites_scanned")
        return invite_code

    @staticmethod
    def attribute_registration(new_user, code):
        """Link a freshly registered user to the code owner. Caller commits."""
        invite_code = InviteCodeRepository.find_by_code(code)
        if not invite_code or is_code_expired(invite_code):
            return None
        new_user.inviter_id = invite_code.user_id
        AnalyticsRepository.increment(invite_code.user_id, "user_invites_completed")
        logger.info(f"User {new_user.id} registered with invite code of user {invite_code.user_id}")
        return invite_code

    @staticmethod
    def expire(admin, code) -> InviteCode:
        permissions.require("invite_code.expire", admin)
        invite_code = InviteCodeRepository.find_by_code(code or "")
        if not invite_code:
            raise NotFoundError("Invalid invite code")
        with atomic():
            conditional_update(InviteCode, [InviteCode.id == invite_code.id], {InviteCode.expires_at: utcnow()})
        logger.info(f"Invite code {invite_code.code} expired by admin {admin.id}")
        return invite_code


class AnalyticsService:
    @staticmethod
    def for_user(user) -> dict:
        analytics = AnalyticsRepository.find_by_user(user.id)
        invite_code = InviteCodeRepository.find_by_user(user.id)
        invitees = InviteCodeRepository.find_invitees(user.id)
        return {
            "analytics": analytics.to_dict()
            if analytics
            else {counter: 0 for counter in AnalyticsRepository.COUNTERS},
            "invite_code": invite_code.to_dict() if invite_code else None,
            "invitees": [
                {
                    "id": invitee.id,
                    "name": invitee.display_name,
                    "joined_at": isoformat(invitee.created_at),
                }
                for invitee in invitees
            ],
        }

    @staticmethod
    def leaderboard(admin, limit=20) -> list:
        permissions.require("admin.analytics", admin)
        board = []
        for rank, row in enumerate(AnalyticsRepository.leaderboard(limit), start=1):
            scanned = row.user_invites_scanned
            board.append(
                {
                    "rank": rank,
                    "user_id": row.user_id,
                    "name": row.user.display_name if row.user else None,
                    **row.to_dict(),
                    "conversion_rate": round(row.user_invites_completed / scanned * 100, 1) if scanned else 0,
                }
            )
        return board
