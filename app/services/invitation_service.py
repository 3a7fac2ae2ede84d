import logging
import re
import secrets
from app.constants import CHURCH_INVITATION_WINDOW
from app.exceptions import (
    ConflictError,
    GoneError,
    InvalidStateError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
)
from app.models import ChurchInvitation
from app.models.enums import ActivityCategory, InvitationStatus
from app.repositories import AnalyticsRepository, InvitationRepository
from app.services import lifecycle, permissions
from app.services.activity_log_service import ActivityLogService
from app.services.church_service import ChurchService
from app.services.user_service import UserService, issue_token
from app.utils.db import atomic, conditional_update
from app.utils.email import send_church_invitation_email
from app.utils.time import isoformat, utcnow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class InvitationService:
    """Invitations sent to prospective churches.

    PENDING -> CLAIMED (church signed up) | EXPIRED (7 days) | CANCELLED.
    Resending keeps the status and pushes the deadline out by another window.
    """

    @staticmethod
    def _get(invitation_id) -> ChurchInvitation:
        invitation = InvitationRepository.find_by_id(invitation_id)
        if not invitation:
            raise NotFoundError("Invitation not found")
        return invitation

    @staticmethod
    def _refresh_for_email(church_email, now):
        invitations = InvitationRepository.find_by_church_email(church_email)
        for invitation in invitations:
            lifecycle.church_invitations.expire_if_due(invitation, now)
        return invitations

    @staticmethod
    def create(user, data) -> ChurchInvitation:
        permissions.require("invitation.create", user)
        church_email = (data.get("church_email") or "").strip().lower()
        if not church_email:
            raise MissingFieldsError(["church_email"])
        if not EMAIL_PATTERN.match(church_email):
            raise ValidationError("church_email must be a valid email address")

        now = utcnow()
        with atomic():
            existing = InvitationService._refresh_for_email(church_email, now)
        for invitation in existing:
            if invitation.status == InvitationStatus.CLAIMED:
                raise ConflictError("This church has already joined InHouse")
            if invitation.status == InvitationStatus.PENDING:
                raise ConflictError("A pending invitation has already been sent to this email")

        with atomic():
            invitation = InvitationRepository.add(
                ChurchInvitation(
                    token=secrets.token_urlsafe(24),
                    inviter_id=user.id,
                    inviter_name=user.display_name,
                    inviter_email=user.email,
                    inviter_phone=user.phone,
                    church_name=data.get("church_name"),
                    church_email=church_email,
                    custom_message=data.get("custom_message"),
                    status=InvitationStatus.PENDING,
                    expires_at=now + CHURCH_INVITATION_WINDOW,
                    last_sent_at=now,
                    created_at=now,
                )
            )
            AnalyticsRepository.increment(user.id, "church_invites_sent")
            ActivityLogService.log(
                user,
                ActivityCategory.INVITATION,
                "invitation_sent",
                {"invitation_id": invitation.id, "church_email": church_email, "type": "church"},
            )

        if not send_church_invitation_email(invitation):
            logger.error(f"Invitation {invitation.id} saved but email to {church_email} failed")
        logger.info(f"Church invitation {invitation.id} sent by user {user.id} to {church_email}")
        return invitation

    @staticmethod
    def check_email(church_email) -> dict:
        church_email = (church_email or "").strip().lower()
        if not church_email:
            raise MissingFieldsError(["email"])
        with atomic():
            invitations = InvitationService._refresh_for_email(church_email, utcnow())
        latest = invitations[0] if invitations else None
        return {
            "exists": latest is not None,
            "status": latest.status.value if latest else None,
            "invitation": latest.to_dict() if latest else None,
        }

    @staticmethod
    def get(invitation_id) -> ChurchInvitation:
        """Read an invitation, expiring it first if its deadline has passed."""
        invitation = InvitationService._get(invitation_id)
        with atomic():
            lifecycle.church_invitations.expire_if_due(invitation)
        return invitation

    @staticmethod
    def list_sent(user):
        with atomic():
            invitations = InvitationRepository.find_by_inviter(user.id)
            now = utcnow()
            for invitation in invitations:
                lifecycle.church_invitations.expire_if_due(invitation, now)
        return invitations

    @staticmethod
    def cancel(user, invitation_id) -> ChurchInvitation:
        invitation = InvitationService._get(invitation_id)
        permissions.require("invitation.cancel", user, invitation, message="Only the inviter can cancel this invitation")
        with atomic():
            lifecycle.church_invitations.expire_if_due(invitation)
            changed = conditional_update(
                ChurchInvitation,
                [ChurchInvitation.id == invitation.id, ChurchInvitation.status == InvitationStatus.PENDING],
                {ChurchInvitation.status: InvitationStatus.CANCELLED},
            )
        if not changed:
            raise InvalidStateError(f"Cannot cancel a {invitation.status.value.lower()} invitation")
        logger.info(f"Invitation {invitation.id} cancelled by user {user.id}")
        return invitation

    @staticmethod
    def resend(actor, invitation_id) -> ChurchInvitation:
        invitation = InvitationService._get(invitation_id)
        permissions.require("invitation.resend", actor, invitation, message="Only the inviter can resend this invitation")

        now = utcnow()
        with atomic():
            lifecycle.church_invitations.expire_if_due(invitation, now)
        if invitation.status != InvitationStatus.PENDING:
            raise InvalidStateError(f"Cannot resend a {invitation.status.value.lower()} invitation")

        with atomic():
            changed = conditional_update(
                ChurchInvitation,
                [ChurchInvitation.id == invitation.id, ChurchInvitation.status == InvitationStatus.PENDING],
                {
                    ChurchInvitation.expires_at: now + CHURCH_INVITATION_WINDOW,
                    ChurchInvitation.last_sent_at: now,
                },
            )
            if not changed:
                raise InvalidStateError("Invitation is no longer pending")

        if not send_church_invitation_email(invitation, reminder=True):
            logger.error(f"Reminder email for invitation {invitation.id} failed")
        logger.info(f"Invitation {invitation.id} resent by user {actor.id}")
        return invitation

    @staticmethod
    def expire(admin, invitation_id) -> ChurchInvitation:
        """Admin override: close a pending invitation now."""
        permissions.require("invitation.expire", admin)
        invitation = InvitationService._get(invitation_id)
        with atomic():
            changed = conditional_update(
                ChurchInvitation,
                [ChurchInvitation.id == invitation.id, ChurchInvitation.status == InvitationStatus.PENDING],
                {ChurchInvitation.status: InvitationStatus.EXPIRED, ChurchInvitation.expires_at: utcnow()},
            )
        if not changed:
            raise InvalidStateError(f"Cannot expire a {invitation.status.value.lower()} invitation")
        return invitation

    @staticmethod
    def admin_overview(admin, status=None) -> dict:
        permissions.require("admin.analytics", admin)
        if status:
            try:
                status = InvitationStatus(status.upper())
            except ValueError:
                raise ValidationError(f"Unknown invitation status: {status}")
        return {
            "invitations": [i.to_dict() for i in InvitationRepository.find_all(status or None)],
            "counts": InvitationRepository.count_by_status(),
        }

    @staticmethod
    def expire_due(now=None) -> dict:
        return lifecycle.church_invitations.sweep(now)

    # Church signup through an invitation link

    @staticmethod
    def _usable_invitation(token) -> ChurchInvitation:
        invitation = InvitationRepository.find_by_token(token)
        if not invitation:
            raise NotFoundError("Invalid invitation token")
        with atomic():
            lifecycle.church_invitations.expire_if_due(invitation)
        if invitation.status == InvitationStatus.EXPIRED:
            raise GoneError("Invitation has expired")
        if invitation.status == InvitationStatus.CLAIMED:
            raise GoneError("Invitation has already been used")
        if invitation.status != InvitationStatus.PENDING:
            raise GoneError("Invitation is no longer valid")
        return invitation

    @staticmethod
    def validate_signup_token(token) -> dict:
        invitation = InvitationService._usable_invitation(token)
        return {
            "valid": True,
            "inviter_name": invitation.inviter_name,
            "inviter_email": invitation.inviter_email,
            "church_email": invitation.church_email,
            "church_name": invitation.church_name,
            "custom_message": invitation.custom_message,
            "expires_at": isoformat(invitation.expires_at),
        }

    @staticmethod
    def church_signup(token, data) -> dict:
        """Create the lead contact account and a PENDING church, and claim the invitation."""
        invitation = InvitationService._usable_invitation(token)
        church_data = {
            "name": data.get("church_name"),
            "lead_pastor_name": data.get("lead_pastor_name"),
            "website": data.get("church_website"),
            "address": data.get("address"),
            "city": data.get("city"),
            "state": data.get("state"),
            "zip_code": data.get("zip_code"),
            "latitude": data.get("latitude"),
            "longitude": data.get("longitude"),
        }

        with atomic():
            user = UserService.build_user(data)
            user.membership_enforcement_exempt = True
            church = ChurchService.build_application(user, church_data)
            changed = conditional_update(
                ChurchInvitation,
                [ChurchInvitation.id == invitation.id, ChurchInvitation.status == InvitationStatus.PENDING],
                {
                    ChurchInvitation.status: InvitationStatus.CLAIMED,
                    ChurchInvitation.claimed_at: utcnow(),
                    ChurchInvitation.claimed_by_user_id: user.id,
                },
            )
            if not changed:
                raise GoneError("Invitation is no longer valid")
            ActivityLogService.log(
                user,
                ActivityCategory.INVITATION,
                "invitation_claimed",
                {"invitation_id": invitation.id, "church_id": church.id, "inviter_id": invitation.inviter_id},
            )

        logger.info(f"Invitation {invitation.id} claimed: user {user.id} applied for church {church.id}")
        return {
            "message": "Account created and church application submitted successfully",
            "token": issue_token(user),
            "user_id": user.id,
            "church_id": church.id,
        }
