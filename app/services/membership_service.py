import logging
from sqlalchemy import and_, or_
from app.constants import (
    DISABLED_REASON_MEMBERSHIP,
    MEMBERSHIP_DISABLE_AFTER,
    MEMBERSHIP_WARNING_AFTER,
)
from app.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.extensions import db
from app.models import User
from app.models.enums import ActivityCategory, ChurchMembershipStatus, UserRole
from app.repositories import UserRepository
from app.services import permissions
from app.services.activity_log_service import ActivityLogService
from app.utils.db import atomic, conditional_update
from app.utils.email import send_account_disabled_email, send_membership_warning_email
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def _overdue(cutoff):
    """Users without a verified church whose grace period started before ``cutoff``."""
    return and_(
        User.role == UserRole.USER,
        User.membership_enforcement_exempt.is_(False),
        User.is_active.is_(True),
        or_(
            and_(
                User.church_membership_status == ChurchMembershipStatus.NONE,
                User.created_at <= cutoff,
            ),
            and_(
                User.church_membership_status == ChurchMembershipStatus.REQUESTED,
                User.church_join_requested_at <= cutoff,
            ),
            and_(
                User.church_membership_status == ChurchMembershipStatus.REJECTED,
                User.updated_at <= cutoff,
            ),
        ),
    )


class MembershipService:
    @staticmethod
    def reactivate_if_disabled(user) -> bool:
        """Undo a membership-enforcement suspension. Caller commits."""
        if user.is_active or user.disabled_reason != DISABLED_REASON_MEMBERSHIP:
            return False
        user.is_active = True
        user.disabled_reason = None
        user.warning_email_sent_at = None
        logger.info(f"User {user.id} reactivated after joining a church")
        return True

    @staticmethod
    def enforce(now=None) -> dict:
        """Warn users at day 5 without a verified church and disable them at day 7.

        Each user is handled in its own transaction; failures are collected
        and reported rather than raised.
        """
        now = now or utcnow()
        days_remaining = (MEMBERSHIP_DISABLE_AFTER - MEMBERSHIP_WARNING_AFTER).days
        warned, disabled, errors = [], [], []
        skipped = 0

        to_warn = (
            User.query.filter(
                _overdue(now - MEMBERSHIP_WARNING_AFTER),
                User.warning_email_sent_at.is_(None),
                # Users past the disable cutoff go straight to the disable step
                ~_overdue(now - MEMBERSHIP_DISABLE_AFTER),
            )
            .order_by(User.id)
            .all()
        )
        for user in to_warn:
            try:
                if not send_membership_warning_email(user, days_remaining):
                    errors.append(f"Warning email failed for {user.email}")
                    continue
                user.warning_email_sent_at = now
                db.session.commit()
                warned.append(user.id)
            except Exception as e:
                db.session.rollback()
                logger.error(f"Membership warning failed for user {user.id}: {e}", exc_info=True)
                errors.append(f"Warning error for {user.email}: {e}")

        to_disable = [
            row.id
            for row in db.session.query(User.id)
            .filter(_overdue(now - MEMBERSHIP_DISABLE_AFTER))
            .order_by(User.id)
            .all()
        ]
        for user_id in to_disable:
            try:
                changed = conditional_update(
                    User,
                    [User.id == user_id, User.is_active.is_(True)],
                    {User.is_active: False, User.disabled_reason: DISABLED_REASON_MEMBERSHIP},
                )
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                logger.error(f"Disabling user {user_id} failed: {e}", exc_info=True)
                errors.append(f"Disable error for user {user_id}: {e}")
                continue
            if not changed:
                skipped += 1
                continue
            disabled.append(user_id)
            user = UserRepository.find_by_id(user_id)
            if not send_account_disabled_email(user):
                errors.append(f"Disabled email failed for {user.email}")

        logger.info(
            f"Church membership enforcement: {len(warned)} warned, {len(disabled)} disabled, "
            f"{len(errors)} errors; warned={warned} disabled={disabled}"
        )
        return {
            "success": True,
            "count": len(warned) + len(disabled),
            "affected": warned + disabled,
            "skipped": skipped,
            "failed": len(errors),
            "warnings_processed": len(warned),
            "accounts_disabled": len(disabled),
            "warned": warned,
            "disabled": disabled,
            "errors": errors,
        }

    # Admin user management

    @staticmethod
    def list_users(admin, role=None, status=None, search=None):
        permissions.require("admin.users", admin)
        query = User.query
        if role:
            try:
                query = query.filter(User.role == UserRole(role.upper()))
            except ValueError:
                raise ValidationError(f"Unknown role: {role}")
        if status == "active":
            query = query.filter(User.is_active.is_(True))
        elif status == "disabled":
            query = query.filter(User.is_active.is_(False))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(User.email.ilike(pattern), User.first_name.ilike(pattern), User.last_name.ilike(pattern))
            )
        return query.order_by(User.id).all()

    @staticmethod
    def apply_user_action(admin, user_id: int, action: str, data=None) -> User:
        permissions.require("admin.users", admin)
        data = data or {}
        user = UserRepository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        with atomic():
            if action == "activate" or action == "reactivate":
                if user.is_active:
                    raise InvalidStateError("User is already active")
                user.is_active = True
                user.disabled_reason = None
                user.warning_email_sent_at = None
            elif action == "deactivate":
                if user.id == admin.id:
                    raise InvalidStateError("You cannot deactivate your own account")
                if not user.is_active:
                    raise InvalidStateError("User is already disabled")
                user.is_active = False
                user.disabled_reason = data.get("reason") or "ADMIN_ACTION"
            elif action == "change_role":
                try:
                    role = UserRole((data.get("role") or "").upper())
                except ValueError:
                    raise ValidationError("role must be one of USER, ADMIN, CHURCH")
                user.role = role
            elif action == "exempt":
                user.membership_enforcement_exempt = True
            elif action == "remove_exemption":
                user.membership_enforcement_exempt = False
            else:
                raise ValidationError(f"Unknown action: {action}")

            ActivityLogService.log(
                admin,
                ActivityCategory.ADMIN,
                f"user_{action}",
                {"target_user_id": user.id, **{k: v for k, v in data.items() if k in ("role", "reason")}},
            )
        logger.info(f"Admin {admin.id} applied '{action}' to user {user.id}")
        return user
