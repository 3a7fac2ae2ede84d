from app.models import User
from app.models.enums import ChurchMembershipStatus, UserRole
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token
from flask import current_app
from app.constants import PASSWORD_RESET_TOKEN_LIFETIME
from app.exceptions import (
    ConflictError,
    MissingFieldsError,
    UnauthenticatedError,
    ValidationError,
)
from app.repositories import UserRepository
from app.services.activity_log_service import ActivityLogService
from app.services.invite_code_service import InviteCodeService, is_code_expired
from app.repositories import InviteCodeRepository
from app.models.enums import ActivityCategory
from app.utils.db import atomic
from app.utils.email import send_password_reset_email
from app.utils.time import as_utc, utcnow
from datetime import timedelta
import logging
import secrets

# Configure logging
logger = logging.getLogger(__name__)

SIGNUP_FIELDS = ["email", "password", "first_name", "last_name"]
MIN_PASSWORD_LENGTH = 8


def issue_token(user):
    return create_access_token(identity=str(user.id), expires_delta=timedelta(days=1))


class UserService:
    @staticmethod
    def build_user(user_data, role=UserRole.USER) -> User:
        """Validate signup fields and stage a new user. Caller commits."""
        missing = [field for field in SIGNUP_FIELDS if not user_data.get(field)]
        if missing:
            raise MissingFieldsError(missing)
        if len(user_data["password"]) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        email = user_data["email"].strip().lower()
        if UserRepository.find_by_email(email):
            logger.warning(f"Signup attempt with existing email: {email}")
            raise ConflictError("An account with this email already exists")

        user = User(
            role=role,
            email=email,
            password=generate_password_hash(user_data["password"]),
            first_name=user_data["first_name"],
            last_name=user_data["last_name"],
            phone=user_data.get("phone"),
            city=user_data.get("city"),
            state=user_data.get("state"),
            church_membership_status=ChurchMembershipStatus.NONE,
            is_active=True,
            membership_enforcement_exempt=False,
            created_at=utcnow(),
        )
        return UserRepository.add(user)

    @staticmethod
    def sign_up(user_data):
        invite_code = (user_data.get("invite_code") or "").strip().upper() or None
        if invite_code:
            code = InviteCodeRepository.find_by_code(invite_code)
            if not code or is_code_expired(code):
                raise ValidationError("Invalid or expired invite code")

        with atomic():
            user = UserService.build_user(user_data)
            if invite_code:
                InviteCodeService.attribute_registration(user, invite_code)
            ActivityLogService.log(
                user,
                ActivityCategory.USER,
                "user_registered",
                {"invite_code": invite_code, "inviter_id": user.inviter_id},
            )

        logger.info(f"User created successfully: {user.email}")
        return {"token": issue_token(user), "user": user.to_dict()}

    @staticmethod
    def sign_in(email, password):
        user = UserRepository.find_by_email(email or "")
        if not user or not check_password_hash(user.password, password or ""):
            logger.warning(f"Failed login attempt for: {email}")
            raise UnauthenticatedError("Invalid email or password")

        if not user.is_active:
            logger.info(f"Disabled user signed in: {email} ({user.disabled_reason})")
        logger.info(f"User logged in successfully: {email}")
        return {"token": issue_token(user), "user": user.to_dict(), "is_active": user.is_active}

    @staticmethod
    def forgot_password(email):
        response = {"message": "If an account with that email exists, a password reset link has been sent."}
        user = UserRepository.find_by_email(email or "")
        if not user:
            logger.warning(f"Password reset attempted for non-existent email: {email}")
            return response

        with atomic():
            user.reset_token = secrets.token_urlsafe(32)
            user.reset_token_expiration = utcnow() + PASSWORD_RESET_TOKEN_LIFETIME

        send_password_reset_email(user, user.reset_token)
        logger.info(f"Password reset email sent to {email}")
        if current_app.testing:
            response["reset_token"] = user.reset_token
        return response

    @staticmethod
    def reset_password(token, new_password):
        user = UserRepository.find_by_reset_token(token)
        expiration = as_utc(user.reset_token_expiration) if user else None
        if not user or expiration is None or expiration < utcnow():
            logger.warning("Invalid or expired password reset token received.")
            raise ValidationError("Invalid or expired token")
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        with atomic():
            user.password = generate_password_hash(new_password)
            user.reset_token = None
            user.reset_token_expiration = None

        logger.info(f"Password reset successfully for user: {user.email}")
        return {"message": "Your password has been reset successfully."}

    @staticmethod
    def update_profile(user, data):
        with atomic():
            for field in ("first_name", "last_name", "phone", "city", "state", "bio"):
                if field in data:
                    setattr(user, field, data[field])
        return user
