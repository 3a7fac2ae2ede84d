import logging
from app.constants import MAX_MIN_VERIFICATIONS
from app.exceptions import (
    ConflictError,
    InvalidStateError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
)
from app.models import Church
from app.models.enums import ActivityCategory, ApplicationStatus, ChurchMembershipStatus, UserRole
from app.repositories import ChurchRepository
from app.services import permissions
from app.services.activity_log_service import ActivityLogService
from app.utils.db import atomic, conditional_update
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

APPLICATION_FIELDS = (
    "name",
    "lead_pastor_name",
    "website",
    "address",
    "city",
    "state",
    "zip_code",
    "latitude",
    "longitude",
)


def _coordinate(data, key, limit):
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not -limit <= value <= limit:
        raise ValidationError(f"{key} must be between -{limit} and {limit}")
    return value


class ChurchService:
    @staticmethod
    def get_church(church_id: int) -> Church:
        church = ChurchRepository.find_by_id(church_id)
        if not church:
            raise NotFoundError("Church not found")
        return church

    @staticmethod
    def build_application(user, data) -> Church:
        """Validate application fields and stage a PENDING church led by ``user``.

        Flushes but does not commit; callers wrap it in their transaction.
        """
        missing = [field for field in ("name", "address", "city", "state") if not data.get(field)]
        if missing:
            raise MissingFieldsError(missing)
        if ChurchRepository.find_by_lead_contact(user.id):
            raise ConflictError("You are already the lead contact of a church")
        if ChurchRepository.find_by_name(data["name"]):
            raise ConflictError("A church with this name already exists")

        attrs = {field: data.get(field) for field in APPLICATION_FIELDS}
        attrs["name"] = data["name"].strip()
        attrs["latitude"] = _coordinate(data, "latitude", 90)
        attrs["longitude"] = _coordinate(data, "longitude", 180)
        church = Church(
            **attrs,
            lead_contact_id=user.id,
            application_status=ApplicationStatus.PENDING,
            requires_verification=True,
        )
        return ChurchRepository.add(church)

    @staticmethod
    def apply(user, data) -> Church:
        permissions.require("church.apply", user, message="Users who belong to a church cannot apply for a new one")
        with atomic():
            church = ChurchService.build_application(user, data)
            ActivityLogService.log(
                user,
                ActivityCategory.CHURCH,
                "church_application_submitted",
                {"church_id": church.id, "church_name": church.name},
            )
        logger.info(f"Church application submitted: {church.name} (id={church.id}) by user {user.id}")
        return church

    @staticmethod
    def approve(admin, church_id: int, notes=None) -> Church:
        permissions.require("church.review", admin)
        church = ChurchService.get_church(church_id)
        with atomic():
            now = utcnow()
            changed = conditional_update(
                Church,
                [Church.id == church.id, Church.application_status == ApplicationStatus.PENDING],
                {
                    Church.application_status: ApplicationStatus.APPROVED,
                    Church.approved_at: now,
                    Church.application_notes: notes,
                },
            )
            if not changed:
                raise InvalidStateError(
                    f"Only pending applications can be approved (current: {church.application_status.value})"
                )
            lead = church.lead_contact
            lead.role = UserRole.CHURCH
            lead.church_id = church.id
            lead.church_membership_status = ChurchMembershipStatus.VERIFIED
            lead.verified_at = now
            lead.membership_enforcement_exempt = True
            ActivityLogService.log(
                admin,
                ActivityCategory.CHURCH,
                "church_application_approved",
                {"church_id": church.id, "church_name": church.name, "lead_contact_id": lead.id},
            )
        logger.info(f"Church {church.id} approved by admin {admin.id}")
        return church

    @staticmethod
    def reject(admin, church_id: int, notes=None) -> Church:
        permissions.require("church.review", admin)
        church = ChurchService.get_church(church_id)
        with atomic():
            changed = conditional_update(
                Church,
                [Church.id == church.id, Church.application_status == ApplicationStatus.PENDING],
                {
                    Church.application_status: ApplicationStatus.REJECTED,
                    Church.rejected_at: utcnow(),
                    Church.application_notes: notes,
                },
            )
            if not changed:
                raise InvalidStateError(
                    f"Only pending applications can be rejected (current: {church.application_status.value})"
                )
            ActivityLogService.log(
                admin,
                ActivityCategory.CHURCH,
                "church_application_rejected",
                {"church_id": church.id, "church_name": church.name, "notes": notes},
            )
        logger.info(f"Church {church.id} rejected by admin {admin.id}")
        return church

    @staticmethod
    def update_settings(admin, church_id: int, data) -> Church:
        permissions.require("church.update_settings", admin)
        church = ChurchService.get_church(church_id)

        changes = {}
        if "min_verifications_required" in data:
            try:
                required = int(data["min_verifications_required"])
            except (TypeError, ValueError):
                raise ValidationError("min_verifications_required must be an integer")
            if not 1 <= required <= MAX_MIN_VERIFICATIONS:
                raise ValidationError(
                    f"min_verifications_required must be between 1 and {MAX_MIN_VERIFICATIONS}"
                )
            changes["min_verifications_required"] = required
        if "requires_verification" in data:
            changes["requires_verification"] = bool(data["requires_verification"])
        if "latitude" in data:
            changes["latitude"] = _coordinate(data, "latitude", 90)
        if "longitude" in data:
            changes["longitude"] = _coordinate(data, "longitude", 180)

        with atomic():
            for key, value in changes.items():
                setattr(church, key, value)
        logger.info(f"Church {church.id} settings updated by admin {admin.id}: {sorted(changes)}")
        return church

    @staticmethod
    def list_approved(search=None):
        return ChurchRepository.search_approved(search)

    @staticmethod
    def list_applications(status=None):
        try:
            status = ApplicationStatus(status.upper()) if status else ApplicationStatus.PENDING
        except ValueError:
            raise ValidationError(f"Unknown application status: {status}")
        return ChurchRepository.find_by_status(status)
