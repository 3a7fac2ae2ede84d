import logging
from sqlalchemy.exc import IntegrityError
from app.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from app.extensions import db
from app.models import ChurchVerificationRequest, MemberVerification
from app.models.enums import (
    ActivityCategory,
    ChurchMembershipStatus,
    VerificationAction,
    VerificationRequestStatus,
)
from app.repositories import ChurchRepository, VerificationRepository
from app.services import permissions
from app.services.activity_log_service import ActivityLogService
from app.services.membership_service import MembershipService
from app.utils.db import atomic, conditional_update
from app.utils.email import send_account_reactivated_email
from app.utils.time import isoformat, utcnow

logger = logging.getLogger(__name__)


class VerificationService:
    """Peer verification of church join requests.

    A join request is approved once ``church.min_verifications_required``
    distinct eligible members have vouched for it, or immediately when the
    church's lead contact approves it. Any eligible member or the lead
    contact may reject it.
    """

    @staticmethod
    def _get_approved_church(church_id):
        church = ChurchRepository.find_by_id(church_id)
        if not church or not church.is_approved:
            raise NotFoundError("Church not found")
        return church

    @staticmethod
    def _get_request(request_id):
        verification_request = VerificationRepository.find_request(request_id)
        if not verification_request:
            raise NotFoundError("Verification request not found")
        return verification_request

    @staticmethod
    def _require_pending(verification_request):
        if verification_request.status != VerificationRequestStatus.PENDING:
            raise InvalidStateError("Request has already been processed")

    @staticmethod
    def progress(verification_request) -> dict:
        required = verification_request.church.min_verifications_required
        current = VerificationRepository.count_approvals(verification_request.id)
        return {
            "current_verifications": current,
            "required_verifications": required,
            "remaining": max(required - current, 0),
            "verifier_names": VerificationRepository.approver_names(verification_request.id),
        }

    @staticmethod
    def request_join(user, church_id: int, notes=None) -> ChurchVerificationRequest:
        if user.church_id is not None:
            raise InvalidStateError("You are already a member of a church")
        church = VerificationService._get_approved_church(church_id)

        if VerificationRepository.find_request_for(user.id, church.id):
            raise ConflictError("You already have a request for this church")
        pending_elsewhere = VerificationRepository.find_pending_for_user(user.id)
        if pending_elsewhere:
            raise ConflictError("You already have a pending request for another church")

        now = utcnow()
        reactivated = False
        with atomic():
            verification_request = ChurchVerificationRequest(
                user_id=user.id,
                church_id=church.id,
                requester_id=user.id,
                notes=notes,
                status=VerificationRequestStatus.PENDING,
                created_at=now,
            )
            try:
                VerificationRepository.add(verification_request)
            except IntegrityError:
                raise ConflictError("You already have a request for this church")

            user.church_membership_status = ChurchMembershipStatus.REQUESTED
            user.church_join_requested_at = now

            if not church.requires_verification:
                reactivated = VerificationService._promote(verification_request, None, now)

        logger.info(
            f"User {user.id} requested to join church {church.id} "
            f"(status={verification_request.status.value})"
        )
        if reactivated:
            send_account_reactivated_email(user, church)
        return verification_request

    @staticmethod
    def _promote(verification_request, decided_by, now) -> bool:
        """Close the request as APPROVED and make the requester a verified member.

        Returns True when the requester's account was reactivated. Runs
        inside the caller's transaction.
        """
        changed = conditional_update(
            ChurchVerificationRequest,
            [
                ChurchVerificationRequest.id == verification_request.id,
                ChurchVerificationRequest.status == VerificationRequestStatus.PENDING,
            ],
            {
                ChurchVerificationRequest.status: VerificationRequestStatus.APPROVED,
                ChurchVerificationRequest.verified_at: now,
                ChurchVerificationRequest.decided_by_id: decided_by.id if decided_by else None,
            },
        )
        if not changed:
            # Another vouch already closed the request in this race
            return False

        requester = verification_request.user
        requester.church_id = verification_request.church_id
        requester.church_membership_status = ChurchMembershipStatus.VERIFIED
        requester.verified_at = now
        reactivated = MembershipService.reactivate_if_disabled(requester)

        ActivityLogService.log(
            requester,
            ActivityCategory.CHURCH,
            "member_joined_church",
            {
                "church_id": verification_request.church_id,
                "request_id": verification_request.id,
                "approved_by": decided_by.id if decided_by else None,
            },
        )
        logger.info(
            f"User {requester.id} verified as member of church {verification_request.church_id}"
        )
        return reactivated

    @staticmethod
    def _record_vote(verification_request, verifier, action, notes):
        if VerificationRepository.find_vote(verification_request.id, verifier.id):
            raise ConflictError("You have already verified this member")
        try:
            VerificationRepository.add(
                MemberVerification(
                    request_id=verification_request.id,
                    verifier_id=verifier.id,
                    action=action,
                    notes=notes,
                )
            )
        except IntegrityError:
            raise ConflictError("You have already verified this member")

    @staticmethod
    def vouch(verifier, requester_id: int, church_id: int, notes=None) -> dict:
        church = ChurchRepository.find_by_id(church_id)
        if not church:
            raise NotFoundError("Church not found")
        verification_request = VerificationRepository.find_request_for(requester_id, church.id)
        if not verification_request:
            raise NotFoundError("Verification request not found")
        return VerificationService._vouch(verifier, verification_request, notes)

    @staticmethod
    def _vouch(verifier, verification_request, notes=None) -> dict:
        church = verification_request.church
        reason = permissions.verifier_ineligibility_reason(verifier, church)
        permissions.require("verification.vote", verifier, church, message=reason)
        if verification_request.user_id == verifier.id:
            raise ValidationError("You cannot verify your own request")
        VerificationService._require_pending(verification_request)

        now = utcnow()
        reactivated = False
        with atomic():
            # Concurrent vouches for one request count votes one at a time
            VerificationRepository.lock_request(verification_request.id)
            VerificationService._require_pending(verification_request)
            VerificationService._record_vote(
                verification_request, verifier, VerificationAction.APPROVED, notes
            )
            progress = VerificationService.progress(verification_request)
            if progress["current_verifications"] >= progress["required_verifications"]:
                reactivated = VerificationService._promote(verification_request, verifier, now)

        logger.info(
            f"User {verifier.id} vouched for request {verification_request.id}: "
            f"{progress['current_verifications']}/{progress['required_verifications']}"
        )
        if reactivated:
            send_account_reactivated_email(verification_request.user, church)
        return {
            "user_approved": verification_request.status == VerificationRequestStatus.APPROVED,
            "request": verification_request.to_dict(),
            "progress": progress,
        }

    @staticmethod
    def lead_approve(lead, request_id: int, notes=None) -> dict:
        verification_request = VerificationService._get_request(request_id)
        church = verification_request.church
        permissions.require(
            "verification.lead_approve",
            lead,
            church,
            message="Only the church lead contact can approve requests directly",
        )
        VerificationService._require_pending(verification_request)

        now = utcnow()
        with atomic():
            if not VerificationRepository.find_vote(verification_request.id, lead.id):
                VerificationService._record_vote(
                    verification_request, lead, VerificationAction.APPROVED, notes
                )
            reactivated = VerificationService._promote(verification_request, lead, now)

        if reactivated:
            send_account_reactivated_email(verification_request.user, church)
        return {
            "user_approved": True,
            "request": verification_request.to_dict(),
            "progress": VerificationService.progress(verification_request),
        }

    @staticmethod
    def reject(actor, request_id: int, notes=None) -> ChurchVerificationRequest:
        verification_request = VerificationService._get_request(request_id)
        church = verification_request.church
        permissions.require(
            "verification.reject",
            actor,
            church,
            message="You are not authorized to verify members for this church",
        )
        VerificationService._require_pending(verification_request)

        with atomic():
            VerificationService._record_vote(
                verification_request, actor, VerificationAction.REJECTED, notes
            )
            changed = conditional_update(
                ChurchVerificationRequest,
                [
                    ChurchVerificationRequest.id == verification_request.id,
                    ChurchVerificationRequest.status == VerificationRequestStatus.PENDING,
                ],
                {
                    ChurchVerificationRequest.status: VerificationRequestStatus.REJECTED,
                    ChurchVerificationRequest.rejected_at: utcnow(),
                    ChurchVerificationRequest.decided_by_id: actor.id,
                    ChurchVerificationRequest.notes: notes,
                },
            )
            if not changed:
                raise InvalidStateError("Request has already been processed")
            requester = verification_request.user
            if requester.church_membership_status == ChurchMembershipStatus.REQUESTED:
                requester.church_membership_status = ChurchMembershipStatus.REJECTED

        logger.info(f"Request {verification_request.id} rejected by user {actor.id}")
        return verification_request

    @staticmethod
    def verify_member(actor, request_id: int, action: str, notes=None) -> dict:
        """Single entry point for the verify-member form: approve or reject."""
        action = (action or "").lower()
        if action not in ("approve", "reject"):
            raise ValidationError("action must be 'approve' or 'reject'")

        verification_request = VerificationService._get_request(request_id)
        if action == "reject":
            VerificationService.reject(actor, request_id, notes)
            return {"user_approved": False, "request": verification_request.to_dict()}
        if permissions.leads(actor, verification_request.church):
            return VerificationService.lead_approve(actor, request_id, notes)
        return VerificationService._vouch(actor, verification_request, notes)

    @staticmethod
    def get_queue(actor, church_id: int = None) -> list:
        """Open requests this actor can still act on, oldest first."""
        church = ChurchRepository.find_by_id(church_id or actor.church_id or 0)
        if not church:
            raise NotFoundError("Church not found")
        reason = permissions.verifier_ineligibility_reason(actor, church)
        permissions.require("verification.view_queue", actor, church, message=reason)

        queue = []
        for verification_request in VerificationRepository.find_open_queue(church.id, actor.id):
            entry = verification_request.to_dict()
            entry["user"] = verification_request.user.to_dict(include_contact=False)
            entry["progress"] = VerificationService.progress(verification_request)
            queue.append(entry)
        return queue

    @staticmethod
    def get_progress(actor, requester_id: int, church_id: int) -> dict:
        verification_request = VerificationRepository.find_request_for(requester_id, church_id)
        if not verification_request:
            raise NotFoundError("Verification request not found")
        permissions.require("verification.view_progress", actor, verification_request)
        return {
            "status": verification_request.status.value,
            **VerificationService.progress(verification_request),
        }

    @staticmethod
    def get_my_status(user) -> dict:
        data = {
            "church_membership_status": user.church_membership_status.value,
            "church": user.church.to_dict() if user.church else None,
            "verified_at": isoformat(user.verified_at),
            "pending_request": None,
        }
        pending = VerificationRepository.find_pending_for_user(user.id)
        if pending:
            data["pending_request"] = {
                **pending.to_dict(),
                "church_name": pending.church.name,
                "progress": VerificationService.progress(pending),
            }
        return data

    @staticmethod
    def leave_church(user):
        permissions.require("verification.leave", user, message="You are not a verified member of a church")
        church = user.church
        if permissions.leads(user, church):
            raise InvalidStateError("The lead contact cannot leave their own church")

        with atomic():
            verification_request = VerificationRepository.find_request_for(user.id, church.id)
            if verification_request:
                MemberVerification.query.filter_by(request_id=verification_request.id).delete(
                    synchronize_session=False
                )
                db.session.delete(verification_request)
            user.church_id = None
            user.church_membership_status = ChurchMembershipStatus.NONE
            user.verified_at = None
            user.church_join_requested_at = None
            ActivityLogService.log(user, ActivityCategory.CHURCH, "member_left_church", {"church_id": church.id})
        logger.info(f"User {user.id} left church {church.id}")
        return user
