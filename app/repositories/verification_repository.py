from typing import List
from sqlalchemy import distinct
from app.extensions import db
from app.models import ChurchVerificationRequest, MemberVerification, User
from app.models.enums import VerificationAction, VerificationRequestStatus


class VerificationRepository:
    @staticmethod
    def add(entity):
        db.session.add(entity)
        db.session.flush()
        return entity

    @staticmethod
    def find_request(request_id: int):
        return db.session.get(ChurchVerificationRequest, request_id)

    @staticmethod
    def lock_request(request_id: int):
        """Reload the request under a row lock held until the transaction ends."""
        return (
            ChurchVerificationRequest.query.filter_by(id=request_id)
            .with_for_update()
            .populate_existing()
            .one()
        )

    @staticmethod
    def find_request_for(user_id: int, church_id: int):
        return ChurchVerificationRequest.query.filter_by(
            user_id=user_id, church_id=church_id
        ).first()

    @staticmethod
    def find_pending_for_user(user_id: int):
        return ChurchVerificationRequest.query.filter_by(
            user_id=user_id, status=VerificationRequestStatus.PENDING
        ).first()

    @staticmethod
    def find_open_queue(church_id: int, excluding_voter_id: int) -> List[ChurchVerificationRequest]:
        """PENDING requests for a church the voter has not acted on, oldest first."""
        already_voted = db.session.query(MemberVerification.request_id).filter(
            MemberVerification.verifier_id == excluding_voter_id
        )
        return (
            ChurchVerificationRequest.query.filter(
                ChurchVerificationRequest.church_id == church_id,
                ChurchVerificationRequest.status == VerificationRequestStatus.PENDING,
                ChurchVerificationRequest.user_id != excluding_voter_id,
                ChurchVerificationRequest.id.notin_(already_voted),
            )
            .order_by(ChurchVerificationRequest.created_at, ChurchVerificationRequest.id)
            .all()
        )

    @staticmethod
    def find_vote(request_id: int, verifier_id: int):
        return MemberVerification.query.filter_by(
            request_id=request_id, verifier_id=verifier_id
        ).first()

    @staticmethod
    def count_approvals(request_id: int) -> int:
        return (
            db.session.query(db.func.count(distinct(MemberVerification.verifier_id)))
            .filter(
                MemberVerification.request_id == request_id,
                MemberVerification.action == VerificationAction.APPROVED,
            )
            .scalar()
        )

    @staticmethod
    def approver_names(request_id: int) -> List[str]:
        verifiers = (
            db.session.query(User)
            .join(MemberVerification, MemberVerification.verifier_id == User.id)
            .filter(
                MemberVerification.request_id == request_id,
                MemberVerification.action == VerificationAction.APPROVED,
            )
            .order_by(MemberVerification.id)
            .all()
        )
        return [verifier.display_name for verifier in verifiers]
