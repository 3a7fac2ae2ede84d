from typing import List
from app.extensions import db
from app.models import ChurchInvitation, InviteCode, InvitationAnalytics, User
from app.models.enums import InvitationStatus
from app.utils.db import conditional_update


class InvitationRepository:
    @staticmethod
    def add(entity):
        db.session.add(entity)
        db.session.flush()
        return entity

    @staticmethod
    def find_by_id(invitation_id: int):
        return db.session.get(ChurchInvitation, invitation_id)

    @staticmethod
    def find_by_token(token):
        return ChurchInvitation.query.filter_by(token=token).first()

    @staticmethod
    def find_by_church_email(email) -> List[ChurchInvitation]:
        return (
            ChurchInvitation.query.filter(db.func.lower(ChurchInvitation.church_email) == email.lower())
            .order_by(ChurchInvitation.created_at.desc(), ChurchInvitation.id.desc())
            .all()
        )

    @staticmethod
    def find_by_inviter(user_id: int) -> List[ChurchInvitation]:
        return (
            ChurchInvitation.query.filter_by(inviter_id=user_id)
            .order_by(ChurchInvitation.created_at.desc(), ChurchInvitation.id.desc())
            .all()
        )

    @staticmethod
    def find_all(status: InvitationStatus = None) -> List[ChurchInvitation]:
        query = ChurchInvitation.query
        if status is not None:
            query = query.filter_by(status=status)
        return query.order_by(ChurchInvitation.created_at.desc(), ChurchInvitation.id.desc()).all()

    @staticmethod
    def count_by_status():
        rows = (
            db.session.query(ChurchInvitation.status, db.func.count(ChurchInvitation.id))
            .group_by(ChurchInvitation.status)
            .all()
        )
        counts = {status.value: 0 for status in InvitationStatus}
        for status, count in rows:
            counts[status.value] = count
        return counts


class InviteCodeRepository:
    @staticmethod
    def add(invite_code: InviteCode) -> InviteCode:
        db.session.add(invite_code)
        db.session.flush()
        return invite_code

    @staticmethod
    def find_by_code(code):
        return InviteCode.query.filter_by(code=code.strip().upper()).first()

    @staticmethod
    def find_by_user(user_id: int):
        return InviteCode.query.filter_by(user_id=user_id).first()

    @staticmethod
    def code_exists(code) -> bool:
        return db.session.query(InviteCode.id).filter_by(code=code).first() is not None

    @staticmethod
    def record_scan(invite_code: InviteCode, scanned_at) -> int:
        return conditional_update(
            InviteCode,
            [InviteCode.id == invite_code.id],
            {InviteCode.scans: InviteCode.scans + 1, InviteCode.last_scanned_at: scanned_at},
        )

    @staticmethod
    def find_invitees(user_id: int) -> List[User]:
        return User.query.filter_by(inviter_id=user_id).order_by(User.created_at.desc(), User.id.desc()).all()


class AnalyticsRepository:
    COUNTERS = (
        "church_invites_sent",
        "user_invites_sent",
        "user_invites_scanned",
        "user_invites_completed",
    )

    @staticmethod
    def find_by_user(user_id: int):
        return InvitationAnalytics.query.filter_by(user_id=user_id).first()

    @staticmethod
    def get_or_create(user_id: int) -> InvitationAnalytics:
        analytics = AnalyticsRepository.find_by_user(user_id)
        if analytics is None:
            analytics = InvitationAnalytics(
                user_id=user_id,
                church_invites_sent=0,
                user_invites_sent=0,
                user_invites_scanned=0,
                user_invites_completed=0,
            )
            db.session.add(analytics)
            db.session.flush()
        return analytics

    @staticmethod
    def increment(user_id: int, counter: str, amount: int = 1) -> int:
        """UPDATE ... SET <counter> = <counter> + amount, creating the row first if needed."""
        if counter not in AnalyticsRepository.COUNTERS:
            raise ValueError(f"Unknown analytics counter: {counter}")
        AnalyticsRepository.get_or_create(user_id)
        column = getattr(InvitationAnalytics, counter)
        return conditional_update(
            InvitationAnalytics,
            [InvitationAnalytics.user_id == user_id],
            {column: column + amount},
        )

    @staticmethod
    def leaderboard(limit: int = 20) -> List[InvitationAnalytics]:
        score = InvitationAnalytics.user_invites_completed + InvitationAnalytics.church_invites_sent
        return (
            InvitationAnalytics.query.order_by(score.desc(), InvitationAnalytics.user_id)
            .limit(limit)
            .all()
        )
