from typing import List
from sqlalchemy import or_, and_
from app.extensions import db
from app.models import FCMToken, Ping
from app.models.enums import PingStatus


class PingRepository:
    @staticmethod
    def add(ping: Ping) -> Ping:
        db.session.add(ping)
        db.session.flush()
        return ping

    @staticmethod
    def find_by_id(ping_id: int):
        return db.session.get(Ping, ping_id)

    @staticmethod
    def find_between(sender_id: int, receiver_id: int):
        return Ping.query.filter_by(sender_id=sender_id, receiver_id=receiver_id).first()

    @staticmethod
    def count_sent_since(sender_id: int, since) -> int:
        return Ping.query.filter(Ping.sender_id == sender_id, Ping.created_at >= since).count()

    @staticmethod
    def find_pending_received(user_id: int) -> List[Ping]:
        return (
            Ping.query.filter_by(receiver_id=user_id, status=PingStatus.PENDING)
            .order_by(Ping.created_at.desc(), Ping.id.desc())
            .all()
        )

    @staticmethod
    def find_pending_sent(user_id: int) -> List[Ping]:
        return (
            Ping.query.filter_by(sender_id=user_id, status=PingStatus.PENDING)
            .order_by(Ping.created_at.desc(), Ping.id.desc())
            .all()
        )

    @staticmethod
    def count_responses_since(sender_id: int, since) -> int:
        return Ping.query.filter(
            Ping.sender_id == sender_id,
            Ping.status.in_([PingStatus.ACCEPTED, PingStatus.REJECTED]),
            Ping.responded_at >= since,
        ).count()

    @staticmethod
    def accepted_between(user_a: int, user_b: int) -> bool:
        return (
            Ping.query.filter(
                Ping.status == PingStatus.ACCEPTED,
                or_(
                    and_(Ping.sender_id == user_a, Ping.receiver_id == user_b),
                    and_(Ping.sender_id == user_b, Ping.receiver_id == user_a),
                ),
            ).first()
            is not None
        )


class FCMTokenRepository:
    @staticmethod
    def find_by_token(token):
        return FCMToken.query.filter_by(token=token).first()

    @staticmethod
    def active_tokens_for(user_id: int) -> List[str]:
        rows = FCMToken.query.filter_by(user_id=user_id, is_active=True).all()
        return [row.token for row in rows]

    @staticmethod
    def add(token: FCMToken) -> FCMToken:
        db.session.add(token)
        db.session.flush()
        return token
