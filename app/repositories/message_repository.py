from typing import List
from app.extensions import db
from app.models import Message
from app.models.enums import MessageStatus, MessageType, ModerationStatus

PENDING_MESSAGE_STATUSES = [MessageStatus.DRAFT, MessageStatus.SCHEDULED]


class MessageRepository:
    @staticmethod
    def add(message: Message) -> Message:
        db.session.add(message)
        db.session.flush()
        return message

    @staticmethod
    def find_by_id(message_id: int):
        return db.session.get(Message, message_id)

    @staticmethod
    def delete(message: Message):
        db.session.delete(message)
        db.session.flush()

    @staticmethod
    def count_pending(church_id: int) -> int:
        return Message.query.filter(
            Message.church_id == church_id,
            Message.message_type != MessageType.USER_SHARE,
            Message.status.in_(PENDING_MESSAGE_STATUSES),
        ).count()

    @staticmethod
    def find_for_church(church_id: int, include_shares=False) -> List[Message]:
        query = Message.query.filter(Message.church_id == church_id)
        if not include_shares:
            query = query.filter(Message.message_type != MessageType.USER_SHARE)
        return query.order_by(Message.created_at.desc(), Message.id.desc()).all()

    @staticmethod
    def find_feed(church_id: int, now) -> List[Message]:
        """Published, unexpired, not rejected messages of a church, newest first."""
        return (
            Message.query.filter(
                Message.church_id == church_id,
                Message.status == MessageStatus.PUBLISHED,
                Message.expires_at > now,
                Message.moderation_status.notin_([ModerationStatus.REJECTED, ModerationStatus.FLAGGED]),
            )
            .order_by(Message.published_at.desc(), Message.id.desc())
            .all()
        )

    @staticmethod
    def find_shares(moderation_status: ModerationStatus = None) -> List[Message]:
        query = Message.query.filter(Message.message_type == MessageType.USER_SHARE)
        if moderation_status is not None:
            query = query.filter(Message.moderation_status == moderation_status)
        return query.order_by(Message.created_at.desc(), Message.id.desc()).all()

    @staticmethod
    def find_ids(criteria) -> List[int]:
        return [row.id for row in db.session.query(Message.id).filter(*criteria).order_by(Message.id).all()]
