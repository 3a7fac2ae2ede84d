from app.extensions import db
from app.constants import ANONYMOUS_AUTHOR_NAME
from .enums import MessageStatus, MessageType, ModerationStatus, UserMessageCategory
from app.utils.time import as_utc, isoformat, utcnow


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    church_id = db.Column(db.Integer, db.ForeignKey('churches.id'), nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    title = db.Column(db.String(100), nullable=True)
    content = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.Enum(MessageType), nullable=False, default=MessageType.DAILY_MESSAGE)
    status = db.Column(db.Enum(MessageStatus), nullable=False, default=MessageStatus.DRAFT)

    scheduled_for = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    published_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    expires_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    # Member shares
    category = db.Column(db.Enum(UserMessageCategory), nullable=True)
    is_anonymous = db.Column(db.Boolean, nullable=False, default=False)
    moderation_status = db.Column(
        db.Enum(ModerationStatus), nullable=False, default=ModerationStatus.AUTO_APPROVED
    )
    moderated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    moderated_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    moderation_notes = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    church = db.relationship('Church', backref=db.backref('messages', lazy='dynamic'))
    created_by = db.relationship('User', foreign_keys=[created_by_id])

    def is_active(self, now=None):
        """Published and not past its expiry, whatever the stored status says."""
        if self.status != MessageStatus.PUBLISHED or self.expires_at is None:
            return False
        return (now or utcnow()) < as_utc(self.expires_at)

    def author_name(self, viewer=None):
        if self.is_anonymous and (viewer is None or viewer.id != self.created_by_id):
            return ANONYMOUS_AUTHOR_NAME
        return self.created_by.display_name if self.created_by else None

    def to_dict(self, viewer=None):
        hide_author = self.is_anonymous and (viewer is None or viewer.id != self.created_by_id)
        return {
            'id': self.id,
            'church_id': self.church_id,
            'created_by_id': None if hide_author else self.created_by_id,
            'author_name': self.author_name(viewer),
            'title': self.title,
            'content': self.content,
            'message_type': self.message_type.value,
            'status': self.status.value,
            'category': self.category.value if self.category else None,
            'is_anonymous': self.is_anonymous,
            'moderation_status': self.moderation_status.value,
            'scheduled_for': isoformat(self.scheduled_for),
            'published_at': isoformat(self.published_at),
            'expires_at': isoformat(self.expires_at),
            'is_active': self.is_active(),
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Message id={self.id} type={self.message_type} status={self.status}>"
