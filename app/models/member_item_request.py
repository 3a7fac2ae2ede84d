from app.extensions import db
from .enums import MemberRequestStatus
from app.utils.time import isoformat


class MemberItemRequest(db.Model):
    __tablename__ = 'member_item_requests'

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('items.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    church_id = db.Column(db.Integer, db.ForeignKey('churches.id'), nullable=False)
    status = db.Column(
        db.Enum(MemberRequestStatus), nullable=False, default=MemberRequestStatus.REQUESTED
    )
    member_notes = db.Column(db.Text, nullable=True)
    requested_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    expires_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    received_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    cancelled_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    item = db.relationship('Item', backref=db.backref('member_requests', lazy='dynamic'))
    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'item_id': self.item_id,
            'item_title': self.item.title if self.item else None,
            'user_id': self.user_id,
            'user_name': self.user.display_name if self.user else None,
            'church_id': self.church_id,
            'status': self.status.value,
            'member_notes': self.member_notes,
            'requested_at': isoformat(self.requested_at),
            'expires_at': isoformat(self.expires_at),
            'received_at': isoformat(self.received_at),
        }

    def __repr__(self):
        return f"<MemberItemRequest id={self.id} item_id={self.item_id} user_id={self.user_id} status={self.status}>"
