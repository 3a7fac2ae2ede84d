from app.extensions import db
from .enums import InvitationStatus
from app.utils.time import isoformat


class ChurchInvitation(db.Model):
    __tablename__ = 'church_invitations'

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(64), unique=True, nullable=False)
    inviter_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    inviter_name = db.Column(db.String(255), nullable=False)
    inviter_email = db.Column(db.String(255), nullable=False)
    inviter_phone = db.Column(db.String(20), nullable=True)
    church_name = db.Column(db.String(255), nullable=True)
    church_email = db.Column(db.String(255), nullable=False, index=True)
    custom_message = db.Column(db.Text, nullable=True)

    status = db.Column(db.Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING)
    expires_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    last_sent_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    claimed_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    claimed_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    inviter = db.relationship('User', foreign_keys=[inviter_id])
    claimed_by = db.relationship('User', foreign_keys=[claimed_by_user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'inviter_id': self.inviter_id,
            'inviter_name': self.inviter_name,
            'inviter_email': self.inviter_email,
            'church_name': self.church_name,
            'church_email': self.church_email,
            'custom_message': self.custom_message,
            'status': self.status.value,
            'expires_at': isoformat(self.expires_at),
            'last_sent_at': isoformat(self.last_sent_at),
            'claimed_at': isoformat(self.claimed_at),
            'claimed_by_user_id': self.claimed_by_user_id,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<ChurchInvitation id={self.id} church_email='{self.church_email}' status={self.status}>"
