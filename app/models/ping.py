from app.extensions import db
from .enums import PingStatus
from app.utils.time import isoformat


class Ping(db.Model):
    __tablename__ = 'pings'

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    message = db.Column(db.String(255), nullable=True)
    status = db.Column(db.Enum(PingStatus), nullable=False, default=PingStatus.PENDING)
    expires_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False)
    responded_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    sender = db.relationship('User', foreign_keys=[sender_id])
    receiver = db.relationship('User', foreign_keys=[receiver_id])

    # One ping per ordered (sender, receiver) pair
    __table_args__ = (
        db.UniqueConstraint('sender_id', 'receiver_id', name='uq_ping_sender_receiver'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'sender_name': self.sender.display_name if self.sender else None,
            'receiver_id': self.receiver_id,
            'receiver_name': self.receiver.display_name if self.receiver else None,
            'message': self.message,
            'status': self.status.value,
            'expires_at': isoformat(self.expires_at),
            'responded_at': isoformat(self.responded_at),
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Ping id={self.id} {self.sender_id}->{self.receiver_id} status={self.status}>"
