from app.extensions import db
from app.utils.time import isoformat


class InviteCode(db.Model):
    """A member's personal referral code.

    There is no status column: a code is expired once ``expires_at`` is in
    the past, and admins expire a code by setting ``expires_at`` to now.
    """

    __tablename__ = 'invite_codes'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    scans = db.Column(db.Integer, nullable=False, default=0)
    last_scanned_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    expires_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship('User', backref=db.backref('invite_code', uselist=False))

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'user_id': self.user_id,
            'scans': self.scans,
            'last_scanned_at': isoformat(self.last_scanned_at),
            'expires_at': isoformat(self.expires_at),
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<InviteCode code='{self.code}' user_id={self.user_id}>"
