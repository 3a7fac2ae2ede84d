from app.extensions import db


class InvitationAnalytics(db.Model):
    __tablename__ = 'invitation_analytics'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    church_invites_sent = db.Column(db.Integer, nullable=False, default=0)
    user_invites_sent = db.Column(db.Integer, nullable=False, default=0)
    user_invites_scanned = db.Column(db.Integer, nullable=False, default=0)
    user_invites_completed = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship('User')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'church_invites_sent': self.church_invites_sent,
            'user_invites_sent': self.user_invites_sent,
            'user_invites_scanned': self.user_invites_scanned,
            'user_invites_completed': self.user_invites_completed,
        }
