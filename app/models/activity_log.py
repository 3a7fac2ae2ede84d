from app.extensions import db
from .enums import ActivityCategory
from app.utils.time import isoformat


class ActivityLog(db.Model):
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    user_role = db.Column(db.String(20), nullable=True)
    category = db.Column(db.Enum(ActivityCategory), nullable=False)
    action = db.Column(db.String(100), nullable=False)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user.display_name if self.user else None,
            'user_role': self.user_role,
            'category': self.category.value,
            'action': self.action,
            'details': self.details or {},
            'created_at': isoformat(self.created_at),
        }
