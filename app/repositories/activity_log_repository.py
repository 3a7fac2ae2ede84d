from app.extensions import db
from app.models import ActivityLog


class ActivityLogRepository:
    @staticmethod
    def add(entry: ActivityLog) -> ActivityLog:
        db.session.add(entry)
        db.session.flush()
        return entry

    @staticmethod
    def query(category=None, action=None):
        query = ActivityLog.query
        if category is not None:
            query = query.filter(ActivityLog.category == category)
        if action:
            query = query.filter(ActivityLog.action == action)
        return query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
