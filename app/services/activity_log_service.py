import logging
from sqlalchemy.exc import SQLAlchemyError
from app.exceptions import ValidationError
from app.extensions import db
from app.models import ActivityLog
from app.models.enums import ActivityCategory
from app.repositories import ActivityLogRepository

logger = logging.getLogger(__name__)


class ActivityLogService:
    @staticmethod
    def log(user, category: ActivityCategory, action: str, details=None):
        """Record an audit entry inside the caller's transaction.

        Runs in a savepoint so a failed insert is logged and discarded
        without affecting the caller.
        """
        try:
            with db.session.begin_nested():
                entry = ActivityLogRepository.add(
                    ActivityLog(
                        user_id=user.id if user else None,
                        user_role=user.role.value if user and user.role else None,
                        category=category,
                        action=action,
                        details=details or {},
                    )
                )
            return entry
        except SQLAlchemyError as e:
            logger.error(f"Failed to record activity '{action}': {e}")
            return None

    @staticmethod
    def list_activity(category=None, action=None, page=1, per_page=50):
        if category:
            try:
                category = ActivityCategory(category.lower())
            except ValueError:
                raise ValidationError(f"Unknown activity category: {category}")
        per_page = max(1, min(per_page, 200))
        query = ActivityLogRepository.query(category=category or None, action=action)
        total = query.count()
        entries = query.offset((max(page, 1) - 1) * per_page).limit(per_page).all()
        return {
            "activities": [entry.to_dict() for entry in entries],
            "total": total,
            "page": max(page, 1),
            "per_page": per_page,
        }
