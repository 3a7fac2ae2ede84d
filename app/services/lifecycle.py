"""Deadline-driven status transitions shared by invitations, member item
requests, pings and published messages.

Every entity handled here carries a status column and an ``expires_at``
column. An entity whose deadline has passed while it is still in one of
its open statuses is moved to its expired status either lazily, when a
caller reads it in a status-sensitive context, or in bulk by a scheduled
sweep. Both paths go through the same conditional UPDATE (``WHERE id = ?
AND status IN (open) AND expires_at < now``) so a row expired by one path,
or given a new deadline since it was read, is a zero-row no-op for the
other.
"""
import logging
from sqlalchemy.exc import SQLAlchemyError
from app.extensions import db
from app.models import ChurchInvitation, MemberItemRequest, Message, Ping
from app.models.enums import InvitationStatus, MemberRequestStatus, MessageStatus, PingStatus
from app.utils.db import conditional_update
from app.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)


class TimeBoundedLifecycle:
    def __init__(self, name, model, open_statuses, expired_status, extra_values=None):
        self.name = name
        self.model = model
        self.open_statuses = list(open_statuses)
        self.expired_status = expired_status
        self.extra_values = extra_values or {}

    def is_expired(self, entity, now=None) -> bool:
        now = now or utcnow()
        expires_at = as_utc(entity.expires_at)
        return expires_at is not None and now > expires_at

    def expire_if_due(self, entity, now=None) -> bool:
        """Write-on-read expiry. Returns True when this call expired the row.

        The caller owns the transaction; re-checking an entity that is
        already expired (or otherwise closed) changes nothing.
        """
        now = now or utcnow()
        if entity.status not in self.open_statuses or not self.is_expired(entity, now):
            return False
        changed = self._expire_row(entity.id, now)
        if changed:
            db.session.refresh(entity)
            logger.info(f"{self.name} {entity.id} expired on read")
        return bool(changed)

    def _expire_row(self, entity_id, now) -> int:
        values = {self.model.status: self.expired_status}
        values.update(self.extra_values)
        return conditional_update(
            self.model,
            [
                self.model.id == entity_id,
                self.model.status.in_(self.open_statuses),
                self.model.expires_at < now,
            ],
            values,
        )

    def due_ids(self, now):
        rows = (
            db.session.query(self.model.id)
            .filter(self.model.status.in_(self.open_statuses), self.model.expires_at < now)
            .order_by(self.model.id)
            .all()
        )
        return [row.id for row in rows]

    def sweep(self, now=None) -> dict:
        """Expire every open row whose deadline has passed.

        Each row is committed on its own; a row already closed by a
        concurrent writer is counted as skipped and a failing row as
        failed, neither of which stops the batch.
        """
        now = now or utcnow()
        return run_sweep(self.name, self.due_ids(now), lambda entity_id: self._expire_row(entity_id, now))


def run_sweep(name, ids, transition) -> dict:
    affected, skipped, failed = [], 0, 0
    for entity_id in ids:
        try:
            changed = transition(entity_id)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            failed += 1
            logger.error(f"{name} sweep failed for id {entity_id}: {e}", exc_info=True)
            continue
        if changed:
            affected.append(entity_id)
        else:
            skipped += 1

    logger.info(
        f"{name} sweep: {len(affected)} updated, {skipped} skipped, {failed} failed; ids={affected}"
    )
    return {
        "success": True,
        "count": len(affected),
        "affected": affected,
        "skipped": skipped,
        "failed": failed,
    }


church_invitations = TimeBoundedLifecycle(
    "ChurchInvitation", ChurchInvitation, [InvitationStatus.PENDING], InvitationStatus.EXPIRED
)
member_requests = TimeBoundedLifecycle(
    "MemberItemRequest", MemberItemRequest, [MemberRequestStatus.REQUESTED], MemberRequestStatus.EXPIRED
)
pings = TimeBoundedLifecycle("Ping", Ping, [PingStatus.PENDING], PingStatus.EXPIRED)
published_messages = TimeBoundedLifecycle(
    "Message", Message, [MessageStatus.PUBLISHED], MessageStatus.EXPIRED
)
