from typing import List
from app.extensions import db
from app.models import Item, MemberItemRequest, User
from app.models.enums import ItemStatus, MemberRequestStatus, ModerationStatus

ACTIVE_MEMBER_REQUEST_STATUSES = [MemberRequestStatus.REQUESTED, MemberRequestStatus.RECEIVED]


class ItemRepository:
    @staticmethod
    def add(item: Item) -> Item:
        db.session.add(item)
        db.session.flush()
        return item

    @staticmethod
    def find_by_id(item_id: int):
        return db.session.get(Item, item_id)

    @staticmethod
    def delete(item: Item):
        MemberItemRequest.query.filter_by(item_id=item.id).delete(synchronize_session=False)
        db.session.delete(item)
        db.session.flush()

    @staticmethod
    def find_available_for_church(church_id: int) -> List[Item]:
        """Approved, unclaimed items posted by other churches."""
        return (
            Item.query.filter(
                Item.status == ItemStatus.AVAILABLE,
                Item.moderation_status == ModerationStatus.APPROVED,
                Item.church_id != church_id,
            )
            .order_by(Item.created_at.desc(), Item.id.desc())
            .all()
        )

    @staticmethod
    def find_by_church(church_id: int) -> List[Item]:
        return Item.query.filter_by(church_id=church_id).order_by(Item.id.desc()).all()

    @staticmethod
    def find_claimed_by(user_id: int) -> List[Item]:
        return (
            Item.query.filter(Item.claimer_id == user_id, Item.status == ItemStatus.CLAIMED)
            .order_by(Item.claimed_at.desc())
            .all()
        )

    @staticmethod
    def find_pending_moderation() -> List[Item]:
        return (
            Item.query.filter_by(moderation_status=ModerationStatus.PENDING)
            .order_by(Item.created_at, Item.id)
            .all()
        )

    @staticmethod
    def find_offered_to_members(church_id: int) -> List[Item]:
        """Items claimed by a lead of ``church_id`` and re-offered to its members."""
        return (
            Item.query.join(User, Item.claimer_id == User.id)
            .filter(
                User.church_id == church_id,
                Item.status == ItemStatus.CLAIMED,
                Item.offer_to_members.is_(True),
                Item.moderation_status == ModerationStatus.APPROVED,
            )
            .order_by(Item.claimed_at.desc(), Item.id.desc())
            .all()
        )


class MemberRequestRepository:
    @staticmethod
    def add(request: MemberItemRequest) -> MemberItemRequest:
        db.session.add(request)
        db.session.flush()
        return request

    @staticmethod
    def find_by_id(request_id: int):
        return db.session.get(MemberItemRequest, request_id)

    @staticmethod
    def find_for_user(user_id: int) -> List[MemberItemRequest]:
        return (
            MemberItemRequest.query.filter_by(user_id=user_id)
            .order_by(MemberItemRequest.requested_at.desc(), MemberItemRequest.id.desc())
            .all()
        )

    @staticmethod
    def find_active_for_item(item_id: int) -> List[MemberItemRequest]:
        return MemberItemRequest.query.filter(
            MemberItemRequest.item_id == item_id,
            MemberItemRequest.status.in_(ACTIVE_MEMBER_REQUEST_STATUSES),
        ).all()

    @staticmethod
    def count_active_for_user(user_id: int) -> int:
        return MemberItemRequest.query.filter(
            MemberItemRequest.user_id == user_id,
            MemberItemRequest.status.in_(ACTIVE_MEMBER_REQUEST_STATUSES),
        ).count()
