import logging
from app.exceptions import InvalidStateError, MissingFieldsError, NotFoundError, ValidationError
from app.models import Item, MemberItemRequest
from app.models.enums import (
    ActivityCategory,
    ItemStatus,
    MemberRequestStatus,
    ModerationStatus,
    UserRole,
)
from app.repositories import ChurchRepository, ItemRepository, MemberRequestRepository
from app.services import permissions
from app.services.activity_log_service import ActivityLogService
from app.utils.db import atomic, conditional_update
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "category",
    "condition",
    "address",
    "city",
    "state",
    "zip_code",
)


class ItemService:
    """Donated items: AVAILABLE -> CLAIMED -> COMPLETED, with CLAIMED -> AVAILABLE on unclaim.

    Every transition is a conditional UPDATE on the expected current state,
    so of two concurrent claims exactly one succeeds.
    """

    @staticmethod
    def get_item(item_id: int) -> Item:
        item = ItemRepository.find_by_id(item_id)
        if not item:
            raise NotFoundError("Item not found")
        return item

    @staticmethod
    def create_item(lead, data) -> Item:
        church = ChurchRepository.find_by_lead_contact(lead.id)
        permissions.require("item.create", lead, church, message="Only approved churches can post items")
        missing = [field for field in ("title",) if not data.get(field)]
        if missing:
            raise MissingFieldsError(missing)

        with atomic():
            item = ItemRepository.add(
                Item(
                    church_id=church.id,
                    posted_by_id=lead.id,
                    status=ItemStatus.AVAILABLE,
                    moderation_status=ModerationStatus.PENDING,
                    offer_to_members=False,
                    **{field: data.get(field) for field in EDITABLE_FIELDS},
                )
            )
            ActivityLogService.log(
                lead,
                ActivityCategory.CONTENT,
                "item_posted",
                {"item_id": item.id, "title": item.title, "church_id": church.id},
            )
        logger.info(f"Item {item.id} posted by church {church.id}")
        return item

    @staticmethod
    def update_item(lead, item_id: int, data) -> Item:
        item = ItemService.get_item(item_id)
        permissions.require("item.update", lead, item, message="Only the posting church can edit this item")
        if item.status != ItemStatus.AVAILABLE:
            raise InvalidStateError("Only available items can be edited")
        if "title" in data and not data["title"]:
            raise ValidationError("title cannot be empty")

        with atomic():
            for field in EDITABLE_FIELDS:
                if field in data:
                    setattr(item, field, data[field])
        return item

    @staticmethod
    def delete_item(actor, item_id: int):
        item = ItemService.get_item(item_id)
        permissions.require("item.delete", actor, item, message="Only the posting church can delete this item")
        if item.status == ItemStatus.CLAIMED and actor.role != UserRole.ADMIN:
            raise InvalidStateError("Claimed items cannot be deleted")

        with atomic():
            ItemRepository.delete(item)
        logger.info(f"Item {item_id} deleted by user {actor.id}")

    @staticmethod
    def moderate_item(admin, item_id: int, status: str, notes=None) -> Item:
        permissions.require("item.moderate", admin)
        item = ItemService.get_item(item_id)
        try:
            moderation_status = ModerationStatus((status or "").upper())
        except ValueError:
            raise ValidationError("status must be APPROVED or REJECTED")
        if moderation_status not in (ModerationStatus.APPROVED, ModerationStatus.REJECTED):
            raise ValidationError("status must be APPROVED or REJECTED")

        with atomic():
            item.moderation_status = moderation_status
            item.moderation_notes = notes
            item.moderated_at = utcnow()
            ActivityLogService.log(
                admin,
                ActivityCategory.ADMIN,
                f"item_{moderation_status.value.lower()}",
                {"item_id": item.id, "notes": notes},
            )
        return item

    @staticmethod
    def claim_item(lead, item_id: int) -> Item:
        item = ItemService.get_item(item_id)
        church = ChurchRepository.find_by_lead_contact(lead.id)
        permissions.require("item.claim", lead, church, message="Only approved churches can claim items")
        if item.moderation_status != ModerationStatus.APPROVED:
            raise InvalidStateError("Item is not available for claiming")
        if item.church_id == church.id:
            raise InvalidStateError("You cannot claim your own church's item")

        with atomic():
            changed = conditional_update(
                Item,
                [
                    Item.id == item.id,
                    Item.status == ItemStatus.AVAILABLE,
                    Item.moderation_status == ModerationStatus.APPROVED,
                ],
                {Item.status: ItemStatus.CLAIMED, Item.claimer_id: lead.id, Item.claimed_at: utcnow()},
            )
            if not changed:
                raise InvalidStateError("Item is not available")
            ActivityLogService.log(
                lead,
                ActivityCategory.CONTENT,
                "item_claimed",
                {"item_id": item.id, "title": item.title, "church_id": church.id},
            )
        logger.info(f"Item {item.id} claimed by user {lead.id} (church {church.id})")
        return item

    @staticmethod
    def unclaim_item(actor, item_id: int) -> Item:
        """CLAIMED -> AVAILABLE by the claiming lead.

        The member offer belongs to the claiming church, so it is switched off
        and its REQUESTED member requests are cancelled: once the item is
        AVAILABLE again no member could ever mark them received.
        """
        item = ItemService.get_item(item_id)
        if item.status != ItemStatus.CLAIMED:
            raise InvalidStateError("Item is not claimed")
        permissions.require("item.unclaim", actor, item, message="Only the claiming church can release this item")

        with atomic():
            changed = conditional_update(
                Item,
                [Item.id == item.id, Item.status == ItemStatus.CLAIMED, Item.claimer_id == actor.id],
                {
                    Item.status: ItemStatus.AVAILABLE,
                    Item.claimer_id: None,
                    Item.claimed_at: None,
                    Item.offer_to_members: False,
                    Item.member_description: None,
                },
            )
            if not changed:
                raise InvalidStateError("Item is not claimed")
            conditional_update(
                MemberItemRequest,
                [
                    MemberItemRequest.item_id == item.id,
                    MemberItemRequest.status == MemberRequestStatus.REQUESTED,
                ],
                {MemberItemRequest.status: MemberRequestStatus.CANCELLED, MemberItemRequest.cancelled_at: utcnow()},
            )
        logger.info(f"Item {item.id} released by user {actor.id}")
        return item

    @staticmethod
    def mark_completed(item, now=None) -> bool:
        """CLAIMED -> COMPLETED inside the caller's transaction.

        ``claimer_id`` is cleared and kept in ``completed_claimer_id``.
        """
        if item.claimer_id is None:
            return False
        return bool(
            conditional_update(
                Item,
                [Item.id == item.id, Item.status == ItemStatus.CLAIMED, Item.claimer_id == item.claimer_id],
                {
                    Item.status: ItemStatus.COMPLETED,
                    Item.completed_at: now or utcnow(),
                    Item.completed_claimer_id: item.claimer_id,
                    Item.claimer_id: None,
                },
            )
        )

    @staticmethod
    def complete_item(lead, item_id: int) -> Item:
        item = ItemService.get_item(item_id)
        permissions.require("item.complete", lead, item, message="Only the posting church can complete this item")
        if item.status != ItemStatus.CLAIMED or item.claimer_id is None:
            raise InvalidStateError("Item must be claimed before it can be completed")

        with atomic():
            if not ItemService.mark_completed(item):
                raise InvalidStateError("Item must be claimed before it can be completed")
            ActivityLogService.log(
                lead,
                ActivityCategory.CONTENT,
                "item_completed",
                {"item_id": item.id, "title": item.title, "claimer_id": item.completed_claimer_id},
            )
        logger.info(f"Item {item.id} completed by user {lead.id}")
        return item

    @staticmethod
    def update_member_settings(claimer, item_id: int, data) -> dict:
        item = ItemService.get_item(item_id)
        permissions.require(
            "item.member_settings",
            claimer,
            item,
            message="Only the church lead who claimed this item can modify member settings",
        )
        offer = data.get("offer_to_members")
        if not isinstance(offer, bool):
            raise ValidationError("offer_to_members must be a boolean")
        if item.status != ItemStatus.CLAIMED:
            raise InvalidStateError("Only claimed items can be offered to members")

        active_requests = MemberRequestRepository.find_active_for_item(item.id)
        with atomic():
            item.offer_to_members = offer
            item.member_description = (data.get("member_description") or None) if offer else None

        response = {
            "item": item.to_dict(),
            "message": f"Member offering {'enabled' if offer else 'disabled'} successfully",
        }
        if not offer and active_requests:
            logger.warning(
                f"Member offering disabled on item {item.id} with {len(active_requests)} active request(s)"
            )
            response["warning"] = {
                "message": "Member offering disabled with active requests",
                "active_requests": len(active_requests),
                "requesters": [
                    {
                        "name": request.user.display_name,
                        "email": request.user.email,
                        "status": request.status.value,
                    }
                    for request in active_requests
                ],
            }
        return response

    @staticmethod
    def list_available(lead):
        church = ChurchRepository.find_by_lead_contact(lead.id)
        permissions.require("item.claim", lead, church, message="Only approved churches can browse items")
        return ItemRepository.find_available_for_church(church.id)

    @staticmethod
    def list_church_items(lead):
        church = ChurchRepository.find_by_lead_contact(lead.id)
        permissions.require("item.create", lead, church, message="Only approved churches can view their items")
        return {
            "posted": ItemRepository.find_by_church(church.id),
            "claimed": ItemRepository.find_claimed_by(lead.id),
        }

    @staticmethod
    def list_pending_moderation(admin):
        permissions.require("item.moderate", admin)
        return ItemRepository.find_pending_moderation()
