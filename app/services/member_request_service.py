import logging
from app.constants import MAX_ACTIVE_MEMBER_REQUESTS, MEMBER_REQUEST_WINDOW
from app.exceptions import ConflictError, InvalidStateError, NotFoundError
from app.models import MemberItemRequest
from app.models.enums import ItemStatus, MemberRequestStatus, ModerationStatus
from app.repositories import ItemRepository, MemberRequestRepository
from app.services import lifecycle, permissions
from app.services.item_service import ItemService
from app.utils.db import atomic, conditional_update
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def _offered_to(item, member) -> bool:
    return (
        item.status == ItemStatus.CLAIMED
        and item.offer_to_members
        and item.moderation_status == ModerationStatus.APPROVED
        and item.claimer is not None
        and item.claimer.church_id == member.church_id
    )


class MemberRequestService:
    @staticmethod
    def _expire_stale(requests, now):
        return [r for r in requests if lifecycle.member_requests.expire_if_due(r, now)]

    @staticmethod
    def list_available(member):
        permissions.require("member_request.create", member, message="Only verified church members can view items")
        items = ItemRepository.find_offered_to_members(member.church_id)
        now = utcnow()
        result = []
        with atomic():
            for item in items:
                active = MemberRequestRepository.find_active_for_item(item.id)
                MemberRequestService._expire_stale(active, now)
                active = [r for r in active if r.status in (MemberRequestStatus.REQUESTED, MemberRequestStatus.RECEIVED)]
                data = item.to_dict()
                data["is_requested"] = bool(active)
                data["requested_by_me"] = any(r.user_id == member.id for r in active)
                result.append(data)
        return result

    @staticmethod
    def request_item(member, item_id: int, notes=None) -> MemberItemRequest:
        permissions.require("member_request.create", member, message="Only verified church members can request items")
        item = ItemRepository.find_by_id(item_id)
        if not item or not _offered_to(item, member):
            raise NotFoundError("Item not found or not offered to members")

        now = utcnow()
        with atomic():
            MemberRequestService._expire_stale(MemberRequestRepository.find_for_user(member.id), now)
            MemberRequestService._expire_stale(MemberRequestRepository.find_active_for_item(item.id), now)

            if MemberRequestRepository.count_active_for_user(member.id) >= MAX_ACTIVE_MEMBER_REQUESTS:
                raise InvalidStateError(
                    f"You can have at most {MAX_ACTIVE_MEMBER_REQUESTS} active item requests"
                )
            if MemberRequestRepository.find_active_for_item(item.id):
                raise ConflictError("This item has already been requested")

            request = MemberRequestRepository.add(
                MemberItemRequest(
                    item_id=item.id,
                    user_id=member.id,
                    church_id=member.church_id,
                    status=MemberRequestStatus.REQUESTED,
                    member_notes=notes,
                    requested_at=now,
                    expires_at=now + MEMBER_REQUEST_WINDOW,
                )
            )
        logger.info(f"Member {member.id} requested item {item.id} (request {request.id})")
        return request

    @staticmethod
    def _get_own_request(member, request_id):
        request = MemberRequestRepository.find_by_id(request_id)
        if not request:
            raise NotFoundError("Request not found")
        permissions.require("member_request.manage", member, request, message="This is not your request")
        return request

    @staticmethod
    def cancel_request(member, request_id: int) -> MemberItemRequest:
        request = MemberRequestService._get_own_request(member, request_id)
        now = utcnow()
        with atomic():
            lifecycle.member_requests.expire_if_due(request, now)
            changed = conditional_update(
                MemberItemRequest,
                [MemberItemRequest.id == request.id, MemberItemRequest.status == MemberRequestStatus.REQUESTED],
                {MemberItemRequest.status: MemberRequestStatus.CANCELLED, MemberItemRequest.cancelled_at: now},
            )
        if not changed:
            raise InvalidStateError(f"Request is {request.status.value.lower()} and cannot be cancelled")
        logger.info(f"Member request {request.id} cancelled")
        return request

    @staticmethod
    def mark_received(member, request_id: int) -> MemberItemRequest:
        """The member picked the item up: the request is RECEIVED and the item COMPLETED together."""
        request = MemberRequestService._get_own_request(member, request_id)
        now = utcnow()
        with atomic():
            lifecycle.member_requests.expire_if_due(request, now)
        if request.status != MemberRequestStatus.REQUESTED:
            raise InvalidStateError(f"Request is {request.status.value.lower()} and cannot be received")

        with atomic():
            changed = conditional_update(
                MemberItemRequest,
                [MemberItemRequest.id == request.id, MemberItemRequest.status == MemberRequestStatus.REQUESTED],
                {MemberItemRequest.status: MemberRequestStatus.RECEIVED, MemberItemRequest.received_at: now},
            )
            if not changed or not ItemService.mark_completed(request.item, now):
                raise InvalidStateError("Item is no longer available")
        logger.info(f"Member request {request.id} received; item {request.item_id} completed")
        return request

    @staticmethod
    def my_requests(member):
        with atomic():
            requests = MemberRequestRepository.find_for_user(member.id)
            MemberRequestService._expire_stale(requests, utcnow())
        return requests

    @staticmethod
    def expire_due(now=None) -> dict:
        return lifecycle.member_requests.sweep(now)
