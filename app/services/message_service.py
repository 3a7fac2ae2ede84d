import logging
from datetime import datetime
from app.constants import (
    MAX_MESSAGE_CONTENT_LENGTH,
    MAX_MESSAGE_TITLE_LENGTH,
    MAX_PENDING_MESSAGES,
    MESSAGE_ARCHIVE_AFTER,
    MESSAGE_LIFETIME,
)
from app.exceptions import InvalidStateError, MissingFieldsError, NotFoundError, ValidationError
from app.models import Message
from app.models.enums import (
    ActivityCategory,
    MessageStatus,
    MessageType,
    ModerationStatus,
    UserMessageCategory,
)
from app.repositories import ChurchRepository, MessageRepository
from app.repositories.message_repository import PENDING_MESSAGE_STATUSES
from app.services import lifecycle, permissions
from app.services.activity_log_service import ActivityLogService
from app.utils.db import atomic, conditional_update
from app.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)

CHURCH_MESSAGE_TYPES = (MessageType.DAILY_MESSAGE, MessageType.ANNOUNCEMENT)


def _validate_content(content, title=None):
    if not content or not content.strip():
        raise MissingFieldsError(["content"])
    if len(content) > MAX_MESSAGE_CONTENT_LENGTH:
        raise ValidationError(f"content must be at most {MAX_MESSAGE_CONTENT_LENGTH} characters")
    if title and len(title) > MAX_MESSAGE_TITLE_LENGTH:
        raise ValidationError(f"title must be at most {MAX_MESSAGE_TITLE_LENGTH} characters")


def _parse_schedule(value, now):
    if not value:
        return None
    try:
        scheduled_for = as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except (AttributeError, ValueError):
        raise ValidationError("scheduled_for must be an ISO 8601 timestamp")
    if scheduled_for <= now:
        raise ValidationError("scheduled_for must be in the future")
    return scheduled_for


def _publish_values(now):
    return {
        Message.status: MessageStatus.PUBLISHED,
        Message.published_at: now,
        Message.expires_at: now + MESSAGE_LIFETIME,
    }


class MessageService:
    @staticmethod
    def get_message(message_id: int) -> Message:
        message = MessageRepository.find_by_id(message_id)
        if not message:
            raise NotFoundError("Message not found")
        return message

    @staticmethod
    def create_message(lead, data) -> Message:
        church = ChurchRepository.find_by_lead_contact(lead.id)
        permissions.require("message.create", lead, church, message="Only approved churches can post messages")
        _validate_content(data.get("content"), data.get("title"))
        try:
            message_type = MessageType((data.get("message_type") or MessageType.DAILY_MESSAGE.value).upper())
        except ValueError:
            raise ValidationError("message_type must be DAILY_MESSAGE or ANNOUNCEMENT")
        if message_type not in CHURCH_MESSAGE_TYPES:
            raise ValidationError("message_type must be DAILY_MESSAGE or ANNOUNCEMENT")

        now = utcnow()
        scheduled_for = _parse_schedule(data.get("scheduled_for"), now)

        with atomic():
            ChurchRepository.lock(church.id)
            if MessageRepository.count_pending(church.id) >= MAX_PENDING_MESSAGES:
                raise InvalidStateError(
                    f"A church can have at most {MAX_PENDING_MESSAGES} draft or scheduled messages"
                )
            message = MessageRepository.add(
                Message(
                    church_id=church.id,
                    created_by_id=lead.id,
                    title=data.get("title"),
                    content=data["content"].strip(),
                    message_type=message_type,
                    status=MessageStatus.SCHEDULED if scheduled_for else MessageStatus.DRAFT,
                    scheduled_for=scheduled_for,
                    moderation_status=ModerationStatus.AUTO_APPROVED,
                    is_anonymous=False,
                )
            )
        logger.info(f"Message {message.id} created by church {church.id} ({message.status.value})")
        return message

    @staticmethod
    def update_message(actor, message_id: int, data) -> Message:
        message = MessageService.get_message(message_id)
        permissions.require("message.edit", actor, message, message="Only the author can edit this message")
        if message.status not in PENDING_MESSAGE_STATUSES:
            raise InvalidStateError("Only draft or scheduled messages can be edited")

        content = data.get("content", message.content)
        title = data.get("title", message.title)
        _validate_content(content, title)
        now = utcnow()

        with atomic():
            message.content = content.strip()
            message.title = title
            if "scheduled_for" in data:
                message.scheduled_for = _parse_schedule(data["scheduled_for"], now)
                message.status = MessageStatus.SCHEDULED if message.scheduled_for else MessageStatus.DRAFT
        return message

    @staticmethod
    def publish_message(actor, message_id: int) -> Message:
        message = MessageService.get_message(message_id)
        permissions.require("message.publish", actor, message, message="You cannot publish this message")

        with atomic():
            changed = conditional_update(
                Message,
                [Message.id == message.id, Message.status.in_(PENDING_MESSAGE_STATUSES)],
                _publish_values(utcnow()),
            )
            if not changed:
                raise InvalidStateError("Only draft or scheduled messages can be published")
            ActivityLogService.log(
                actor,
                ActivityCategory.CONTENT,
                "message_posted",
                {"message_id": message.id, "church_id": message.church_id},
            )
        logger.info(f"Message {message.id} published by user {actor.id}")
        return message

    @staticmethod
    def delete_message(actor, message_id: int):
        message = MessageService.get_message(message_id)
        permissions.require("message.delete", actor, message, message="You cannot delete this message")
        with atomic():
            MessageRepository.delete(message)
        logger.info(f"Message {message_id} deleted by user {actor.id}")

    @staticmethod
    def archive_message(actor, message_id: int) -> Message:
        message = MessageService.get_message(message_id)
        permissions.require("message.archive", actor, message, message="Only the church lead can archive messages")
        with atomic():
            changed = conditional_update(
                Message,
                [Message.id == message.id, Message.status.in_([MessageStatus.PUBLISHED, MessageStatus.EXPIRED])],
                {Message.status: MessageStatus.ARCHIVED},
            )
            if not changed:
                raise InvalidStateError("Only published or expired messages can be archived")
        return message

    @staticmethod
    def share(member, data) -> Message:
        """Member post: published immediately, auto-approved, expires like any message."""
        permissions.require("message.share", member, message="Only verified church members can share messages")
        _validate_content(data.get("content"))
        try:
            category = UserMessageCategory((data.get("category") or "").upper())
        except ValueError:
            raise ValidationError("category must be TESTIMONY, PRAYER_REQUEST or GOD_WINK")

        now = utcnow()
        with atomic():
            message = MessageRepository.add(
                Message(
                    church_id=member.church_id,
                    created_by_id=member.id,
                    content=data["content"].strip(),
                    message_type=MessageType.USER_SHARE,
                    status=MessageStatus.PUBLISHED,
                    category=category,
                    is_anonymous=bool(data.get("is_anonymous", False)),
                    moderation_status=ModerationStatus.AUTO_APPROVED,
                    published_at=now,
                    expires_at=now + MESSAGE_LIFETIME,
                )
            )
            content = message.content
            ActivityLogService.log(
                member,
                ActivityCategory.CONTENT,
                "message_posted",
                {
                    "message_id": message.id,
                    "church_id": member.church_id,
                    "title": content if len(content) <= 50 else content[:50] + "...",
                },
            )
        logger.info(f"Member {member.id} shared message {message.id}")
        return message

    @staticmethod
    def church_dashboard(lead) -> dict:
        church = ChurchRepository.find_by_lead_contact(lead.id)
        permissions.require("message.create", lead, church, message="Only approved churches can view messages")
        messages = MessageRepository.find_for_church(church.id)
        now = utcnow()
        stats = {"total": len(messages), "active": 0, "scheduled": 0, "expired": 0, "drafts": 0}
        for message in messages:
            if message.is_active(now):
                stats["active"] += 1
            elif message.status == MessageStatus.SCHEDULED:
                stats["scheduled"] += 1
            elif message.status == MessageStatus.DRAFT:
                stats["drafts"] += 1
            elif message.status in (MessageStatus.PUBLISHED, MessageStatus.EXPIRED):
                stats["expired"] += 1
        return {"messages": [m.to_dict(viewer=lead) for m in messages], "stats": stats}

    @staticmethod
    def feed(viewer, church_id: int = None) -> list:
        church = ChurchRepository.find_by_id(church_id or viewer.church_id or 0)
        if not church:
            raise NotFoundError("Church not found")
        permissions.require("message.view_feed", viewer, church, message="Only members of this church can view its messages")
        messages = MessageRepository.find_feed(church.id, utcnow())
        return [message.to_dict(viewer=viewer) for message in messages]

    @staticmethod
    def moderate(admin, message_id: int, status: str, notes=None) -> Message:
        permissions.require("message.moderate", admin)
        message = MessageService.get_message(message_id)
        if message.message_type != MessageType.USER_SHARE:
            raise InvalidStateError("Only member shares are moderated")
        try:
            moderation_status = ModerationStatus((status or "").upper())
        except ValueError:
            raise ValidationError("status must be APPROVED, REJECTED or FLAGGED")
        if moderation_status not in (ModerationStatus.APPROVED, ModerationStatus.REJECTED, ModerationStatus.FLAGGED):
            raise ValidationError("status must be APPROVED, REJECTED or FLAGGED")

        with atomic():
            message.moderation_status = moderation_status
            message.moderated_at = utcnow()
            message.moderated_by_id = admin.id
            message.moderation_notes = notes
            ActivityLogService.log(
                admin,
                ActivityCategory.ADMIN,
                f"message_{moderation_status.value.lower()}",
                {"message_id": message.id, "notes": notes},
            )
        return message

    @staticmethod
    def list_shares(admin, moderation_status=None):
        permissions.require("message.moderate", admin)
        if moderation_status:
            try:
                moderation_status = ModerationStatus(moderation_status.upper())
            except ValueError:
                raise ValidationError(f"Unknown moderation status: {moderation_status}")
        return MessageRepository.find_shares(moderation_status or None)

    @staticmethod
    def cleanup(now=None) -> dict:
        """Scheduled maintenance: expire, publish due schedules, archive old expired messages."""
        now = now or utcnow()
        expired = lifecycle.published_messages.sweep(now)

        due = MessageRepository.find_ids(
            [Message.status == MessageStatus.SCHEDULED, Message.scheduled_for <= now]
        )
        published = lifecycle.run_sweep(
            "Scheduled message",
            due,
            lambda message_id: conditional_update(
                Message,
                [
                    Message.id == message_id,
                    Message.status == MessageStatus.SCHEDULED,
                    Message.scheduled_for <= now,
                ],
                _publish_values(now),
            ),
        )

        stale = MessageRepository.find_ids(
            [Message.status == MessageStatus.EXPIRED, Message.expires_at < now - MESSAGE_ARCHIVE_AFTER]
        )
        archived = lifecycle.run_sweep(
            "Expired message",
            stale,
            lambda message_id: conditional_update(
                Message,
                [Message.id == message_id, Message.status == MessageStatus.EXPIRED],
                {Message.status: MessageStatus.ARCHIVED},
            ),
        )
        return {"success": True, "expired": expired, "published": published, "archived": archived}
