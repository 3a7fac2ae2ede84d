import logging
from sqlalchemy.exc import IntegrityError
from app.constants import PING_DAILY_LIMIT, PING_RECENT_RESPONSE_WINDOW, PING_WINDOW
from app.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    TooManyRequestsError,
    ValidationError,
)
from app.models import FCMToken, Ping
from app.models.enums import PingStatus
from app.repositories import FCMTokenRepository, PingRepository, UserRepository
from app.services import lifecycle, permissions
from app.utils.db import atomic, conditional_update
from app.utils.push import send_push_to_tokens
from app.utils.time import start_of_day, utcnow

logger = logging.getLogger(__name__)


class PingService:
    """Member-to-member contact requests.

    A ping is PENDING for 7 days, then ACCEPTED, REJECTED or EXPIRED. An
    accepted ping in either direction lets both members see each other's
    contact details.
    """

    @staticmethod
    def send(sender, receiver_id: int, message=None) -> Ping:
        permissions.require("ping.send", sender, message="Only verified church members can send pings")
        if sender.id == receiver_id:
            raise ValidationError("You cannot ping yourself")
        receiver = UserRepository.find_by_id(receiver_id)
        if not receiver or not permissions.is_verified_member(receiver, sender.church):
            raise NotFoundError("Member not found in your church")

        now = utcnow()
        if PingRepository.count_sent_since(sender.id, start_of_day(now)) >= PING_DAILY_LIMIT:
            raise TooManyRequestsError(f"You can send at most {PING_DAILY_LIMIT} pings per day")

        with atomic():
            ping = PingRepository.find_between(sender.id, receiver.id)
            if ping:
                lifecycle.pings.expire_if_due(ping, now)
                if ping.status != PingStatus.EXPIRED:
                    raise ConflictError("You have already pinged this member")
                # An expired ping may be sent again; the pair keeps a single row
                ping.status = PingStatus.PENDING
                ping.message = message
                ping.created_at = now
                ping.expires_at = now + PING_WINDOW
                ping.responded_at = None
            else:
                try:
                    ping = PingRepository.add(
                        Ping(
                            sender_id=sender.id,
                            receiver_id=receiver.id,
                            message=message,
                            status=PingStatus.PENDING,
                            created_at=now,
                            expires_at=now + PING_WINDOW,
                        )
                    )
                except IntegrityError:
                    raise ConflictError("You have already pinged this member")

        send_push_to_tokens(
            FCMTokenRepository.active_tokens_for(receiver.id),
            "New ping",
            f"{sender.display_name} wants to connect with you",
            {"type": "ping", "ping_id": str(ping.id)},
        )
        logger.info(f"Ping {ping.id} sent from user {sender.id} to user {receiver.id}")
        return ping

    @staticmethod
    def respond(receiver, ping_id: int, accept: bool) -> Ping:
        ping = PingRepository.find_by_id(ping_id)
        if not ping:
            raise NotFoundError("Ping not found")
        permissions.require("ping.respond", receiver, ping, message="Only the recipient can respond to this ping")

        now = utcnow()
        with atomic():
            lifecycle.pings.expire_if_due(ping, now)
        if ping.status != PingStatus.PENDING:
            raise InvalidStateError(f"Ping is {ping.status.value.lower()} and can no longer be answered")

        status = PingStatus.ACCEPTED if accept else PingStatus.REJECTED
        with atomic():
            changed = conditional_update(
                Ping,
                [Ping.id == ping.id, Ping.status == PingStatus.PENDING],
                {Ping.status: status, Ping.responded_at: now},
            )
            if not changed:
                raise InvalidStateError("Ping has already been answered")

        send_push_to_tokens(
            FCMTokenRepository.active_tokens_for(ping.sender_id),
            "Ping answered",
            f"{receiver.display_name} {'accepted' if accept else 'declined'} your ping",
            {"type": "ping_response", "ping_id": str(ping.id), "status": status.value},
        )
        logger.info(f"Ping {ping.id} {status.value.lower()} by user {receiver.id}")
        return ping

    @staticmethod
    def status_between(user, target_id: int) -> dict:
        now = utcnow()
        with atomic():
            sent = PingRepository.find_between(user.id, target_id)
            received = PingRepository.find_between(target_id, user.id)
            for ping in (sent, received):
                if ping:
                    lifecycle.pings.expire_if_due(ping, now)

        relationship = "none"
        can_send = True
        current = None
        if sent and sent.status != PingStatus.EXPIRED:
            current = sent
            can_send = False
            if sent.status == PingStatus.PENDING:
                relationship = "pending_sent"
        if received and received.status in (PingStatus.PENDING, PingStatus.ACCEPTED):
            current = current or received
            can_send = False
            if received.status == PingStatus.PENDING and relationship == "none":
                relationship = "pending_received"
        connected = PingRepository.accepted_between(user.id, target_id)
        if connected:
            relationship = "connected"
            can_send = False

        return {
            "ping": {**current.to_dict(), "is_sender": current.sender_id == user.id} if current else None,
            "can_send_ping": can_send,
            "can_view_contact": connected,
            "relationship_status": relationship,
        }

    @staticmethod
    def pending(user) -> dict:
        now = utcnow()
        with atomic():
            received = PingRepository.find_pending_received(user.id)
            sent = PingRepository.find_pending_sent(user.id)
            for ping in received + sent:
                lifecycle.pings.expire_if_due(ping, now)
        return {
            "received": [p.to_dict() for p in received if p.status == PingStatus.PENDING],
            "sent": [p.to_dict() for p in sent if p.status == PingStatus.PENDING],
        }

    @staticmethod
    def counts(user) -> dict:
        pending = PingService.pending(user)
        responses = PingRepository.count_responses_since(user.id, utcnow() - PING_RECENT_RESPONSE_WINDOW)
        return {
            "pending": len(pending["received"]),
            "recent_responses": responses,
            "total": len(pending["received"]) + responses,
        }

    @staticmethod
    def contact_info(viewer, target_id: int) -> dict:
        target = UserRepository.find_by_id(target_id)
        if not target:
            raise NotFoundError("User not found")
        permissions.require(
            "ping.view_contact",
            viewer,
            target,
            message="Contact details are shared only after a ping is accepted",
        )
        return {
            "id": target.id,
            "name": target.display_name,
            "email": target.email,
            "phone": target.phone,
        }

    @staticmethod
    def register_device(user, token, device_type=None) -> FCMToken:
        if not token:
            raise ValidationError("token is required")
        with atomic():
            existing = FCMTokenRepository.find_by_token(token)
            if existing:
                existing.user_id = user.id
                existing.device_type = device_type or existing.device_type
                existing.is_active = True
                return existing
            return FCMTokenRepository.add(
                FCMToken(user_id=user.id, token=token, device_type=device_type, is_active=True)
            )

    @staticmethod
    def expire_due(now=None) -> dict:
        return lifecycle.pings.sweep(now)
