"""Capability checks.

Each action maps to a predicate ``(actor, resource) -> bool``. Services
call :func:`require` before mutating anything; there are no role or
ownership conditionals outside this table.
"""
from app.constants import VERIFIER_MIN_TENURE
from app.exceptions import UnauthorizedError
from app.models.enums import MessageType, UserRole
from app.repositories import PingRepository
from app.utils.time import as_utc, utcnow


def is_admin(actor, resource=None):
    return actor is not None and actor.role == UserRole.ADMIN


def leads(actor, church):
    return actor is not None and church is not None and church.lead_contact_id == actor.id


def leads_approved(actor, church):
    return leads(actor, church) and church.is_approved


def is_verified_member(actor, church=None):
    if actor is None or not actor.is_verified_member:
        return False
    return church is None or actor.church_id == church.id


def verifier_ineligibility_reason(actor, church, now=None):
    """None when ``actor`` may vote on join requests for ``church``."""
    if not is_verified_member(actor, church):
        return "Only verified members of this church can verify new members"
    verified_at = as_utc(actor.verified_at)
    if verified_at is None:
        return "Only verified members of this church can verify new members"
    if (now or utcnow()) - verified_at < VERIFIER_MIN_TENURE:
        return f"Members must be verified for at least {VERIFIER_MIN_TENURE.days} days before verifying others"
    return None


def can_vote(actor, church):
    return verifier_ineligibility_reason(actor, church) is None


def _owning_lead(actor, item):
    return leads(actor, item.church)


def _message_delete(actor, message):
    if message.message_type == MessageType.USER_SHARE:
        author = message.created_by
        author_church = author.church if author else None
        return is_admin(actor) or leads(actor, author_church) or leads(actor, message.church)
    return message.created_by_id == actor.id or leads(actor, message.church)


PERMISSIONS = {
    # churches
    "church.apply": lambda actor, _: actor.church_id is None and actor.role != UserRole.ADMIN,
    "church.review": is_admin,
    "church.update_settings": is_admin,
    # verification
    "verification.vote": can_vote,
    "verification.lead_approve": leads,
    "verification.reject": lambda actor, church: leads(actor, church) or can_vote(actor, church),
    "verification.view_queue": lambda actor, church: leads(actor, church) or can_vote(actor, church),
    "verification.view_progress": lambda actor, request: (
        request.user_id == actor.id
        or leads(actor, request.church)
        or is_verified_member(actor, request.church)
    ),
    "verification.leave": is_verified_member,
    # items
    "item.create": leads_approved,
    "item.update": _owning_lead,
    "item.delete": lambda actor, item: is_admin(actor) or _owning_lead(actor, item),
    "item.moderate": is_admin,
    "item.claim": leads_approved,
    "item.unclaim": lambda actor, item: item.claimer_id is not None and item.claimer_id == actor.id,
    "item.complete": _owning_lead,
    "item.member_settings": lambda actor, item: item.claimer_id is not None and item.claimer_id == actor.id,
    # member item requests
    "member_request.create": is_verified_member,
    "member_request.manage": lambda actor, request: request.user_id == actor.id,
    # messages
    "message.create": leads_approved,
    "message.edit": lambda actor, message: message.created_by_id == actor.id,
    "message.publish": lambda actor, message: message.created_by_id == actor.id or leads(actor, message.church),
    "message.delete": _message_delete,
    "message.archive": lambda actor, message: leads(actor, message.church),
    "message.share": is_verified_member,
    "message.view_feed": lambda actor, church: is_verified_member(actor, church) or leads(actor, church),
    "message.moderate": is_admin,
    # invitations
    "invitation.create": lambda actor, _: actor is not None,
    "invitation.cancel": lambda actor, invitation: invitation.inviter_id == actor.id,
    "invitation.resend": lambda actor, invitation: invitation.inviter_id == actor.id or is_admin(actor),
    "invitation.expire": is_admin,
    "invite_code.own": is_verified_member,
    "invite_code.expire": is_admin,
    # pings
    "ping.send": is_verified_member,
    "ping.respond": lambda actor, ping: ping.receiver_id == actor.id,
    "ping.view_contact": lambda actor, target: (
        actor.id == target.id or PingRepository.accepted_between(actor.id, target.id)
    ),
    # administration
    "admin.users": is_admin,
    "admin.analytics": is_admin,
    "admin.activity": is_admin,
}


def can(action, actor, resource=None) -> bool:
    try:
        predicate = PERMISSIONS[action]
    except KeyError:
        raise ValueError(f"Unknown action: {action}")
    if actor is None:
        return False
    return bool(predicate(actor, resource))


def require(action, actor, resource=None, message=None):
    if not can(action, actor, resource):
        raise UnauthorizedError(message)
