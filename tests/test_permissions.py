from datetime import timedelta

import pytest

from app.exceptions import UnauthorizedError
from app.models import Item
from app.models.enums import ItemStatus, MessageType
from app.services import permissions
from app.utils.time import utcnow


def test_unknown_action_is_a_programming_error(make_user):
    with pytest.raises(ValueError):
        permissions.can("item.teleport", make_user())


def test_require_raises_forbidden(make_user):
    with pytest.raises(UnauthorizedError) as excinfo:
        permissions.require("admin.users", make_user(), message="Admins only")
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Admins only"


def test_anonymous_actor_is_never_allowed():
    assert permissions.can("invitation.create", None) is False


def test_verifier_tenure(make_church, make_user):
    church = make_church()
    seasoned = make_user(church=church, verified_days_ago=8)
    fresh = make_user(church=church, verified_days_ago=6)

    assert permissions.can("verification.vote", seasoned, church)
    assert not permissions.can("verification.vote", fresh, church)
    assert permissions.verifier_ineligibility_reason(fresh, church, now=utcnow() + timedelta(days=2)) is None
    assert not permissions.can("verification.vote", seasoned, make_church())


def test_lead_rights(make_church, make_user):
    church, pending = make_church(), make_church(approved=False)
    member = make_user(church=church)

    assert permissions.can("item.create", church.lead_contact, church)
    assert not permissions.can("item.create", pending.lead_contact, pending)
    assert not permissions.can("item.create", member, church)
    assert permissions.can("verification.lead_approve", church.lead_contact, church)
    assert permissions.can("verification.reject", church.lead_contact, church)


def test_item_claimer_rights(make_church, make_item):
    owner, claimer = make_church(), make_church()
    item = make_item(owner, status=ItemStatus.CLAIMED, claimer_id=claimer.lead_contact_id)

    assert permissions.can("item.unclaim", claimer.lead_contact, item)
    assert permissions.can("item.member_settings", claimer.lead_contact, item)
    assert not permissions.can("item.unclaim", owner.lead_contact, item)
    assert permissions.can("item.complete", owner.lead_contact, item)
    assert not permissions.can("item.complete", claimer.lead_contact, item)

    unclaimed = Item(church_id=owner.id, claimer_id=None)
    assert not permissions.can("item.unclaim", claimer.lead_contact, unclaimed)


def test_share_deletion(make_church, make_user, make_admin, make_message):
    church = make_church()
    author, peer = make_user(church=church), make_user(church=church)
    share = make_message(church, author=author, message_type=MessageType.USER_SHARE)

    assert permissions.can("message.delete", church.lead_contact, share)
    assert permissions.can("message.delete", make_admin(), share)
    assert not permissions.can("message.delete", peer, share)
    assert not permissions.can("message.delete", author, share)

    announcement = make_message(church)
    assert permissions.can("message.delete", church.lead_contact, announcement)
    assert not permissions.can("message.delete", make_admin(), announcement)
