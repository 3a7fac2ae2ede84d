"""
Test configuration and fixtures.

Provides:
- An application bound to an in-memory SQLite database, recreated per test
- Factories for users, approved churches with a lead contact, items and messages
- JWT headers for authenticated requests
"""
import itertools
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from app import create_app
from app.extensions import db as _db
from app.models import Church, Item, Message, User
from app.models.enums import (
    ApplicationStatus,
    ChurchMembershipStatus,
    ItemStatus,
    MessageStatus,
    MessageType,
    ModerationStatus,
    UserRole,
)
from app.utils.time import utcnow

PASSWORD = "password123"
PASSWORD_HASH = generate_password_hash(PASSWORD)

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
    "RATELIMIT_ENABLED": False,
    "CRON_SECRET": "test-cron-secret",
}


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def limited_client():
    """A client for an application with rate limiting switched on."""
    app = create_app({**TEST_CONFIG, "RATELIMIT_ENABLED": True})
    with app.app_context():
        _db.create_all()
        yield app.test_client()
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def auth(app):
    def _auth(user):
        return {"Authorization": f"Bearer {create_access_token(identity=str(user.id))}"}

    return _auth


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {TEST_CONFIG['CRON_SECRET']}"}


_sequence = itertools.count(1)


@pytest.fixture
def make_user(app):
    """Create a user. Passing ``church`` makes them a verified member of it."""

    def _make_user(church=None, verified_days_ago=30, created_days_ago=30, role=UserRole.USER, **attrs):
        n = next(_sequence)
        now = utcnow()
        values = {
            "email": f"user{n}@example.com",
            "password": PASSWORD_HASH,
            "first_name": "User",
            "last_name": str(n),
            "role": role,
            "created_at": now - timedelta(days=created_days_ago),
            "church_membership_status": ChurchMembershipStatus.NONE,
        }
        if church is not None:
            values.update(
                church_id=church.id,
                church_membership_status=ChurchMembershipStatus.VERIFIED,
                verified_at=now - timedelta(days=verified_days_ago),
            )
        values.update(attrs)
        user = User(**values)
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_admin(make_user):
    def _make_admin():
        return make_user(role=UserRole.ADMIN, membership_enforcement_exempt=True)

    return _make_admin


@pytest.fixture
def make_church(app, make_user):
    """Create a church and its lead contact. The lead is a verified member."""

    def _make_church(approved=True, min_verifications=3, requires_verification=True, **attrs):
        lead = make_user(role=UserRole.CHURCH, membership_enforcement_exempt=True)
        n = next(_sequence)
        values = {
            "name": f"Church {n}",
            "address": f"{n} Main St",
            "city": "Springfield",
            "state": "IL",
            "lead_contact_id": lead.id,
            "application_status": ApplicationStatus.APPROVED if approved else ApplicationStatus.PENDING,
            "approved_at": utcnow() if approved else None,
            "min_verifications_required": min_verifications,
            "requires_verification": requires_verification,
        }
        values.update(attrs)
        church = Church(**values)
        _db.session.add(church)
        _db.session.flush()
        if approved:
            lead.church_id = church.id
            lead.church_membership_status = ChurchMembershipStatus.VERIFIED
            lead.verified_at = utcnow() - timedelta(days=30)
        _db.session.commit()
        return church

    return _make_church


@pytest.fixture
def make_item(app):
    def _make_item(church, title="Folding chairs", moderation_status=ModerationStatus.APPROVED, **attrs):
        values = {
            "church_id": church.id,
            "posted_by_id": church.lead_contact_id,
            "title": title,
            "status": ItemStatus.AVAILABLE,
            "moderation_status": moderation_status,
            "offer_to_members": False,
        }
        values.update(attrs)
        item = Item(**values)
        _db.session.add(item)
        _db.session.commit()
        return item

    return _make_item


@pytest.fixture
def make_message(app):
    def _make_message(church, author=None, status=MessageStatus.DRAFT, **attrs):
        values = {
            "church_id": church.id,
            "created_by_id": (author or church.lead_contact).id,
            "content": "Good morning, church!",
            "message_type": MessageType.DAILY_MESSAGE,
            "status": status,
            "moderation_status": ModerationStatus.AUTO_APPROVED,
            "is_anonymous": False,
        }
        values.update(attrs)
        message = Message(**values)
        _db.session.add(message)
        _db.session.commit()
        return message

    return _make_message
