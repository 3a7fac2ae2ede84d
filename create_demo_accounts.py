"""
Script to create or update demo accounts: an admin, an approved demo church
with its lead contact, and a few verified members old enough to vouch.
"""

from datetime import timedelta
from app import create_app
from app.models import Church, User
from app.models.enums import ApplicationStatus, ChurchMembershipStatus, UserRole
from app.extensions import db
from app.utils.time import utcnow
from werkzeug.security import generate_password_hash

DEMO_PASSWORD = 'password'


def upsert_user(email, first_name, last_name, **attrs):
    user = User.query.filter_by(email=email).first()
    if user:
        user.password = generate_password_hash(DEMO_PASSWORD)
        print(f"Updated {email}")
    else:
        user = User(
            email=email,
            password=generate_password_hash(DEMO_PASSWORD),
            first_name=first_name,
            last_name=last_name,
        )
        db.session.add(user)
        print(f"Created {email}")
    for key, value in attrs.items():
        setattr(user, key, value)
    db.session.flush()
    return user


def main():
    """Create or update demo accounts with correct credentials."""
    app = create_app()
    with app.app_context():
        now = utcnow()
        upsert_user('admin@example.com', 'Admin', 'User', role=UserRole.ADMIN, membership_enforcement_exempt=True)

        lead = upsert_user('pastor@example.com', 'Grace', 'Lead', role=UserRole.CHURCH, membership_enforcement_exempt=True)
        church = Church.query.filter_by(name='Demo Community Church').first()
        if not church:
            church = Church(
                name='Demo Community Church',
                lead_pastor_name='Grace Lead',
                address='1 Main St',
                city='Springfield',
                state='IL',
                zip_code='62701',
                lead_contact_id=lead.id,
                application_status=ApplicationStatus.APPROVED,
                approved_at=now,
                min_verifications_required=2,
            )
            db.session.add(church)
            db.session.flush()
            print(f"Created church with ID: {church.id}")

        for user in [lead] + [
            upsert_user(f'member{i}@example.com', 'Member', str(i)) for i in range(1, 4)
        ]:
            user.church_id = church.id
            user.church_membership_status = ChurchMembershipStatus.VERIFIED
            user.verified_at = now - timedelta(days=30)

        db.session.commit()
        print("Demo accounts setup complete!")


if __name__ == "__main__":
    main()
