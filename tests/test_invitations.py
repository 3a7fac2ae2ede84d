from datetime import timedelta

from app.extensions import db
from app.models import Church, ChurchInvitation, InvitationAnalytics, User
from app.models.enums import ApplicationStatus, InvitationStatus
from app.services import lifecycle
from app.utils.time import as_utc, utcnow


def invite(client, auth, user, email="pastor@newchurch.org", **payload):
    payload.setdefault("church_name", "New Life Fellowship")
    return client.post("/api/church-invitations", json={"church_email": email, **payload}, headers=auth(user))


def backdate(invitation_id, days):
    invitation = db.session.get(ChurchInvitation, invitation_id)
    created_at = utcnow() - timedelta(days=days)
    invitation.created_at = created_at
    invitation.last_sent_at = created_at
    invitation.expires_at = created_at + timedelta(days=7)
    db.session.commit()
    return invitation


def test_invitation_expires_lazily_and_cannot_be_resent(client, auth, cron_headers, make_user):
    inviter = make_user()
    response = invite(client, auth, inviter)
    assert response.status_code == 201
    invitation_id = response.json["invitation_id"]

    backdate(invitation_id, days=8)

    response = client.get(f"/api/church-invitations/{invitation_id}", headers=auth(inviter))
    assert response.status_code == 200
    assert response.json["status"] == "EXPIRED"

    response = client.post(f"/api/church-invitations/{invitation_id}/resend", headers=auth(inviter))
    assert response.status_code == 400

    # The sweep finds nothing left to expire
    response = client.post("/api/cron/expire-church-invitations", headers=cron_headers)
    assert response.json["count"] == 0

    assert invite(client, auth, inviter).status_code == 201


def test_pending_or_claimed_email_cannot_be_invited_again(client, auth, make_user):
    inviter = make_user()
    invite(client, auth, inviter, email="Office@Grace.org")

    response = invite(client, auth, make_user(), email="office@grace.org")
    assert response.status_code == 409

    invitation = ChurchInvitation.query.one()
    assert invitation.church_email == "office@grace.org"
    invitation.status = InvitationStatus.CLAIMED
    db.session.commit()

    assert invite(client, auth, inviter, email="office@grace.org").status_code == 409


def test_invalid_email_is_rejected(client, auth, make_user):
    assert invite(client, auth, make_user(), email="not-an-email").status_code == 400
    assert invite(client, auth, make_user(), email="").status_code == 400


def test_resend_extends_deadline(client, auth, make_user):
    inviter = make_user()
    invitation_id = invite(client, auth, inviter).json["invitation_id"]
    invitation = backdate(invitation_id, days=3)
    old_deadline = as_utc(invitation.expires_at)

    response = client.post(f"/api/church-invitations/{invitation_id}/resend", headers=auth(inviter))
    assert response.status_code == 200
    assert response.json["invitation"]["status"] == "PENDING"

    db.session.refresh(invitation)
    assert as_utc(invitation.expires_at) > old_deadline + timedelta(days=2)


def test_only_inviter_cancels(client, auth, make_user):
    inviter = make_user()
    invitation_id = invite(client, auth, inviter).json["invitation_id"]

    assert client.post(f"/api/church-invitations/{invitation_id}/cancel", headers=auth(make_user())).status_code == 403

    response = client.post(f"/api/church-invitations/{invitation_id}/cancel", headers=auth(inviter))
    assert response.status_code == 200
    assert response.json["invitation"]["status"] == "CANCELLED"

    assert client.post(f"/api/church-invitations/{invitation_id}/cancel", headers=auth(inviter)).status_code == 400


def test_check_email_reports_latest_status(client, auth, make_user):
    inviter = make_user()
    response = client.get("/api/church-invitations/check?email=office@hope.org", headers=auth(inviter))
    assert response.json["exists"] is False

    invite(client, auth, inviter, email="office@hope.org")
    response = client.get("/api/church-invitations/check?email=OFFICE@hope.org", headers=auth(inviter))
    assert response.json["exists"] is True
    assert response.json["status"] == "PENDING"


def test_church_signup_claims_invitation(client, auth, make_user):
    inviter = make_user()
    invite(client, auth, inviter, email="lead@harvest.org", church_name="Harvest Church")
    token = ChurchInvitation.query.one().token

    response = client.get(f"/api/church-signup/{token}")
    assert response.status_code == 200
    assert response.json["church_name"] == "Harvest Church"

    signup = {
        "email": "lead@harvest.org",
        "password": "harvest-2024",
        "first_name": "Ruth",
        "last_name": "Moab",
        "church_name": "Harvest Church",
        "address": "12 Field Rd",
        "city": "Bethlehem",
        "state": "PA",
    }
    response = client.post(f"/api/church-signup/{token}", json=signup)
    assert response.status_code == 201
    assert response.json["token"]

    invitation = ChurchInvitation.query.one()
    assert invitation.status == InvitationStatus.CLAIMED
    lead = db.session.get(User, response.json["user_id"])
    assert invitation.claimed_by_user_id == lead.id
    assert lead.membership_enforcement_exempt is True
    church = db.session.get(Church, response.json["church_id"])
    assert church.application_status == ApplicationStatus.PENDING
    assert church.lead_contact_id == lead.id

    assert client.get(f"/api/church-signup/{token}").status_code == 410
    assert client.post(f"/api/church-signup/{token}", json=signup).status_code == 410


def test_church_signup_with_unknown_token(client):
    assert client.get("/api/church-signup/nope").status_code == 404


def test_failed_church_signup_leaves_invitation_pending(client, auth, make_user):
    inviter = make_user()
    invite(client, auth, inviter)
    token = ChurchInvitation.query.one().token

    response = client.post(
        f"/api/church-signup/{token}",
        json={"email": "lead@newlife.org", "password": "long-enough", "first_name": "A", "last_name": "B"},
    )
    assert response.status_code == 400
    assert response.json["missing_fields"]
    assert ChurchInvitation.query.one().status == InvitationStatus.PENDING
    assert User.query.filter_by(email="lead@newlife.org").first() is None


def test_church_invites_are_counted(client, auth, make_user, make_admin):
    inviter = make_user()
    invite(client, auth, inviter, email="a@one.org")
    invite(client, auth, inviter, email="b@two.org")

    analytics = InvitationAnalytics.query.filter_by(user_id=inviter.id).one()
    assert analytics.church_invites_sent == 2

    response = client.get("/api/admin/analytics/invitations", headers=auth(make_admin()))
    assert response.status_code == 200
    assert response.json["counts"]["PENDING"] == 2


def test_admin_expires_invitation(client, auth, make_user, make_admin):
    inviter = make_user()
    invitation_id = invite(client, auth, inviter).json["invitation_id"]

    response = client.post(
        f"/api/admin/analytics/invitations/{invitation_id}/expire", headers=auth(make_admin())
    )
    assert response.status_code == 200
    assert response.json["invitation"]["status"] == "EXPIRED"

    response = client.post(f"/api/admin/analytics/invitations/{invitation_id}/expire", headers=auth(inviter))
    assert response.status_code == 403


def test_resend_during_sweep_keeps_invitation_pending(client, auth, make_user):
    inviter = make_user()
    invitation_id = invite(client, auth, inviter).json["invitation_id"]
    backdate(invitation_id, days=6)
    sweep_clock = utcnow() + timedelta(days=2)

    due = lifecycle.church_invitations.due_ids(sweep_clock)
    assert due == [invitation_id]

    assert client.post(f"/api/church-invitations/{invitation_id}/resend", headers=auth(inviter)).status_code == 200

    report = lifecycle.run_sweep(
        "ChurchInvitation", due, lambda entity_id: lifecycle.church_invitations._expire_row(entity_id, sweep_clock)
    )
    assert report["count"] == 0
    assert report["skipped"] == 1

    invitation = db.session.get(ChurchInvitation, invitation_id)
    db.session.refresh(invitation)
    assert invitation.status == InvitationStatus.PENDING
    assert as_utc(invitation.expires_at) > sweep_clock
