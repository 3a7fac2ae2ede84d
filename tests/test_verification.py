from app.constants import DISABLED_REASON_MEMBERSHIP
from app.extensions import db
from app.models import ChurchVerificationRequest, MemberVerification
from app.models.enums import ChurchMembershipStatus, VerificationAction, VerificationRequestStatus
from app.repositories import VerificationRepository


def join(client, auth, user, church):
    return client.post("/api/churches/join-request", json={"church_id": church.id}, headers=auth(user))


def test_quorum_of_two_promotes_requester(client, auth, make_church, make_user):
    church = make_church(min_verifications=2)
    first, second, third = (make_user(church=church) for _ in range(3))
    newcomer = make_user(created_days_ago=1)

    response = join(client, auth, newcomer, church)
    assert response.status_code == 201
    assert response.json["request"]["status"] == "PENDING"
    assert newcomer.church_membership_status == ChurchMembershipStatus.REQUESTED

    vouch_url = f"/api/churches/{church.id}/vouch/{newcomer.id}"
    response = client.post(vouch_url, headers=auth(first))
    assert response.status_code == 200
    assert response.json["user_approved"] is False
    assert response.json["progress"]["current_verifications"] == 1
    assert response.json["progress"]["required_verifications"] == 2
    assert response.json["progress"]["remaining"] == 1

    response = client.post(vouch_url, headers=auth(first))
    assert response.status_code == 409
    assert MemberVerification.query.count() == 1

    response = client.post(vouch_url, headers=auth(second))
    assert response.status_code == 200
    assert response.json["user_approved"] is True
    assert response.json["progress"]["verifier_names"] == [first.display_name, second.display_name]

    db.session.refresh(newcomer)
    assert newcomer.church_membership_status == ChurchMembershipStatus.VERIFIED
    assert newcomer.church_id == church.id
    assert newcomer.verified_at is not None

    response = client.post(vouch_url, headers=auth(third))
    assert response.status_code == 400


def test_new_members_cannot_vouch_yet(client, auth, make_church, make_user):
    church = make_church(min_verifications=2)
    recent = make_user(church=church, verified_days_ago=2)
    newcomer = make_user()
    join(client, auth, newcomer, church)

    response = client.post(f"/api/churches/{church.id}/vouch/{newcomer.id}", headers=auth(recent))
    assert response.status_code == 403
    assert "7 days" in response.json["error"]


def test_members_of_other_churches_cannot_vouch(client, auth, make_church, make_user):
    church, other = make_church(), make_church()
    outsider = make_user(church=other)
    newcomer = make_user()
    join(client, auth, newcomer, church)

    response = client.post(f"/api/churches/{church.id}/vouch/{newcomer.id}", headers=auth(outsider))
    assert response.status_code == 403


def test_queue_is_oldest_first_and_skips_handled_requests(client, auth, make_church, make_user):
    church = make_church(min_verifications=3)
    member = make_user(church=church)
    early, late = make_user(), make_user()
    join(client, auth, early, church)
    join(client, auth, late, church)

    response = client.get("/api/churches/member-requests", headers=auth(member))
    assert response.status_code == 200
    assert [entry["user_id"] for entry in response.json["requests"]] == [early.id, late.id]

    client.post(f"/api/churches/{church.id}/vouch/{early.id}", headers=auth(member))
    response = client.get("/api/churches/member-requests", headers=auth(member))
    assert [entry["user_id"] for entry in response.json["requests"]] == [late.id]


def test_lead_contact_approves_directly(client, auth, make_church, make_user):
    church = make_church(min_verifications=5)
    newcomer = make_user()
    request_id = join(client, auth, newcomer, church).json["request"]["id"]

    response = client.post(
        "/api/churches/verify-member",
        json={"request_id": request_id, "action": "approve"},
        headers=auth(church.lead_contact),
    )
    assert response.status_code == 200
    assert response.json["user_approved"] is True
    db.session.refresh(newcomer)
    assert newcomer.church_membership_status == ChurchMembershipStatus.VERIFIED


def test_rejection_closes_request(client, auth, make_church, make_user):
    church = make_church()
    member = make_user(church=church)
    newcomer = make_user()
    request_id = join(client, auth, newcomer, church).json["request"]["id"]

    response = client.post(
        "/api/churches/verify-member",
        json={"request_id": request_id, "action": "reject", "notes": "Unknown to us"},
        headers=auth(member),
    )
    assert response.status_code == 200
    assert response.json["user_approved"] is False

    verification_request = db.session.get(ChurchVerificationRequest, request_id)
    db.session.refresh(verification_request)
    assert verification_request.status == VerificationRequestStatus.REJECTED
    db.session.refresh(newcomer)
    assert newcomer.church_membership_status == ChurchMembershipStatus.REJECTED
    assert newcomer.church_id is None


def test_church_without_verification_admits_immediately(client, auth, make_church, make_user):
    church = make_church(requires_verification=False)
    newcomer = make_user()

    response = join(client, auth, newcomer, church)
    assert response.status_code == 201
    assert response.json["request"]["status"] == "APPROVED"
    db.session.refresh(newcomer)
    assert newcomer.is_verified_member


def test_join_request_guards(client, auth, make_church, make_user):
    church, other, pending = make_church(), make_church(), make_church(approved=False)
    member = make_user(church=church)
    newcomer = make_user()

    assert join(client, auth, member, other).status_code == 400
    assert join(client, auth, newcomer, pending).status_code == 404
    assert join(client, auth, newcomer, church).status_code == 201
    assert join(client, auth, newcomer, church).status_code == 409
    assert join(client, auth, newcomer, other).status_code == 409


def test_progress_visible_to_requester(client, auth, make_church, make_user):
    church = make_church(min_verifications=2)
    member = make_user(church=church)
    newcomer = make_user()
    join(client, auth, newcomer, church)
    client.post(f"/api/churches/{church.id}/vouch/{newcomer.id}", headers=auth(member))

    response = client.get(f"/api/churches/{church.id}/progress/{newcomer.id}", headers=auth(newcomer))
    assert response.status_code == 200
    assert response.json["status"] == "PENDING"
    assert response.json["current_verifications"] == 1
    assert response.json["remaining"] == 1

    stranger = make_user()
    response = client.get(f"/api/churches/{church.id}/progress/{newcomer.id}", headers=auth(stranger))
    assert response.status_code == 403


def test_approval_reactivates_disabled_account(client, auth, make_church, make_user):
    church = make_church(min_verifications=1)
    member = make_user(church=church)
    newcomer = make_user(is_active=False, disabled_reason=DISABLED_REASON_MEMBERSHIP)
    join(client, auth, newcomer, church)

    response = client.post(f"/api/churches/{church.id}/vouch/{newcomer.id}", headers=auth(member))
    assert response.json["user_approved"] is True
    db.session.refresh(newcomer)
    assert newcomer.is_active is True
    assert newcomer.disabled_reason is None


def test_member_can_leave_and_rejoin(client, auth, make_church, make_user):
    church = make_church(requires_verification=False)
    newcomer = make_user()
    join(client, auth, newcomer, church)

    response = client.post("/api/churches/leave", headers=auth(newcomer))
    assert response.status_code == 200
    assert response.json["user"]["church_membership_status"] == "NONE"
    assert join(client, auth, newcomer, church).status_code == 201

    response = client.post("/api/churches/leave", headers=auth(church.lead_contact))
    assert response.status_code == 400


def test_church_status_reports_pending_request(client, auth, make_church, make_user):
    church = make_church(min_verifications=2)
    newcomer = make_user()
    join(client, auth, newcomer, church)

    response = client.get("/api/user/church-status", headers=auth(newcomer))
    assert response.status_code == 200
    assert response.json["church_membership_status"] == "REQUESTED"
    assert response.json["pending_request"]["church_name"] == church.name
    assert response.json["pending_request"]["progress"]["remaining"] == 2


def test_vouch_counts_votes_committed_before_the_lock(client, auth, make_church, make_user, monkeypatch):
    church = make_church(min_verifications=2)
    first, second = make_user(church=church), make_user(church=church)
    newcomer = make_user()
    join(client, auth, newcomer, church)

    lock_request = VerificationRepository.lock_request

    def peer_vouches_first(request_id):
        db.session.add(
            MemberVerification(request_id=request_id, verifier_id=first.id, action=VerificationAction.APPROVED)
        )
        db.session.flush()
        return lock_request(request_id)

    monkeypatch.setattr(VerificationRepository, "lock_request", staticmethod(peer_vouches_first))

    response = client.post(f"/api/churches/{church.id}/vouch/{newcomer.id}", headers=auth(second))
    assert response.status_code == 200
    assert response.json["progress"]["current_verifications"] == 2
    assert response.json["user_approved"] is True


def test_vouch_rechecks_status_under_the_lock(client, auth, make_church, make_user, monkeypatch):
    church = make_church(min_verifications=2)
    member = make_user(church=church)
    newcomer = make_user()
    join(client, auth, newcomer, church)

    lock_request = VerificationRepository.lock_request

    def rejected_meanwhile(request_id):
        db.session.query(ChurchVerificationRequest).filter_by(id=request_id).update(
            {ChurchVerificationRequest.status: VerificationRequestStatus.REJECTED}, synchronize_session=False
        )
        return lock_request(request_id)

    monkeypatch.setattr(VerificationRepository, "lock_request", staticmethod(rejected_meanwhile))

    response = client.post(f"/api/churches/{church.id}/vouch/{newcomer.id}", headers=auth(member))
    assert response.status_code == 400
    assert MemberVerification.query.filter_by(verifier_id=member.id).count() == 0
