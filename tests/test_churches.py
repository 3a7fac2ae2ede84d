from app.extensions import db
from app.models import Church
from app.models.enums import ApplicationStatus, ChurchMembershipStatus, UserRole

APPLICATION = {"name": "Grace Fellowship", "address": "1 Elm St", "city": "Springfield", "state": "IL"}


def test_application_and_approval(client, auth, make_user, make_admin):
    applicant, admin = make_user(), make_admin()

    response = client.post("/api/church/apply", json=APPLICATION, headers=auth(applicant))
    assert response.status_code == 201
    church_id = response.json["church"]["id"]
    assert response.json["church"]["application_status"] == "PENDING"

    assert client.post("/api/church/apply", json=APPLICATION, headers=auth(make_user())).status_code == 409

    pending = client.get("/api/admin/applications", headers=auth(admin)).json["applications"]
    assert [c["id"] for c in pending] == [church_id]

    url = f"/api/admin/applications/{church_id}"
    assert client.patch(url, json={"action": "approve"}, headers=auth(applicant)).status_code == 403
    response = client.patch(url, json={"action": "approve"}, headers=auth(admin))
    assert response.status_code == 200
    assert response.json["church"]["application_status"] == "APPROVED"

    db.session.refresh(applicant)
    assert applicant.role == UserRole.CHURCH
    assert applicant.church_id == church_id
    assert applicant.church_membership_status == ChurchMembershipStatus.VERIFIED
    assert applicant.membership_enforcement_exempt is True

    assert client.patch(url, json={"action": "approve"}, headers=auth(admin)).status_code == 400
    assert client.patch(url, json={"action": "reject"}, headers=auth(admin)).status_code == 400

    logs = client.get("/api/admin/activity-logs?category=church", headers=auth(admin)).json
    assert {entry["action"] for entry in logs["activities"]} == {
        "church_application_submitted",
        "church_application_approved",
    }


def test_application_rejection(client, auth, make_user, make_admin):
    applicant, admin = make_user(), make_admin()
    church_id = client.post("/api/church/apply", json=APPLICATION, headers=auth(applicant)).json["church"]["id"]

    response = client.patch(
        f"/api/admin/applications/{church_id}", json={"action": "reject", "notes": "Incomplete"}, headers=auth(admin)
    )
    assert response.status_code == 200
    assert db.session.get(Church, church_id).application_status == ApplicationStatus.REJECTED

    db.session.refresh(applicant)
    assert applicant.role == UserRole.USER
    assert applicant.church_id is None


def test_application_validation(client, auth, make_church, make_user):
    response = client.post("/api/church/apply", json={"name": "Nameless"}, headers=auth(make_user()))
    assert response.status_code == 400
    assert set(response.json["missing_fields"]) == {"address", "city", "state"}

    response = client.post(
        "/api/church/apply", json={**APPLICATION, "latitude": 120}, headers=auth(make_user())
    )
    assert response.status_code == 400

    member = make_user(church=make_church())
    assert client.post("/api/church/apply", json=APPLICATION, headers=auth(member)).status_code == 403


def test_settings_bounds(client, auth, make_church, make_admin):
    church, admin = make_church(), make_admin()
    url = f"/api/admin/churches/{church.id}"

    for value in (0, 11, "many"):
        assert client.patch(url, json={"min_verifications_required": value}, headers=auth(admin)).status_code == 400

    response = client.patch(url, json={"min_verifications_required": 5}, headers=auth(admin))
    assert response.status_code == 200
    db.session.refresh(church)
    assert church.min_verifications_required == 5

    assert client.patch(url, json={"min_verifications_required": 2}, headers=auth(church.lead_contact)).status_code == 403


def test_search_lists_only_approved_churches(client, make_church):
    approved = make_church(name="Hope Chapel")
    make_church(name="Hope Tabernacle", approved=False)
    make_church(name="Calvary")

    response = client.get("/api/churches/search?q=hope")
    assert [c["id"] for c in response.json["churches"]] == [approved.id]

    assert client.get(f"/api/churches/{approved.id}").json["name"] == "Hope Chapel"
    assert client.get("/api/churches/9999").status_code == 404
