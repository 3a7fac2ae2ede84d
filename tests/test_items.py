from app.extensions import db
from app.models import Item, MemberItemRequest
from app.models.enums import ItemStatus, MemberRequestStatus, ModerationStatus


def assert_claim_invariant(item):
    db.session.refresh(item)
    assert (item.claimer_id is not None) == (item.status == ItemStatus.CLAIMED)


def test_claim_unclaim_complete_scenario(client, auth, make_church, make_item):
    church_a, church_b, church_c = make_church(), make_church(), make_church()
    lead_a, lead_b, lead_c = church_a.lead_contact, church_b.lead_contact, church_c.lead_contact
    item = make_item(church_a)
    assert_claim_invariant(item)

    response = client.post(f"/api/items/{item.id}/claim", headers=auth(lead_b))
    assert response.status_code == 200
    assert response.json["item"]["status"] == "CLAIMED"
    assert response.json["item"]["claimer_id"] == lead_b.id
    assert_claim_invariant(item)

    response = client.post(f"/api/items/{item.id}/claim", headers=auth(lead_c))
    assert response.status_code == 400
    assert response.json["error"] == "Item is not available"

    response = client.post(f"/api/items/{item.id}/unclaim", headers=auth(lead_b))
    assert response.status_code == 200
    assert response.json["item"]["status"] == "AVAILABLE"
    assert response.json["item"]["claimer_id"] is None
    assert_claim_invariant(item)

    response = client.post(f"/api/items/{item.id}/claim", headers=auth(lead_c))
    assert response.status_code == 200
    assert_claim_invariant(item)

    response = client.post(f"/api/items/{item.id}/complete", headers=auth(lead_a))
    assert response.status_code == 200
    body = response.json["item"]
    assert body["status"] == "COMPLETED"
    assert body["claimer_id"] is None
    assert body["completed_claimer_id"] == lead_c.id
    assert_claim_invariant(item)

    response = client.post(f"/api/items/{item.id}/unclaim", headers=auth(lead_c))
    assert response.status_code == 400


def test_church_cannot_claim_its_own_item(client, auth, make_church, make_item):
    church = make_church()
    item = make_item(church)

    response = client.post(f"/api/items/{item.id}/claim", headers=auth(church.lead_contact))
    assert response.status_code == 400
    assert item.status == ItemStatus.AVAILABLE


def test_item_must_be_approved_before_claiming(client, auth, make_church, make_item, make_admin):
    church_a, church_b = make_church(), make_church()
    item = make_item(church_a, moderation_status=ModerationStatus.PENDING)

    response = client.post(f"/api/items/{item.id}/claim", headers=auth(church_b.lead_contact))
    assert response.status_code == 400

    admin = make_admin()
    response = client.patch(f"/api/admin/items/{item.id}", json={"status": "APPROVED"}, headers=auth(admin))
    assert response.status_code == 200
    assert response.json["item"]["moderation_status"] == "APPROVED"

    response = client.post(f"/api/items/{item.id}/claim", headers=auth(church_b.lead_contact))
    assert response.status_code == 200


def test_posted_items_start_pending_moderation(client, auth, make_church):
    church = make_church()

    response = client.post(
        "/api/church/items",
        json={"title": "Box of hymnals", "category": "Books"},
        headers=auth(church.lead_contact),
    )
    assert response.status_code == 201
    assert response.json["item"]["moderation_status"] == "PENDING"
    assert response.json["item"]["status"] == "AVAILABLE"


def test_unapproved_church_cannot_post_items(client, auth, make_church):
    church = make_church(approved=False)

    response = client.post("/api/church/items", json={"title": "Pews"}, headers=auth(church.lead_contact))
    assert response.status_code == 403


def test_only_owning_church_completes(client, auth, make_church, make_item):
    church_a, church_b = make_church(), make_church()
    item = make_item(church_a)

    response = client.post(f"/api/items/{item.id}/complete", headers=auth(church_a.lead_contact))
    assert response.status_code == 400
    assert response.json["error"] == "Item must be claimed before it can be completed"

    client.post(f"/api/items/{item.id}/claim", headers=auth(church_b.lead_contact))
    response = client.post(f"/api/items/{item.id}/complete", headers=auth(church_b.lead_contact))
    assert response.status_code == 403


def test_claimed_item_cannot_be_edited_or_deleted_by_owner(client, auth, make_church, make_item):
    church_a, church_b = make_church(), make_church()
    item = make_item(church_a)
    client.post(f"/api/items/{item.id}/claim", headers=auth(church_b.lead_contact))

    response = client.put(f"/api/church/items/{item.id}", json={"title": "New"}, headers=auth(church_a.lead_contact))
    assert response.status_code == 400
    response = client.delete(f"/api/church/items/{item.id}", headers=auth(church_a.lead_contact))
    assert response.status_code == 400


def _offered_item(make_item, owner, claimer_church, title="Crib"):
    return make_item(
        owner,
        title=title,
        status=ItemStatus.CLAIMED,
        claimer_id=claimer_church.lead_contact_id,
        offer_to_members=True,
        member_description="Pick up after Sunday service",
    )


def test_member_request_and_receive_completes_item(client, auth, make_church, make_item, make_user):
    church_a, church_b = make_church(), make_church()
    item = make_item(church_a)
    lead_b = church_b.lead_contact
    client.post(f"/api/items/{item.id}/claim", headers=auth(lead_b))

    response = client.patch(
        f"/api/church/items/{item.id}/member-settings",
        json={"offer_to_members": True, "member_description": "Pick up Sunday"},
        headers=auth(lead_b),
    )
    assert response.status_code == 200
    assert response.json["item"]["offer_to_members"] is True

    member, other_member = make_user(church=church_b), make_user(church=church_b)
    response = client.get("/api/user/available-items", headers=auth(member))
    assert [entry["id"] for entry in response.json["items"]] == [item.id]

    response = client.post(f"/api/user/items/{item.id}/request", headers=auth(member))
    assert response.status_code == 201
    request_id = response.json["request"]["id"]

    response = client.post(f"/api/user/items/{item.id}/request", headers=auth(other_member))
    assert response.status_code == 409

    response = client.post(f"/api/user/requests/{request_id}/received", headers=auth(member))
    assert response.status_code == 200
    assert response.json["request"]["status"] == "RECEIVED"

    db.session.refresh(item)
    assert item.status == ItemStatus.COMPLETED
    assert item.claimer_id is None
    assert item.completed_claimer_id == lead_b.id


def test_member_request_cap(client, auth, make_church, make_item, make_user):
    church_a, church_b = make_church(), make_church()
    items = [_offered_item(make_item, church_a, church_b, title=f"Item {n}") for n in range(4)]
    member = make_user(church=church_b)

    for item in items[:3]:
        response = client.post(f"/api/user/items/{item.id}/request", headers=auth(member))
        assert response.status_code == 201

    response = client.post(f"/api/user/items/{items[3].id}/request", headers=auth(member))
    assert response.status_code == 400
    assert MemberItemRequest.query.filter_by(user_id=member.id).count() == 3


def test_members_of_other_churches_cannot_request(client, auth, make_church, make_item, make_user):
    church_a, church_b = make_church(), make_church()
    item = _offered_item(make_item, church_a, church_b)
    outsider = make_user(church=church_a)

    response = client.post(f"/api/user/items/{item.id}/request", headers=auth(outsider))
    assert response.status_code == 404


def test_unclaim_cancels_open_member_requests(client, auth, make_church, make_item, make_user):
    church_a, church_b = make_church(), make_church()
    item = _offered_item(make_item, church_a, church_b)
    member = make_user(church=church_b)
    response = client.post(f"/api/user/items/{item.id}/request", headers=auth(member))
    request_id = response.json["request"]["id"]

    response = client.post(f"/api/items/{item.id}/unclaim", headers=auth(church_b.lead_contact))
    assert response.status_code == 200
    assert response.json["item"]["offer_to_members"] is False
    assert response.json["item"]["member_description"] is None
    assert response.json["item"]["status"] == "AVAILABLE"

    member_request = db.session.get(MemberItemRequest, request_id)
    db.session.refresh(member_request)
    assert member_request.status == MemberRequestStatus.CANCELLED


def test_disabling_member_offer_with_active_requests_warns(client, auth, make_church, make_item, make_user):
    church_a, church_b = make_church(), make_church()
    item = _offered_item(make_item, church_a, church_b)
    member = make_user(church=church_b)
    client.post(f"/api/user/items/{item.id}/request", headers=auth(member))

    response = client.patch(
        f"/api/church/items/{item.id}/member-settings",
        json={"offer_to_members": False},
        headers=auth(church_b.lead_contact),
    )
    assert response.status_code == 200
    assert response.json["warning"]["active_requests"] == 1
    assert response.json["warning"]["requesters"][0]["email"] == member.email


def test_cancel_only_requested(client, auth, make_church, make_item, make_user):
    church_a, church_b = make_church(), make_church()
    item = _offered_item(make_item, church_a, church_b)
    member = make_user(church=church_b)
    response = client.post(f"/api/user/items/{item.id}/request", headers=auth(member))
    request_id = response.json["request"]["id"]

    response = client.post(f"/api/user/requests/{request_id}/cancel", headers=auth(make_user(church=church_b)))
    assert response.status_code == 403

    response = client.post(f"/api/user/requests/{request_id}/cancel", headers=auth(member))
    assert response.status_code == 200
    assert response.json["request"]["status"] == "CANCELLED"

    response = client.post(f"/api/user/requests/{request_id}/cancel", headers=auth(member))
    assert response.status_code == 400


def test_admin_can_delete_claimed_item(client, auth, make_church, make_item, make_admin):
    church_a, church_b = make_church(), make_church()
    item = make_item(church_a)
    item_id = item.id
    client.post(f"/api/items/{item_id}/claim", headers=auth(church_b.lead_contact))

    response = client.delete(f"/api/admin/items/{item_id}", headers=auth(make_admin()))
    assert response.status_code == 200
    assert db.session.get(Item, item_id) is None
