from datetime import timedelta

from app.extensions import db
from app.models import FCMToken, Ping
from app.models.enums import PingStatus
from app.utils.time import utcnow


def send(client, auth, sender, receiver, **extra):
    return client.post("/api/ping/send", json={"receiver_id": receiver.id, **extra}, headers=auth(sender))


def status(client, auth, user, target):
    return client.get(f"/api/ping/status?target_user_id={target.id}", headers=auth(user)).json


def test_ping_accept_shares_contact(client, auth, make_church, make_user):
    church = make_church()
    alice, bob = make_user(church=church, phone="555-0100"), make_user(church=church, phone="555-0199")

    response = send(client, auth, alice, bob, message="Coffee after service?")
    assert response.status_code == 201
    ping_id = response.json["ping"]["id"]

    assert status(client, auth, alice, bob)["relationship_status"] == "pending_sent"
    received = status(client, auth, bob, alice)
    assert received["relationship_status"] == "pending_received"
    assert received["can_send_ping"] is False

    assert client.get(f"/api/users/{bob.id}/contact", headers=auth(alice)).status_code == 403
    assert send(client, auth, alice, bob).status_code == 409

    response = client.post(
        "/api/ping/respond", json={"ping_id": ping_id, "response": "ACCEPTED"}, headers=auth(alice)
    )
    assert response.status_code == 403

    response = client.post("/api/ping/respond", json={"ping_id": ping_id, "response": "ACCEPTED"}, headers=auth(bob))
    assert response.status_code == 200
    assert response.json["ping"]["status"] == "ACCEPTED"

    for viewer, target in ((alice, bob), (bob, alice)):
        info = status(client, auth, viewer, target)
        assert info["relationship_status"] == "connected"
        assert info["can_view_contact"] is True

    response = client.get(f"/api/users/{bob.id}/contact", headers=auth(alice))
    assert response.status_code == 200
    assert response.json["phone"] == "555-0199"
    response = client.get(f"/api/users/{alice.id}/contact", headers=auth(bob))
    assert response.json["email"] == alice.email

    response = client.post("/api/ping/respond", json={"ping_id": ping_id, "response": "REJECTED"}, headers=auth(bob))
    assert response.status_code == 400


def test_ping_targets_must_share_a_church(client, auth, make_church, make_user):
    church, other = make_church(), make_church()
    member = make_user(church=church)

    assert send(client, auth, member, make_user(church=other)).status_code == 404
    assert send(client, auth, member, make_user()).status_code == 404
    assert send(client, auth, member, member).status_code == 400
    assert send(client, auth, make_user(), member).status_code == 403


def test_daily_ping_limit(client, auth, make_church, make_user):
    church = make_church()
    sender = make_user(church=church)
    members = [make_user(church=church) for _ in range(11)]

    for member in members[:10]:
        assert send(client, auth, sender, member).status_code == 201

    response = send(client, auth, sender, members[10])
    assert response.status_code == 429
    assert Ping.query.filter_by(sender_id=sender.id).count() == 10


def test_expired_ping_can_be_sent_again(client, auth, make_church, make_user):
    church = make_church()
    sender, receiver = make_user(church=church), make_user(church=church)
    now = utcnow()
    old = Ping(
        sender_id=sender.id,
        receiver_id=receiver.id,
        status=PingStatus.PENDING,
        created_at=now - timedelta(days=9),
        expires_at=now - timedelta(days=2),
    )
    db.session.add(old)
    db.session.commit()

    assert status(client, auth, sender, receiver)["can_send_ping"] is True

    response = send(client, auth, sender, receiver)
    assert response.status_code == 201
    assert response.json["ping"]["id"] == old.id
    assert response.json["ping"]["status"] == "PENDING"


def test_expired_ping_cannot_be_answered(client, auth, make_church, make_user):
    church = make_church()
    sender, receiver = make_user(church=church), make_user(church=church)
    now = utcnow()
    old = Ping(
        sender_id=sender.id,
        receiver_id=receiver.id,
        status=PingStatus.PENDING,
        created_at=now - timedelta(days=8),
        expires_at=now - timedelta(days=1),
    )
    db.session.add(old)
    db.session.commit()

    response = client.post(
        "/api/ping/respond", json={"ping_id": old.id, "response": "ACCEPTED"}, headers=auth(receiver)
    )
    assert response.status_code == 400
    db.session.refresh(old)
    assert old.status == PingStatus.EXPIRED


def test_pending_and_counts(client, auth, make_church, make_user):
    church = make_church()
    receiver = make_user(church=church)
    senders = [make_user(church=church) for _ in range(2)]
    for sender in senders:
        send(client, auth, sender, receiver)

    pending = client.get("/api/ping/pending", headers=auth(receiver)).json
    assert {p["sender_id"] for p in pending["received"]} == {s.id for s in senders}
    assert pending["sent"] == []

    counts = client.get("/api/ping/count", headers=auth(receiver)).json
    assert counts["pending"] == 2


def test_device_registration(client, auth, make_user):
    first, second = make_user(), make_user()
    assert client.post("/api/fcm/register", json={"token": "device-1"}, headers=auth(first)).status_code == 200
    assert client.post("/api/fcm/register", json={"token": "device-1"}, headers=auth(second)).status_code == 200

    token = FCMToken.query.filter_by(token="device-1").one()
    assert token.user_id == second.id
    assert client.post("/api/fcm/register", json={}, headers=auth(first)).status_code == 400
