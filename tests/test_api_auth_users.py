from mktdash.models.db import UserAccount
from mktdash.models.db.enums import UserRole


def _register(client, **overrides):
    payload = {
        "name": "Nguyen Van A",
        "username": "nguyenvana",
        "email": "vana@company.vn",
        "password": "secret123",
        "confirm_password": "secret123",
        "team": "T1",
    }
    payload.update(overrides)
    return client.post("/api/v1/auth/register", json=payload)


def test_register_and_login(client):
    r = _register(client)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["role"] == "user"
    assert body["api_key"]

    r = client.post("/api/v1/auth/login", json={"username": "nguyenvana", "password": "secret123"})
    assert r.status_code == 200
    assert r.json()["api_key"] == body["api_key"]

    r = client.post("/api/v1/auth/login", json={"username": "nguyenvana", "password": "wrong-pass"})
    assert r.status_code == 401


def test_register_validation(client):
    assert _register(client, username="abc").status_code == 422
    assert _register(client, password="12345", confirm_password="12345").status_code == 422
    assert _register(client, confirm_password="different").status_code == 422
    assert _register(client, email="not-an-email").status_code == 422


def test_register_duplicate_username_and_email(client):
    assert _register(client).status_code == 201
    assert _register(client, email="other@company.vn").status_code == 409
    assert _register(client, username="someoneelse").status_code == 409


def test_register_links_roster_entry(client, roster_factory):
    roster_factory(name="Nguyen Van A", email="VanA@company.vn", team="T7", branch="HN", position="Nhân viên")
    body = _register(client, team="").json()
    assert body["team"] == "T7"
    assert body["branch"] == "HN"


def test_me_requires_auth(client):
    assert client.get("/api/v1/users/me").status_code in (401, 403)
    r = client.get("/api/v1/users/me", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_me_is_enriched_from_roster(client, user_factory, auth_headers, roster_factory):
    user = user_factory(team="T1", email="enrich@acme.io")
    entry = roster_factory(name="E", email="ENRICH@acme.io", team="T3", employee_code="NV001", department="MKT")
    r = client.get("/api/v1/users/me", headers=auth_headers(user))
    assert r.status_code == 200
    body = r.json()
    assert body["roster_id"] == entry.id
    assert body["employee_code"] == "NV001"
    assert body["team"] == "T3"
    assert body["department"] == "MKT"


def test_update_me_changes_display_name_only(client, user_factory, auth_headers, db_session):
    user = user_factory(email="first@acme.io", team="T1")
    r = client.patch("/api/v1/users/me", json={"display_name": "  New Name "}, headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json()["display_name"] == "New Name"
    assert r.json()["team"] == "T1"

    for change in ({"team": "T5"}, {"email": "other@acme.io"}, {"role": "admin"}):
        r = client.patch("/api/v1/users/me", json=change, headers=auth_headers(user))
        assert r.status_code == 422, change

    db_session.expire_all()
    stored = db_session.get(UserAccount, user.id)
    assert (stored.email, stored.team, stored.role) == ("first@acme.io", "T1", UserRole.USER)


def test_admin_updates_account(client, user_factory, auth_headers, db_session):
    admin = user_factory(role=UserRole.ADMIN)
    user = user_factory(email="first@acme.io", team="T1")
    r = client.patch(
        f"/api/v1/users/{user.id}",
        json={"team": " T2 ", "role": "leader", "email": "moved@acme.io"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert (body["team"], body["role"], body["email"]) == ("T2", "leader", "moved@acme.io")

    db_session.expire_all()
    assert db_session.get(UserAccount, user.id).role == UserRole.LEADER


def test_admin_update_rejects_taken_email(client, user_factory, auth_headers):
    admin = user_factory(role=UserRole.ADMIN)
    user = user_factory(email="first@acme.io")
    other = user_factory(email="second@acme.io")
    r = client.patch(f"/api/v1/users/{user.id}", json={"email": other.email}, headers=auth_headers(admin))
    assert r.status_code == 409
    assert client.patch("/api/v1/users/999999", json={"team": "T1"}, headers=auth_headers(admin)).status_code == 404


def test_account_update_is_admin_only(client, user_factory, auth_headers):
    leader = user_factory(role=UserRole.LEADER, team="T1")
    member = user_factory(team="T1")
    r = client.patch(f"/api/v1/users/{member.id}", json={"team": "T2"}, headers=auth_headers(leader))
    assert r.status_code == 403
    r = client.patch(f"/api/v1/users/{leader.id}", json={"role": "admin"}, headers=auth_headers(leader))
    assert r.status_code == 403


def test_list_users_admin_only(client, user_factory, auth_headers):
    admin = user_factory(role=UserRole.ADMIN)
    leader = user_factory(role=UserRole.LEADER, team="T2")
    assert client.get("/api/v1/users/", headers=auth_headers(leader)).status_code == 403
    r = client.get("/api/v1/users/", params={"role": "leader"}, headers=auth_headers(admin))
    assert r.status_code == 200
    assert [u["id"] for u in r.json()] == [leader.id]


def test_provision_endpoint(client, user_factory, auth_headers, roster_factory):
    admin = user_factory(role=UserRole.ADMIN)
    roster_factory(name="Lead", email="lead.x@acme.io", position="Leader")
    roster_factory(name="Nobody", email="")
    r = client.post("/api/v1/users/provision", headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["created"] == 1
    assert body["skipped"] == 1
    assert body["role_stats"]["leader"] == 1

    r = client.post("/api/v1/auth/login", json={"username": "lead.x", "password": "123456"})
    assert r.status_code == 200
    assert r.json()["role"] == "leader"

    user = user_factory()
    assert client.post("/api/v1/users/provision", headers=auth_headers(user)).status_code == 403
