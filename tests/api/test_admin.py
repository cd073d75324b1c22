import csv
import io
import os

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]


def test_banned_user_cannot_log_in(client, register, admin_headers):
    user, headers = register("Xavier")

    resp = client.patch(f"/api/admin/users/{user['id']}/ban", headers=admin_headers)
    assert resp.status_code == 200
    # ban is idempotent
    assert client.patch(f"/api/admin/users/{user['id']}/ban", headers=admin_headers).status_code == 200

    login = client.post("/api/auth/login", json={"email": user["email"], "password": "secret123"})
    assert login.status_code == 403
    assert login.json()["detail"] == "Account has been banned"

    # tokens issued before the ban stop working too
    assert client.get("/api/users/profile", headers=headers).status_code == 403

    unban = client.patch(f"/api/admin/users/{user['id']}/unban", headers=admin_headers)
    assert unban.status_code == 200
    login = client.post("/api/auth/login", json={"email": user["email"], "password": "secret123"})
    assert login.status_code == 200


def test_admin_cannot_ban_self_or_missing_user(client, admin_headers):
    me = client.get("/api/auth/me", headers=admin_headers).json()
    assert me["email"] == ADMIN_EMAIL

    resp = client.patch(f"/api/admin/users/{me['id']}/ban", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot ban yourself"

    assert client.patch("/api/admin/users/9999/ban", headers=admin_headers).status_code == 404
    assert client.patch("/api/admin/users/9999/unban", headers=admin_headers).status_code == 404


def test_list_users_hides_passwords(client, register, admin_headers):
    register("Ana")
    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert {u["email"] for u in users} == {"ana@example.com", ADMIN_EMAIL}
    assert all("password_hash" not in u for u in users)


def test_skill_moderation(client, register, admin_headers):
    ana, ana_headers = register("Ana", skills_offered=["Guitar", "spam", "Chess", "spam"], skills_wanted=["spam"])

    skills = client.get("/api/admin/skills", headers=admin_headers).json()
    ana_skills = [(s["type"], s["skill"]) for s in skills if s["user_id"] == ana["id"]]
    assert ana_skills == [
        ("offered", "Guitar"),
        ("offered", "spam"),
        ("offered", "Chess"),
        ("offered", "spam"),
        ("wanted", "spam"),
    ]

    resp = client.request(
        "DELETE",
        f"/api/admin/skills/{ana['id']}",
        json={"skill": "spam", "type": "offered"},
        headers=admin_headers,
    )
    assert resp.status_code == 200

    profile = client.get("/api/users/profile", headers=ana_headers).json()
    assert profile["skills_offered"] == ["Guitar", "Chess"]
    assert profile["skills_wanted"] == ["spam"]

    bad_type = client.request(
        "DELETE",
        f"/api/admin/skills/{ana['id']}",
        json={"skill": "spam", "type": "both"},
        headers=admin_headers,
    )
    assert bad_type.status_code == 400

    missing = client.request(
        "DELETE", "/api/admin/skills/9999", json={"skill": "x", "type": "wanted"}, headers=admin_headers
    )
    assert missing.status_code == 404


def test_broadcast_is_visible_to_users(client, register, admin_headers):
    _, headers = register("Ana")
    first = client.post(
        "/api/admin/messages/broadcast",
        json={"title": "Welcome", "message": "Hello everyone", "type": "info"},
        headers=admin_headers,
    )
    assert first.status_code == 201
    second = client.post(
        "/api/admin/messages/broadcast",
        json={"title": "Downtime", "message": "Back at 10pm", "type": "maintenance"},
        headers=admin_headers,
    ).json()

    messages = client.get("/api/messages", headers=headers).json()
    assert [m["title"] for m in messages] == ["Downtime", "Welcome"]

    unread = client.get("/api/messages", params={"after_id": first.json()["id"]}, headers=headers).json()
    assert [m["id"] for m in unread] == [second["id"]]

    bad = client.post(
        "/api/admin/messages/broadcast",
        json={"title": "Oops", "message": "x", "type": "party"},
        headers=admin_headers,
    )
    assert bad.status_code == 400

    forbidden = client.post(
        "/api/admin/messages/broadcast",
        json={"title": "Hi", "message": "x"},
        headers=headers,
    )
    assert forbidden.status_code == 403


def _make_activity(client, register):
    ana, ana_headers = register("Ana")
    bea, bea_headers = register("Bea")
    ids = []
    for _ in range(3):
        resp = client.post(
            "/api/swaps/send",
            json={"receiver_id": bea["id"], "offered_skill": "Guitar", "requested_skill": "Spanish"},
            headers=ana_headers,
        )
        ids.append(resp.json()["id"])
    client.patch(f"/api/swaps/{ids[0]}/respond", json={"status": "accepted"}, headers=bea_headers)
    client.patch(f"/api/swaps/{ids[0]}/complete", headers=ana_headers)
    client.patch(f"/api/swaps/{ids[1]}/respond", json={"status": "rejected"}, headers=bea_headers)
    for rating in (5, 4):
        client.post(
            "/api/feedback/submit",
            json={"swap_id": ids[0], "reviewee_id": bea["id"], "rating": rating},
            headers=ana_headers,
        )
    return ana, bea


def test_reports(client, register, admin_headers):
    _, bea = _make_activity(client, register)
    client.patch(f"/api/admin/users/{bea['id']}/ban", headers=admin_headers)

    users = client.get("/api/admin/reports/users", headers=admin_headers).json()
    assert users["total_users"] == 3
    assert users["banned_users"] == 1
    assert users["active_users"] == 2
    assert users["admin_users"] == 1
    assert users["rated_users"] == 1
    assert users["average_rating"] == 4.5

    swaps = client.get("/api/admin/reports/swaps", headers=admin_headers).json()
    assert swaps == {
        "total_swaps": 3,
        "pending": 1,
        "accepted": 0,
        "rejected": 1,
        "completed": 1,
        "completion_rate": round(1 / 3, 4),
    }

    feedback = client.get("/api/admin/reports/feedback", headers=admin_headers).json()
    assert feedback["total_feedback"] == 2
    assert feedback["average_rating"] == 4.5
    assert feedback["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}


def test_all_swaps_listing(client, register, admin_headers):
    _make_activity(client, register)
    swaps = client.get("/api/admin/swaps", headers=admin_headers).json()
    assert len(swaps) == 3
    assert {s["sender"]["name"] for s in swaps} == {"Ana"}


def test_csv_download(client, register, admin_headers):
    _make_activity(client, register)

    resp = client.get("/api/admin/reports/download/swaps", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="swaps-report.csv"' in resp.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(resp.text)))
    assert len(rows) == 3
    assert sorted(r["status"] for r in rows) == ["completed", "pending", "rejected"]

    users = list(csv.DictReader(io.StringIO(
        client.get("/api/admin/reports/download/users", headers=admin_headers).text
    )))
    assert "password_hash" not in users[0]
    assert len(users) == 3

    feedback = list(csv.DictReader(io.StringIO(
        client.get("/api/admin/reports/download/feedback", headers=admin_headers).text
    )))
    assert [r["rating"] for r in feedback] == ["5", "4"]

    assert client.get("/api/admin/reports/download/payments", headers=admin_headers).status_code == 400
