from __future__ import annotations

import logging

from campus_portal.db.models import User
from campus_portal.db.session import SessionLocal


def test_register_login_me_logout(client, student_payload) -> None:
    register_resp = client.post("/api/auth/register", json=student_payload())
    assert register_resp.status_code == 200
    body = register_resp.json()
    assert body["role"] == "student"
    assert body["student"]["college_reg_no"] == "1RV21CS001"
    assert "password" not in body["student"]

    login_resp = client.post(
        "/api/auth/login",
        json={"email": "asha@college.edu", "password": "student-pass-1"},
    )
    assert login_resp.status_code == 200
    cookie = login_resp.headers["set-cookie"]
    assert "portal_session=" in cookie
    assert "httponly" in cookie.lower()

    me_resp = client.get("/api/auth/me")
    assert me_resp.status_code == 200
    assert me_resp.json()["student"]["branch"] == "CSE"

    logout_resp = client.post("/api/auth/logout")
    assert logout_resp.status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_password_is_stored_hashed(client, student_payload) -> None:
    client.post("/api/auth/register", json=student_payload())

    with SessionLocal() as db:
        user = db.query(User).one()
        assert user.password_hash != "student-pass-1"
        assert user.password_hash.startswith("$2")


def test_password_never_logged(client, caplog, register_and_login) -> None:
    caplog.set_level(logging.DEBUG)
    register_and_login(client)

    assert "student-pass-1" not in caplog.text


def test_bad_credentials_are_unauthorized(client, student_payload) -> None:
    client.post("/api/auth/register", json=student_payload())

    resp = client.post("/api/auth/login", json={"email": "asha@college.edu", "password": "wrong-password"})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials", "code": "unauthorized"}


def test_duplicate_registration_conflicts(client, student_payload) -> None:
    assert client.post("/api/auth/register", json=student_payload()).status_code == 200

    same_email = client.post("/api/auth/register", json=student_payload(college_reg_no="1RV21CS002"))
    same_reg = client.post("/api/auth/register", json=student_payload(college_email="other@college.edu"))

    assert same_email.status_code == 409
    assert same_reg.status_code == 409


def test_register_validates_input(client, student_payload) -> None:
    assert client.post("/api/auth/register", json=student_payload(password="short")).status_code == 422
    assert client.post("/api/auth/register", json=student_payload(branch="Physics")).status_code == 422
    assert client.post("/api/auth/register", json=student_payload(ug_percentage=101)).status_code == 422
    assert client.post("/api/auth/register", json=student_payload(college_email="not-an-email")).status_code == 422


def test_forged_cookie_is_rejected(client) -> None:
    client.cookies.set("portal_session", "forged-token")

    assert client.get("/api/auth/me").status_code == 401


def test_profile_update_keeps_identity_fields(client, register_and_login) -> None:
    register_and_login(client)

    resp = client.put("/api/student/profile", json={"ug_percentage": 82.5, "mobile_number": "+919811111111"})
    assert resp.status_code == 200
    assert resp.json()["ug_percentage"] == 82.5

    immutable = client.put("/api/student/profile", json={"college_reg_no": "HACKED"})
    assert immutable.status_code == 422
    assert client.get("/api/student/profile").json()["college_reg_no"] == "1RV21CS001"


def test_admin_cannot_use_student_profile(admin_client) -> None:
    resp = admin_client.get("/api/student/profile")

    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


def test_resume_upload_and_delete(client, register_and_login) -> None:
    register_and_login(client)

    rejected = client.post(
        "/api/student/resume",
        files={"file": ("cv.txt", b"plain text", "text/plain")},
    )
    assert rejected.status_code == 400
    assert rejected.json()["code"] == "invalid_resume"

    upload = client.post(
        "/api/student/resume",
        files={"file": ("cv.pdf", b"%PDF-1.4 resume", "application/pdf")},
    )
    assert upload.status_code == 200
    url = upload.json()["resume_url"]
    assert url == "/resumes/CSE/1RV21CS001.pdf"
    assert client.get(url).content == b"%PDF-1.4 resume"
    assert client.get("/api/student/profile").json()["resume_url"] == url

    deleted = client.delete("/api/student/resume")
    assert deleted.status_code == 200
    assert deleted.json() == {"resume_url": None}
    assert client.delete("/api/student/resume").status_code == 404


def test_malformed_emails_are_rejected(client, student_payload) -> None:
    for bad in ("a@.", "a b@x.yz", "x@@y.zz", "a@b..cc"):
        assert client.post("/api/auth/register", json=student_payload(college_email=bad)).status_code == 422
        assert client.post("/api/auth/login", json={"email": bad, "password": "whatever-123"}).status_code == 422


def test_personal_email_is_optional_but_validated(client, student_payload) -> None:
    payload = student_payload()
    del payload["personal_email"]

    assert client.post("/api/auth/register", json=payload).status_code == 200
    assert (
        client.post(
            "/api/auth/register",
            json=student_payload(college_reg_no="1RV21CS002", college_email="b@college.edu", personal_email="nope"),
        ).status_code
        == 422
    )
