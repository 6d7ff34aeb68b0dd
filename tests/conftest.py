from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="campus-portal-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'portal.db'}"
os.environ["DATA_DIR"] = str(_TEST_ROOT)
os.environ["RESUME_DIR"] = str(_TEST_ROOT / "resumes")
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["TRANSITION_POLICY"] = "permissive"

from collections.abc import Iterator  # noqa: E402
from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from campus_portal.api.app import create_app  # noqa: E402
from campus_portal.config import get_settings  # noqa: E402
from campus_portal.core.clock import utcnow  # noqa: E402
from campus_portal.db.base import Base  # noqa: E402
from campus_portal.db.repositories import Repository  # noqa: E402
from campus_portal.db.session import SessionLocal, engine  # noqa: E402

ADMIN_EMAIL = "tpo@college.edu"
ADMIN_PASSWORD = "admin-secret-1"


@pytest.fixture(autouse=True)
def reset_db() -> Iterator[None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    resume_dir = get_settings().resume_dir
    shutil.rmtree(resume_dir, ignore_errors=True)
    resume_dir.mkdir(parents=True)
    yield


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def admin_client() -> TestClient:
    with SessionLocal() as db:
        Repository(db).create_admin(email=ADMIN_EMAIL, password=ADMIN_PASSWORD, name="Placement Office")

    client = TestClient(create_app())
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def student_payload():
    def build(**overrides) -> dict:
        payload = {
            "first_name": "Asha",
            "gender": "female",
            "college_reg_no": "1RV21CS001",
            "date_of_birth": "2003-04-12",
            "college_email": "asha@college.edu",
            "personal_email": "asha.personal@gmail.com",
            "mobile_number": "+919800000001",
            "is_pwd": False,
            "branch": "CSE",
            "ug_percentage": 80,
            "has_active_backlogs": False,
            "password": "student-pass-1",
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def register_and_login(student_payload):
    def run(client: TestClient, **overrides) -> dict:
        payload = student_payload(**overrides)
        resp = client.post("/api/auth/register", json=payload)
        assert resp.status_code == 200, resp.text
        login = client.post(
            "/api/auth/login",
            json={"email": payload["college_email"], "password": payload["password"]},
        )
        assert login.status_code == 200, login.text
        return login.json()

    return run


@pytest.fixture
def job_payload():
    def build(**overrides) -> dict:
        payload = {
            "title": "Graduate Engineer",
            "company": "Acme Systems",
            "description": "Backend services",
            "location": "Bengaluru",
            "package_range": "12-14 LPA",
            "min_ug_percentage": 75,
            "allow_backlogs": False,
            "eligible_branches": ["CSE"],
            "skills": ["Python", "SQL"],
            "deadline": (utcnow() + timedelta(days=14)).isoformat(),
            "is_active": True,
            "counts_as_offer": True,
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def create_job(admin_client, job_payload):
    def run(**overrides) -> dict:
        resp = admin_client.post("/api/jobs", json=job_payload(**overrides))
        assert resp.status_code == 200, resp.text
        return resp.json()

    return run
