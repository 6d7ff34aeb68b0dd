from __future__ import annotations

import csv
import io
from datetime import timedelta
from pathlib import Path

from typer.testing import CliRunner

from campus_portal.cli.app import app
from campus_portal.core.clock import utcnow
from campus_portal.core.lifecycle import ApplicationLifecycle
from campus_portal.db.repositories import Repository
from campus_portal.db.session import SessionLocal

runner = CliRunner()


def _seed_application(first_name: str) -> tuple[int, int]:
    with SessionLocal() as db:
        repo = Repository(db)
        student = repo.register_student(
            password="student-pass-1",
            values={
                "first_name": first_name,
                "college_reg_no": "1RV21CS001",
                "college_email": "asha@college.edu",
                "branch": "CSE",
                "ug_percentage": 80,
            },
        )
        job = repo.create_job(
            {"title": "Graduate Engineer", "company": "Acme Systems", "deadline": utcnow() + timedelta(days=3)}
        )
        application = ApplicationLifecycle(db).create(student_id=student.id, job_id=job.id)
        return job.id, application.id


def test_export_counts_applications_not_lines(tmp_path: Path) -> None:
    job_id, _ = _seed_application("Asha\nRao")
    out = tmp_path / "applications.csv"

    result = runner.invoke(app, ["export", "applications", "--job-id", str(job_id), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert '"rows": 1' in result.output
    rows = list(csv.DictReader(io.StringIO(out.read_text(encoding="utf-8"), newline="")))
    assert len(rows) == 1
    assert rows[0]["name"] == "Asha\nRao"


def test_export_without_applications_fails(tmp_path: Path) -> None:
    with SessionLocal() as db:
        job = Repository(db).create_job(
            {"title": "Quiet role", "company": "Globex", "deadline": utcnow() + timedelta(days=3)}
        )
        job_id = job.id

    result = runner.invoke(app, ["export", "applications", "--job-id", str(job_id), "--out", str(tmp_path / "x.csv")])

    assert result.exit_code == 1
    assert not (tmp_path / "x.csv").exists()


def test_transition_command_uses_lifecycle() -> None:
    _, application_id = _seed_application("Asha")

    result = runner.invoke(
        app,
        ["applications", "transition", "--application-id", str(application_id), "--status", "rejected"],
    )

    assert result.exit_code == 0, result.output
    with SessionLocal() as db:
        stored = Repository(db).get_application(application_id)
        assert stored.status == "rejected"
        assert len(stored.stage_history) == 2
