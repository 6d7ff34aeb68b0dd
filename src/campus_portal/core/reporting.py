from __future__ import annotations

import csv
import io
from collections import Counter
from datetime import datetime
from typing import Any

from campus_portal.core.clock import as_utc, utcnow
from campus_portal.db.models import Application, Student
from campus_portal.db.repositories import Repository

APPLICATION_EXPORT_COLUMNS = [
    "student_id",
    "reg_no",
    "name",
    "email",
    "mobile",
    "branch",
    "percentage",
    "status",
    "stage",
    "applied_date",
    "resume_url",
]
STUDENT_EXPORT_COLUMNS = [
    "student_id",
    "reg_no",
    "name",
    "college_email",
    "personal_email",
    "mobile",
    "gender",
    "date_of_birth",
    "branch",
    "percentage",
    "has_active_backlogs",
    "is_pwd",
    "application_count",
    "is_placed",
    "resume_url",
]
OVERVIEW_EXPORT_COLUMNS = ["job_title", "company", "deadline", "is_active", "applications"]
PENDING_STATUSES = frozenset({"applied", "under_review"})
APPROVED_STATUSES = frozenset({"shortlisted", "selected"})


def _isoformat(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def to_csv(columns: list[str], rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def application_row(application: Application) -> dict[str, Any]:
    student = application.student
    return {
        "student_id": application.student_id,
        "reg_no": student.college_reg_no if student else "",
        "name": student.first_name if student else "",
        "email": student.college_email if student else "",
        "mobile": student.mobile_number if student else "",
        "branch": student.branch if student else "",
        "percentage": student.ug_percentage if student else 0,
        "status": application.status,
        "stage": application.current_stage,
        "applied_date": _isoformat(application.created_at),
        "resume_url": (student.resume_url or "") if student else "",
    }


def is_placed(applications: list[Application]) -> bool:
    return any(app.status == "selected" and app.job is not None and app.job.counts_as_offer for app in applications)


class PlacementReports:
    def __init__(self, repo: Repository):
        self.repo = repo

    def applications_csv(self, job_id: int) -> str | None:
        applications = self.repo.list_applications_for_job(job_id)
        if not applications:
            return None
        return to_csv(APPLICATION_EXPORT_COLUMNS, [application_row(app) for app in applications])

    def student_rows(self) -> list[dict[str, Any]]:
        by_student: dict[int, list[Application]] = {}
        for application in self.repo.list_applications():
            by_student.setdefault(application.student_id, []).append(application)

        rows = []
        for student in self.repo.list_students():
            applications = by_student.get(student.id, [])
            rows.append(self._student_row(student, applications))
        return rows

    def students_csv(self) -> str:
        return to_csv(STUDENT_EXPORT_COLUMNS, self.student_rows())

    def overview_csv(self) -> str:
        counts = Counter(app.job_id for app in self.repo.list_applications())
        rows = [
            {
                "job_title": job.title,
                "company": job.company,
                "deadline": as_utc(job.deadline).date().isoformat(),
                "is_active": "Yes" if job.is_active else "No",
                "applications": counts.get(job.id, 0),
            }
            for job in self.repo.list_jobs()
        ]
        return to_csv(OVERVIEW_EXPORT_COLUMNS, rows)

    def dashboard_stats(self, now: datetime | None = None) -> dict[str, int]:
        now = as_utc(now or utcnow())
        jobs = self.repo.list_jobs()
        applications = self.repo.list_applications()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        placed_students = {
            app.student_id
            for app in applications
            if app.status == "selected" and app.job is not None and app.job.counts_as_offer
        }

        return {
            "total_students": len(self.repo.list_students()),
            "total_jobs": len(jobs),
            "total_applications": len(applications),
            "active_jobs": sum(1 for job in jobs if job.is_active),
            "placed_students": len(placed_students),
            "pending_applications": sum(1 for app in applications if app.status in PENDING_STATUSES),
            "unique_companies": len({job.company for job in jobs}),
            "this_month_jobs": sum(1 for job in jobs if as_utc(job.created_at) >= month_start),
        }

    def application_stats(self) -> dict[str, int]:
        applications = self.repo.list_applications()
        return {
            "total": len(applications),
            "pending": sum(1 for app in applications if app.status in PENDING_STATUSES),
            "approved": sum(1 for app in applications if app.status in APPROVED_STATUSES),
            "rejected": sum(1 for app in applications if app.status == "rejected"),
        }

    def recent_activities(self, limit: int = 10) -> list[dict[str, Any]]:
        activities: list[dict[str, Any]] = []
        for app in self.repo.list_applications()[:limit]:
            job_label = f"{app.job.title} at {app.job.company}" if app.job else f"job {app.job_id}"
            activities.append(
                {
                    "id": f"app-{app.id}",
                    "type": "application",
                    "description": f"New application submitted for {job_label}",
                    "timestamp": as_utc(app.created_at),
                }
            )
        for job in self.repo.list_jobs(limit=limit):
            activities.append(
                {
                    "id": f"job-{job.id}",
                    "type": "job_created",
                    "description": f"New job posted: {job.title} at {job.company}",
                    "timestamp": as_utc(job.created_at),
                }
            )

        activities.sort(key=lambda item: item["timestamp"], reverse=True)
        return [item | {"timestamp": item["timestamp"].isoformat()} for item in activities[:limit]]

    def _student_row(self, student: Student, applications: list[Application]) -> dict[str, Any]:
        return {
            "student_id": student.id,
            "reg_no": student.college_reg_no,
            "name": student.first_name,
            "college_email": student.college_email,
            "personal_email": student.personal_email,
            "mobile": student.mobile_number,
            "gender": student.gender,
            "date_of_birth": student.date_of_birth,
            "branch": student.branch,
            "percentage": student.ug_percentage,
            "has_active_backlogs": student.has_active_backlogs,
            "is_pwd": student.is_pwd,
            "application_count": len(applications),
            "is_placed": is_placed(applications),
            "resume_url": student.resume_url or "",
        }
