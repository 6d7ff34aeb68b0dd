from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from campus_portal.api.deps import get_db, require_admin
from campus_portal.core.clock import utcnow
from campus_portal.core.reporting import PlacementReports
from campus_portal.db.repositories import Repository
from campus_portal.errors import NotFound
from campus_portal.types import CurrentUser

router = APIRouter(prefix="/api", tags=["admin"])


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/admin/stats")
def admin_stats(user: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"stats": PlacementReports(Repository(db)).dashboard_stats()}


@router.get("/admin/applications/stats")
def admin_application_stats(
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"stats": PlacementReports(Repository(db)).application_stats()}


@router.get("/admin/students")
def admin_students(user: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)) -> dict[str, Any]:
    return {"students": PlacementReports(Repository(db)).student_rows()}


@router.get("/admin/activities")
def admin_activities(
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return {"activities": PlacementReports(Repository(db)).recent_activities()}


@router.get("/export/applications/{job_id}")
def export_applications(
    job_id: int,
    user: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    repo = Repository(db)
    job = repo.get_job(job_id)
    if job is None:
        raise NotFound("Job not found")

    content = PlacementReports(repo).applications_csv(job_id)
    if content is None:
        raise NotFound("No applications found")
    return _csv_response(content, f"applications_{job_id}.csv")


@router.get("/export/students")
def export_students(user: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)) -> Response:
    content = PlacementReports(Repository(db)).students_csv()
    return _csv_response(content, f"all_students_{utcnow().date().isoformat()}.csv")


@router.get("/export/overview")
def export_overview(user: CurrentUser = Depends(require_admin), db: Session = Depends(get_db)) -> Response:
    content = PlacementReports(Repository(db)).overview_csv()
    return _csv_response(content, f"placement_overview_{utcnow().date().isoformat()}.csv")
