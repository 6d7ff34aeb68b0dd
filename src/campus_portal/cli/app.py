from __future__ import annotations

import json
from pathlib import Path

import typer
import uvicorn

from campus_portal.api.app import create_app
from campus_portal.config import get_settings
from campus_portal.core.lifecycle import ApplicationLifecycle
from campus_portal.core.reporting import PlacementReports
from campus_portal.db.init import init_database
from campus_portal.db.repositories import Repository
from campus_portal.db.session import SessionLocal
from campus_portal.errors import PortalError
from campus_portal.logging_config import configure_logging

app = typer.Typer(help="Campus placement portal CLI")
admin_app = typer.Typer(help="Manage administrator accounts")
jobs_app = typer.Typer(help="Job posting commands")
applications_app = typer.Typer(help="Application lifecycle commands")
export_app = typer.Typer(help="CSV exports")

app.add_typer(admin_app, name="admin")
app.add_typer(jobs_app, name="jobs")
app.add_typer(applications_app, name="applications")
app.add_typer(export_app, name="export")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


@app.command("init")
def init_cmd() -> None:
    """Initialize database, directories, and the seeded admin account."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@admin_app.command("create")
def admin_create(
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
    name: str = typer.Option("Placement Office", "--name"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            admin = Repository(db).create_admin(email=email, password=password, name=name)
        except PortalError as exc:
            raise typer.BadParameter(exc.message) from exc
        typer.echo(json.dumps({"id": admin.id, "user_id": admin.user_id, "email": admin.email}, indent=2))


@jobs_app.command("list")
def jobs_list(
    limit: int = typer.Option(20, "--limit"),
    active_only: bool = typer.Option(False, "--active-only"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        jobs = Repository(db).list_jobs(active_only=active_only, limit=limit)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": job.id,
                        "title": job.title,
                        "company": job.company,
                        "deadline": job.deadline.isoformat(),
                        "is_active": job.is_active,
                        "eligible_branches": job.eligible_branches or [],
                    }
                    for job in jobs
                ],
                indent=2,
            )
        )


@applications_app.command("transition")
def applications_transition(
    application_id: int = typer.Option(..., "--application-id"),
    status: str = typer.Option(..., "--status"),
    stage: str | None = typer.Option(None, "--stage"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        lifecycle = ApplicationLifecycle(db)
        try:
            application = lifecycle.transition(application_id=application_id, status=status, stage=stage)
        except PortalError as exc:
            typer.echo(json.dumps(exc.to_payload(), indent=2), err=True)
            raise typer.Exit(code=1) from exc
        typer.echo(json.dumps(lifecycle.serialize(application, include_timeline=True), indent=2))


@export_app.command("applications")
def export_applications(
    job_id: int = typer.Option(..., "--job-id"),
    out: Path = typer.Option(..., "--out"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        content = PlacementReports(repo).applications_csv(job_id)
        rows = repo.count_applications_for_job(job_id)
    if content is None:
        typer.echo(f"No applications found for job {job_id}", err=True)
        raise typer.Exit(code=1)

    out.write_text(content, encoding="utf-8")
    typer.echo(json.dumps({"job_id": job_id, "path": str(out), "rows": rows}, indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    configure_logging(log_level)
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
