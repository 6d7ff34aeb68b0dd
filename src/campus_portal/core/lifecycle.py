from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from campus_portal.config import Settings, get_settings
from campus_portal.core.clock import as_utc, utcnow
from campus_portal.core.eligibility import evaluate
from campus_portal.core.timeline import derive_timeline
from campus_portal.core.transitions import TransitionPolicy
from campus_portal.db.models import Application, Job
from campus_portal.db.repositories import Repository
from campus_portal.errors import (
    ConcurrentUpdate,
    DuplicateApplication,
    InvalidTransition,
    JobExpired,
    JobInactive,
    NotEligible,
    NotFound,
)
from campus_portal.types import APPLICATION_STATUSES, StageEntry

logger = logging.getLogger(__name__)


def stage_entry(stage: str, at: datetime, status: str = "completed") -> dict[str, Any]:
    return StageEntry(stage=stage, timestamp=at.isoformat(), status=status).model_dump()


def deadline_passed(job: Job, now: datetime | None = None) -> bool:
    return as_utc(job.deadline) < as_utc(now or utcnow())


class ApplicationLifecycle:
    """Sole writer of an application's status, current stage and stage history."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        policy: TransitionPolicy | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.policy = policy or TransitionPolicy(mode=self.settings.transition_policy)

    def create(self, *, student_id: int, job_id: int, now: datetime | None = None) -> Application:
        now = now or utcnow()

        student = self.repo.get_student(student_id)
        if student is None:
            raise NotFound(f"student {student_id} not found")

        if self.repo.get_application_for(student_id, job_id) is not None:
            self._refused("duplicate", student_id, job_id)
            raise DuplicateApplication("Already applied to this job")

        job = self.repo.get_job(job_id)
        if job is None:
            raise NotFound(f"job {job_id} not found")

        if not job.is_active:
            self._refused("inactive", student_id, job_id)
            raise JobInactive("Job is no longer active")

        if deadline_passed(job, now):
            self._refused("expired", student_id, job_id)
            raise JobExpired("Application deadline has passed")

        # re-run even when the client already filtered; this is the authoritative check
        result = evaluate(job, student)
        if not result.eligible:
            self._refused("not_eligible", student_id, job_id)
            raise NotEligible(result.reasons)

        try:
            application = self.repo.add_application(
                student_id=student_id,
                job_id=job_id,
                status="applied",
                current_stage="applied",
                stage_history=[stage_entry("applied", now)],
            )
        except IntegrityError as exc:
            # a concurrent request won the unique (student, job) constraint
            self.session.rollback()
            self._refused("duplicate", student_id, job_id)
            raise DuplicateApplication("Already applied to this job") from exc

        logger.info(
            "Application created application_id=%s student_id=%s job_id=%s",
            application.id,
            student_id,
            job_id,
        )
        return application

    def transition(
        self,
        *,
        application_id: int,
        status: str,
        stage: str | None = None,
        now: datetime | None = None,
    ) -> Application:
        if status not in APPLICATION_STATUSES:
            raise InvalidTransition(f"unknown application status '{status}'")

        application = self.repo.get_application(application_id)
        if application is None:
            raise NotFound(f"application {application_id} not found")

        previous = application.status
        if not self.policy.allows(previous, status):
            raise InvalidTransition(f"cannot move application from '{previous}' to '{status}'")

        new_stage = stage or status
        at = now or utcnow()
        # assign a new list so the JSON column is marked dirty
        application.stage_history = [*(application.stage_history or []), stage_entry(new_stage, at)]
        application.status = status
        application.current_stage = new_stage

        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning("Lost update on application_id=%s, transition to %s refused", application_id, status)
            raise ConcurrentUpdate(
                f"application {application_id} was modified concurrently; reload and retry"
            ) from exc

        self.session.refresh(application)
        logger.info(
            "Application transitioned application_id=%s %s -> %s stage=%s",
            application_id,
            previous,
            status,
            new_stage,
        )
        return application

    def serialize(self, application: Application, *, include_timeline: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": application.id,
            "student_id": application.student_id,
            "job_id": application.job_id,
            "status": application.status,
            "current_stage": application.current_stage,
            "stage_history": list(application.stage_history or []),
            "version": application.version,
            "applied_at": application.created_at.isoformat() if application.created_at else None,
            "updated_at": application.updated_at.isoformat() if application.updated_at else None,
        }
        if include_timeline:
            data["timeline"] = [item.model_dump(mode="json") for item in derive_timeline(application)]
        return data

    def _refused(self, kind: str, student_id: int, job_id: int) -> None:
        logger.info("Application refused kind=%s student_id=%s job_id=%s", kind, student_id, job_id)
