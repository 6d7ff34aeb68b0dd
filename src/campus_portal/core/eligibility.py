from __future__ import annotations

from typing import Any

from campus_portal.types import EligibilityResult, JobCriteria, StudentProfile


def _format_percentage(value: float) -> str:
    return f"{value:g}%"


def evaluate(job: JobCriteria | Any, student: StudentProfile | Any) -> EligibilityResult:
    """Decide whether ``student`` may apply to ``job``.

    Accepts the typed records or anything exposing the same attributes
    (ORM rows). Pure: the apply path and the job listing call it with the
    same inputs and must get the same answer.
    """
    criteria = job if isinstance(job, JobCriteria) else JobCriteria.model_validate(job)
    profile = student if isinstance(student, StudentProfile) else StudentProfile.model_validate(student)

    reasons: list[str] = []

    # None means "no threshold", not zero
    if criteria.min_ug_percentage is not None and profile.ug_percentage < criteria.min_ug_percentage:
        reasons.append(
            "minimum percentage not met: "
            f"{_format_percentage(criteria.min_ug_percentage)} required, "
            f"student has {_format_percentage(profile.ug_percentage)}"
        )

    if not criteria.allow_backlogs and profile.has_active_backlogs:
        reasons.append("active backlogs not allowed")

    # empty or missing list means every branch
    if criteria.eligible_branches and profile.branch not in criteria.eligible_branches:
        reasons.append(f"branch not eligible: {profile.branch}")

    return EligibilityResult(eligible=not reasons, reasons=reasons)
