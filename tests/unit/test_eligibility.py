from __future__ import annotations

import pytest

from campus_portal.core.eligibility import evaluate
from campus_portal.types import JobCriteria, StudentProfile

BRANCHES = ["CSE", "ISE", "MC", "AIML", "Aerospace", "Automotive", "EEE", "ECE", "Civil", "Mechanical", "Robotics"]


def _job(**overrides) -> JobCriteria:
    values = {"min_ug_percentage": 75, "allow_backlogs": False, "eligible_branches": ["CSE"]}
    values.update(overrides)
    return JobCriteria(**values)


def _student(**overrides) -> StudentProfile:
    values = {"branch": "CSE", "ug_percentage": 80, "has_active_backlogs": False}
    values.update(overrides)
    return StudentProfile(**values)


def test_below_threshold_is_refused_with_percentage_reason() -> None:
    result = evaluate(_job(), _student(ug_percentage=70))

    assert result.eligible is False
    assert result.reasons == ["minimum percentage not met: 75% required, student has 70%"]


def test_matching_student_is_eligible() -> None:
    result = evaluate(_job(), _student(ug_percentage=80))

    assert result.eligible is True
    assert result.reasons == []


@pytest.mark.parametrize("threshold,percentage", [(60, 59.99), (75, 74), (90, 0)])
def test_any_percentage_under_threshold_mentions_percentage(threshold: float, percentage: float) -> None:
    result = evaluate(_job(min_ug_percentage=threshold), _student(ug_percentage=percentage))

    assert not result.eligible
    assert any("percentage" in reason for reason in result.reasons)


def test_exact_threshold_passes() -> None:
    assert evaluate(_job(min_ug_percentage=75), _student(ug_percentage=75)).eligible


def test_missing_threshold_is_not_zero() -> None:
    result = evaluate(_job(min_ug_percentage=None), _student(ug_percentage=0))

    assert result.eligible


@pytest.mark.parametrize("branches", [None, []])
@pytest.mark.parametrize("branch", BRANCHES)
def test_empty_branch_list_admits_every_branch(branches, branch: str) -> None:
    assert evaluate(_job(eligible_branches=branches), _student(branch=branch)).eligible


def test_branch_outside_list_is_refused() -> None:
    result = evaluate(_job(eligible_branches=["CSE", "ISE"]), _student(branch="Civil"))

    assert result.reasons == ["branch not eligible: Civil"]


def test_backlogs_refused_regardless_of_other_fields() -> None:
    job = _job(min_ug_percentage=None, eligible_branches=None, allow_backlogs=False)
    result = evaluate(job, _student(ug_percentage=100, has_active_backlogs=True))

    assert result.eligible is False
    assert result.reasons == ["active backlogs not allowed"]


def test_backlogs_allowed_when_job_permits() -> None:
    assert evaluate(_job(allow_backlogs=True), _student(has_active_backlogs=True)).eligible


def test_all_reasons_are_collected_in_order() -> None:
    result = evaluate(_job(), _student(branch="EEE", ug_percentage=60.5, has_active_backlogs=True))

    assert result.reasons == [
        "minimum percentage not met: 75% required, student has 60.5%",
        "active backlogs not allowed",
        "branch not eligible: EEE",
    ]


def test_evaluate_is_idempotent() -> None:
    job = _job()
    student = _student(ug_percentage=70, branch="ECE")

    first = evaluate(job, student)
    second = evaluate(job, student)

    assert first == second
    assert job == _job()


def test_accepts_plain_attribute_objects() -> None:
    class Row:
        pass

    job = Row()
    job.min_ug_percentage = 75
    job.allow_backlogs = False
    job.eligible_branches = ["CSE"]
    student = Row()
    student.branch = "CSE"
    student.ug_percentage = 70
    student.has_active_backlogs = False

    assert evaluate(job, student) == evaluate(_job(), _student(ug_percentage=70))
